"""Core data models used by the polarisation observables.

This module defines:
- decay-channel and mass-hypothesis tags (`DecayChannel`, `MassHypothesis`)
- immutable physics objects (`LorentzVector`, `ParticleHypothesis`)
- the per-candidate input record (`CandidateRecord`)
- the per-(hypothesis, rotation) output row (`ObservableTuple`).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

Vector3 = tuple[float, float, float]
MlScores = tuple[float, float, float]


class DecayChannel(str, Enum):
    """Supported charm-hadron decay channels."""

    DSTAR_TO_D0_PI = "dstar_to_d0pi"
    LC_TO_PKPI = "lc_to_pkpi"

    @property
    def supports_rotation(self) -> bool:
        """Only channels with individually reconstructed prongs can be rotated."""
        return self is DecayChannel.LC_TO_PKPI

    @property
    def mass_hypotheses(self) -> tuple["MassHypothesis", ...]:
        if self is DecayChannel.DSTAR_TO_D0_PI:
            return (MassHypothesis.DSTAR_TO_D0_PI,)
        return (MassHypothesis.PKPI, MassHypothesis.PIKP)


class MassHypothesis(str, Enum):
    """Daughter-to-track assignment that produced an invariant mass."""

    DSTAR_TO_D0_PI = "dstar"
    PKPI = "pkpi"
    PIKP = "pikp"


@dataclass(frozen=True)
class ParticleHypothesis:
    """Named particle hypothesis used to derive mass-dependent observables."""

    name: str
    mass: float
    pdg_id: int | None = None


@dataclass(frozen=True)
class LorentzVector:
    """Simple 4-vector with convenience properties and addition."""

    px: float
    py: float
    pz: float
    e: float

    @classmethod
    def from_momentum_and_mass(cls, p3: Vector3, mass: float) -> "LorentzVector":
        """Build the 4-vector of a particle with three-momentum `p3` and mass."""
        px, py, pz = p3
        energy = math.sqrt(px * px + py * py + pz * pz + mass * mass)
        return cls(px, py, pz, energy)

    def __add__(self, other: "LorentzVector") -> "LorentzVector":
        """Component-wise 4-vector addition."""
        return LorentzVector(
            self.px + other.px,
            self.py + other.py,
            self.pz + other.pz,
            self.e + other.e,
        )

    @property
    def p3(self) -> Vector3:
        return (self.px, self.py, self.pz)

    @property
    def p2(self) -> float:
        """Squared 3-momentum magnitude."""
        return self.px * self.px + self.py * self.py + self.pz * self.pz

    @property
    def mass2(self) -> float:
        """Invariant mass squared."""
        return self.e * self.e - self.p2

    @property
    def mass(self) -> float:
        """Invariant mass with signed handling for small negative mass2 values."""
        m2 = self.mass2
        return m2**0.5 if m2 >= 0.0 else -((-m2) ** 0.5)

    @property
    def beta_vector(self) -> Vector3:
        """Velocity `p/E` of the frame in which this 4-vector is at rest."""
        if self.e == 0.0:
            return (math.nan, math.nan, math.nan)
        return (self.px / self.e, self.py / self.e, self.pz / self.e)


@dataclass(frozen=True)
class CandidateRecord:
    """One reconstructed decay candidate, as produced by the upstream selection.

    `prongs` holds the daughter three-momenta in the order used by the
    reconstruction: `(p0, p1, p2)` for Lambda_c -> pKpi, and the soft pion only
    for D*+ -> D0 pi. `p_parent` is the three-momentum of the charm hadron.
    Per-hypothesis maps are keyed by `MassHypothesis`; a hypothesis missing
    from `ml_scores` has no classifier output.
    """

    channel: DecayChannel
    prongs: tuple[Vector3, ...]
    p_parent: Vector3
    inv_masses: Mapping[MassHypothesis, float]
    selection_flags: Mapping[MassHypothesis, int]
    ml_scores: Mapping[MassHypothesis, MlScores] = field(default_factory=dict)
    inv_mass_d0: float | None = None
    candidate_id: str | None = None

    def __post_init__(self) -> None:
        expected_prongs = 3 if self.channel is DecayChannel.LC_TO_PKPI else 1
        if len(self.prongs) != expected_prongs:
            raise ValueError(
                f"Channel {self.channel.value} needs {expected_prongs} prong momenta, "
                f"got {len(self.prongs)}."
            )
        for hypothesis, scores in self.ml_scores.items():
            if len(scores) != 3:
                raise ValueError(
                    f"ML scores for hypothesis {hypothesis.value} must hold exactly 3 values "
                    f"(bkg, prompt, non-prompt), got {len(scores)}."
                )
        if self.channel is DecayChannel.DSTAR_TO_D0_PI and self.inv_mass_d0 is None:
            raise ValueError("D*+ candidates require the invariant mass of the D0 daughter.")
        momenta = (*self.prongs, self.p_parent)
        masses = [*self.inv_masses.values()]
        if self.inv_mass_d0 is not None:
            masses.append(self.inv_mass_d0)
        if not all(math.isfinite(v) for p in momenta for v in p) or not all(math.isfinite(m) for m in masses):
            raise ValueError(
                f"Candidate {self.candidate_id or self.channel.value} has non-finite momenta or masses."
            )

    @classmethod
    def from_dstar(
        cls,
        soft_pion: Vector3,
        p_dstar: Vector3,
        soft_pion_sign: int,
        inv_mass_dstar: float,
        inv_mass_anti_dstar: float,
        inv_mass_d0: float,
        inv_mass_d0bar: float,
        selection_flag: int,
        ml_scores: MlScores | None = None,
        candidate_id: str | None = None,
    ) -> "CandidateRecord":
        """Build a D*+ record, choosing particle or antiparticle masses by soft-pion charge."""
        if soft_pion_sign > 0:
            inv_mass, inv_mass_d = inv_mass_dstar, inv_mass_d0
        else:
            inv_mass, inv_mass_d = inv_mass_anti_dstar, inv_mass_d0bar
        hypothesis = MassHypothesis.DSTAR_TO_D0_PI
        return cls(
            channel=DecayChannel.DSTAR_TO_D0_PI,
            prongs=(soft_pion,),
            p_parent=p_dstar,
            inv_masses={hypothesis: inv_mass},
            selection_flags={hypothesis: int(selection_flag)},
            ml_scores={} if ml_scores is None else {hypothesis: tuple(ml_scores)},
            inv_mass_d0=inv_mass_d,
            candidate_id=candidate_id,
        )

    @classmethod
    def from_lc_to_pkpi(
        cls,
        prongs: tuple[Vector3, Vector3, Vector3],
        inv_mass_pkpi: float,
        inv_mass_pikp: float,
        selection_pkpi: int,
        selection_pikp: int,
        p_parent: Vector3 | None = None,
        ml_scores_pkpi: MlScores | None = None,
        ml_scores_pikp: MlScores | None = None,
        candidate_id: str | None = None,
    ) -> "CandidateRecord":
        """Build a Lambda_c -> pKpi record; the parent momentum defaults to the prong sum."""
        if p_parent is None:
            p_parent = (
                sum(p[0] for p in prongs),
                sum(p[1] for p in prongs),
                sum(p[2] for p in prongs),
            )
        ml_scores: dict[MassHypothesis, MlScores] = {}
        if ml_scores_pkpi is not None:
            ml_scores[MassHypothesis.PKPI] = tuple(ml_scores_pkpi)
        if ml_scores_pikp is not None:
            ml_scores[MassHypothesis.PIKP] = tuple(ml_scores_pikp)
        return cls(
            channel=DecayChannel.LC_TO_PKPI,
            prongs=tuple(prongs),
            p_parent=p_parent,
            inv_masses={MassHypothesis.PKPI: inv_mass_pkpi, MassHypothesis.PIKP: inv_mass_pikp},
            selection_flags={MassHypothesis.PKPI: int(selection_pkpi), MassHypothesis.PIKP: int(selection_pikp)},
            ml_scores=ml_scores,
            candidate_id=candidate_id,
        )


@dataclass(frozen=True)
class ObservableTuple:
    """Observables of one (candidate, mass hypothesis, rotation variant) entry.

    `inv_mass` is the value histogrammed on the mass axis: the candidate mass
    for Lambda_c, the `m(D*) - m(D0)` difference for D*+.
    """

    inv_mass: float
    pt: float
    pz: float
    rapidity: float
    cos_theta_helicity: float
    cos_theta_production: float
    cos_theta_beam: float
    cos_theta_random: float
    is_rotated: int
    hypothesis: MassHypothesis
    rotation_index: int = 0
    ml_scores: MlScores | None = None

    @property
    def ml_bkg(self) -> float:
        return self._scores()[0]

    @property
    def ml_non_prompt(self) -> float:
        return self._scores()[2]

    def _scores(self) -> MlScores:
        if self.ml_scores is None:
            raise ValueError(f"Observable tuple for hypothesis {self.hypothesis.value} carries no ML scores.")
        return self.ml_scores
