"""Rotational-background ensemble for combinatorial-background estimates.

For a candidate with individually reconstructed prongs, `N` extra copies are
built by rotating the transverse momentum of prong1 (the kaon of
Lambda_c -> pKpi) around the beam axis by `k * 2pi / (N + 1)`, `k = 1..N`.
The rotation decorrelates the kaon from the other prongs while keeping its
single-particle kinematics, so the copies populate the invariant-mass
spectrum with uncorrelated background.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .hypotheses import ResolvedHypothesis
from .models import CandidateRecord, MlScores, Vector3
from .physics import invariant_mass, rotate_around_beam, sum_momenta

ROTATED_PRONG_INDEX = 1


@dataclass(frozen=True)
class RotationVariant:
    """One member of the rotation ensemble of a resolved candidate."""

    index: int
    angle: float
    prongs: tuple[Vector3, ...]
    p_parent: Vector3
    inv_mass: float
    hist_mass: float
    ml_scores: MlScores | None = None

    @property
    def is_rotated(self) -> int:
        return 1 if self.index > 0 else 0


class RotationalBackgroundGenerator:
    """Produce the unrotated candidate plus `n_rotations` rotated copies."""

    def __init__(self, n_rotations: int = 0) -> None:
        if n_rotations < 0:
            raise ValueError(f"Number of rotations must be non-negative, got {n_rotations}.")
        self.n_rotations = n_rotations

    @property
    def angle_step(self) -> float:
        """Azimuthal step between copies; `2pi` (no rotation) when `N == 0`."""
        return 2.0 * math.pi / (self.n_rotations + 1)

    def angle(self, index: int) -> float:
        if not 0 <= index <= self.n_rotations:
            raise ValueError(f"Rotation index {index} outside [0, {self.n_rotations}].")
        return self.angle_step * index

    def variants(self, candidate: CandidateRecord, resolved: ResolvedHypothesis) -> list[RotationVariant]:
        """Return variants `0..N`, or only variant 0 when the channel cannot be rotated."""
        if not candidate.channel.supports_rotation:
            return [self._unrotated(candidate, resolved)]
        out = [self._unrotated(candidate, resolved)]
        for index in range(1, self.n_rotations + 1):
            out.append(self.rotated(candidate, resolved, index))
        return out

    def rotated(self, candidate: CandidateRecord, resolved: ResolvedHypothesis, index: int) -> RotationVariant:
        """Build variant `index`, recomputing parent momentum and invariant mass."""
        angle = self.angle(index)
        prongs = rotate_prong(candidate.prongs, ROTATED_PRONG_INDEX, angle)
        # Classifier scores are inherited from the original candidate, even
        # though the rotated kinematics differ.
        mass = invariant_mass(prongs, resolved.prong_masses)
        return RotationVariant(
            index=index,
            angle=angle,
            prongs=prongs,
            p_parent=sum_momenta(prongs),
            inv_mass=mass,
            hist_mass=mass,
            ml_scores=resolved.ml_scores,
        )

    @staticmethod
    def _unrotated(candidate: CandidateRecord, resolved: ResolvedHypothesis) -> RotationVariant:
        return RotationVariant(
            index=0,
            angle=0.0,
            prongs=candidate.prongs,
            p_parent=candidate.p_parent,
            inv_mass=resolved.inv_mass,
            hist_mass=resolved.hist_mass,
            ml_scores=resolved.ml_scores,
        )


def rotate_prong(prongs: tuple[Vector3, ...], index: int, angle: float) -> tuple[Vector3, ...]:
    """Return a copy of `prongs` with prong `index` rotated around the beam axis."""
    return tuple(
        rotate_around_beam(p, angle) if i == index else p for i, p in enumerate(prongs)
    )
