"""Mass-hypothesis resolution for decay channels with daughter-assignment ambiguity.

Lambda_c -> pKpi candidates are reconstructed under two track-to-particle
assignments (pKpi and piKp). Each assignment is accepted independently
against the configured minimum selection level, so one candidate yields zero,
one or two resolved hypotheses. Rejected assignments are dropped entirely.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import CandidateRecord, DecayChannel, MassHypothesis, MlScores, Vector3
from .pid import make_dstar, make_kaon, make_lambda_c, make_pion, make_proton


@dataclass(frozen=True)
class ResolvedHypothesis:
    """One accepted mass hypothesis with everything needed downstream.

    `daughter_index` points into `CandidateRecord.prongs` and selects the
    daughter whose rest-frame direction defines the decay angles.
    `prong_masses` is the mass assignment of all prongs, used to recompute the
    invariant mass of rotated candidates.
    """

    hypothesis: MassHypothesis
    daughter_index: int
    daughter_mass: float
    prong_masses: tuple[float, ...]
    inv_mass: float
    hist_mass: float
    nominal_mass: float
    ml_scores: MlScores | None = None

    def daughter_momentum(self, candidate: CandidateRecord) -> Vector3:
        return candidate.prongs[self.daughter_index]


@dataclass(frozen=True)
class HypothesisResult:
    """Outcome of checking one hypothesis: accepted with payload, or not applicable."""

    hypothesis: MassHypothesis
    resolved: ResolvedHypothesis | None = None

    @property
    def accepted(self) -> bool:
        return self.resolved is not None


class MassHypothesisResolver:
    """Enumerate the mass hypotheses applicable to a candidate."""

    def __init__(self, min_selection_flag: int = 1) -> None:
        self.min_selection_flag = min_selection_flag

    def resolve(self, candidate: CandidateRecord) -> list[ResolvedHypothesis]:
        """Return the accepted hypotheses in channel order (0, 1 or 2 entries)."""
        out: list[ResolvedHypothesis] = []
        for hypothesis in candidate.channel.mass_hypotheses:
            result = self.check(candidate, hypothesis)
            if result.resolved is not None:
                out.append(result.resolved)
        return out

    def check(self, candidate: CandidateRecord, hypothesis: MassHypothesis) -> HypothesisResult:
        if hypothesis not in candidate.channel.mass_hypotheses:
            raise ValueError(
                f"Hypothesis {hypothesis.value} does not apply to channel {candidate.channel.value}."
            )
        if candidate.channel is DecayChannel.DSTAR_TO_D0_PI:
            return HypothesisResult(hypothesis, self._resolve_dstar(candidate))
        if candidate.selection_flags.get(hypothesis, 0) < self.min_selection_flag:
            return HypothesisResult(hypothesis)
        return HypothesisResult(hypothesis, self._resolve_lc(candidate, hypothesis))

    @staticmethod
    def _resolve_dstar(candidate: CandidateRecord) -> ResolvedHypothesis:
        # Polarisation from the soft pion; the histogrammed mass is m(D*) - m(D0).
        hypothesis = MassHypothesis.DSTAR_TO_D0_PI
        inv_mass = candidate.inv_masses[hypothesis]
        assert candidate.inv_mass_d0 is not None
        pion = make_pion().mass
        return ResolvedHypothesis(
            hypothesis=hypothesis,
            daughter_index=0,
            daughter_mass=pion,
            prong_masses=(pion,),
            inv_mass=inv_mass,
            hist_mass=inv_mass - candidate.inv_mass_d0,
            nominal_mass=make_dstar().mass,
            ml_scores=candidate.ml_scores.get(hypothesis),
        )

    @staticmethod
    def _resolve_lc(candidate: CandidateRecord, hypothesis: MassHypothesis) -> ResolvedHypothesis:
        # Polarisation from the proton: prong0 under pKpi, prong2 under piKp.
        proton, kaon, pion = make_proton().mass, make_kaon().mass, make_pion().mass
        if hypothesis is MassHypothesis.PKPI:
            daughter_index = 0
            prong_masses = (proton, kaon, pion)
        else:
            daughter_index = 2
            prong_masses = (pion, kaon, proton)
        inv_mass = candidate.inv_masses[hypothesis]
        return ResolvedHypothesis(
            hypothesis=hypothesis,
            daughter_index=daughter_index,
            daughter_mass=proton,
            prong_masses=prong_masses,
            inv_mass=inv_mass,
            hist_mass=inv_mass,
            nominal_mass=make_lambda_c().mass,
            ml_scores=candidate.ml_scores.get(hypothesis),
        )
