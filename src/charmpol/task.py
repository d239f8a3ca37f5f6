"""Per-candidate polarisation pipeline: resolve, rotate, compute angles, fill."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from multiprocessing import Pool
from typing import Iterable, Sequence

import numpy as np

from .config import ConfigurationError, PolarisationConfig, ProcessingMode
from .histograms import HistogramAggregator
from .hypotheses import MassHypothesisResolver
from .models import CandidateRecord, DecayChannel, MlScores, ObservableTuple
from .observables import AngularObservableEngine
from .rotation import RotationalBackgroundGenerator

LOGGER = logging.getLogger("charmpol.task")

# Filled on the classifier axes when a candidate carries no score triple.
MISSING_ML_SCORES: MlScores = (-1.0, -1.0, -1.0)


@dataclass(frozen=True)
class ChannelHandler:
    """Processing strategy for one (decay channel, classifier mode) combination."""

    channel: DecayChannel
    with_ml: bool
    rotate: bool

    def ml_scores(self, scores: MlScores | None) -> MlScores | None:
        if not self.with_ml:
            return None
        return scores if scores is not None else MISSING_ML_SCORES


HANDLERS: dict[ProcessingMode, ChannelHandler] = {
    ProcessingMode.DSTAR: ChannelHandler(DecayChannel.DSTAR_TO_D0_PI, with_ml=False, rotate=False),
    ProcessingMode.DSTAR_WITH_ML: ChannelHandler(DecayChannel.DSTAR_TO_D0_PI, with_ml=True, rotate=False),
    ProcessingMode.LC_TO_PKPI: ChannelHandler(DecayChannel.LC_TO_PKPI, with_ml=False, rotate=True),
    ProcessingMode.LC_TO_PKPI_WITH_ML: ChannelHandler(DecayChannel.LC_TO_PKPI, with_ml=True, rotate=True),
}


@dataclass(frozen=True)
class TaskSummary:
    """Bookkeeping of one pass over a candidate stream."""

    n_candidates: int
    n_skipped: int
    n_observables: int


class PolarisationTask:
    """Drive the resolver, rotation generator, angle engine and aggregator.

    The aggregator is owned by the task and exposed as `aggregator`; every
    call to `process_candidate` fills it in place.
    """

    def __init__(
        self,
        config: PolarisationConfig,
        rng: np.random.Generator | None = None,
        aggregator: HistogramAggregator | None = None,
    ) -> None:
        self.config = config
        self.mode = config.validate()
        self.handler = HANDLERS[self.mode]
        if aggregator is None:
            aggregator = HistogramAggregator(config, mode=self.mode)
        elif aggregator.mode is not self.mode:
            raise ConfigurationError(
                f"Aggregator was built for mode {aggregator.mode.value}, task runs {self.mode.value}."
            )
        self.aggregator = aggregator
        self.resolver = MassHypothesisResolver(min_selection_flag=config.selection_flag_lc)
        self.rotations = RotationalBackgroundGenerator(
            config.n_bkg_rotations if self.handler.rotate else 0
        )
        if rng is None:
            rng = np.random.default_rng(config.seed)
        self.engine = AngularObservableEngine(rng=rng, isotropic=config.isotropic_random_axis)

    def accepts(self, candidate: CandidateRecord) -> bool:
        """Channel preselection applied before any hypothesis is evaluated."""
        if candidate.channel is not self.handler.channel:
            return False
        flags = candidate.selection_flags
        if candidate.channel is DecayChannel.DSTAR_TO_D0_PI:
            return bool(flags.get(candidate.channel.mass_hypotheses[0], 0)) == self.config.selection_flag_dstar
        return any(flags.get(h, 0) >= self.config.selection_flag_lc for h in candidate.channel.mass_hypotheses)

    def observables(self, candidate: CandidateRecord) -> list[ObservableTuple]:
        """Compute all observable tuples of one candidate without filling."""
        out: list[ObservableTuple] = []
        for resolved in self.resolver.resolve(candidate):
            daughter_p3 = resolved.daughter_momentum(candidate)
            for variant in self.rotations.variants(candidate, resolved):
                # The daughter is never the rotated prong.
                angles = self.engine.compute(
                    daughter_p3=daughter_p3,
                    daughter_mass=resolved.daughter_mass,
                    parent_p3=variant.p_parent,
                    parent_mass=variant.inv_mass,
                    nominal_mass=resolved.nominal_mass,
                )
                out.append(
                    ObservableTuple(
                        inv_mass=variant.hist_mass,
                        pt=angles.pt,
                        pz=angles.pz,
                        rapidity=angles.rapidity,
                        cos_theta_helicity=angles.cos_theta_helicity,
                        cos_theta_production=angles.cos_theta_production,
                        cos_theta_beam=angles.cos_theta_beam,
                        cos_theta_random=angles.cos_theta_random,
                        is_rotated=variant.is_rotated,
                        hypothesis=resolved.hypothesis,
                        rotation_index=variant.index,
                        ml_scores=self.handler.ml_scores(variant.ml_scores),
                    )
                )
        return out

    def process_candidate(self, candidate: CandidateRecord) -> list[ObservableTuple]:
        """Compute and fill the observables of one candidate; return what was filled."""
        if not self._preselect(candidate):
            return []
        return self._fill(candidate)

    def _preselect(self, candidate: CandidateRecord) -> bool:
        if self.accepts(candidate):
            return True
        LOGGER.debug("Skipping candidate %s: rejected by channel preselection", candidate.candidate_id)
        return False

    def _fill(self, candidate: CandidateRecord) -> list[ObservableTuple]:
        out = self.observables(candidate)
        for obs in out:
            self.aggregator.fill(obs)
        return out

    def process_candidates(self, candidates: Iterable[CandidateRecord]) -> TaskSummary:
        """Process a candidate stream to exhaustion."""
        n_candidates = 0
        n_skipped = 0
        n_observables = 0
        for candidate in candidates:
            n_candidates += 1
            if not self._preselect(candidate):
                n_skipped += 1
                continue
            n_observables += len(self._fill(candidate))
        summary = TaskSummary(n_candidates=n_candidates, n_skipped=n_skipped, n_observables=n_observables)
        LOGGER.info(
            "Processed %d candidates (%d skipped), %d observable tuples filled",
            summary.n_candidates,
            summary.n_skipped,
            summary.n_observables,
        )
        return summary

    def process_parallel(self, candidates: Sequence[CandidateRecord], n_workers: int) -> TaskSummary:
        """Process candidates in `n_workers` processes and merge the partial histograms.

        Each worker fills a private aggregator with its own random stream,
        spawned from the configured seed, so no bin counter is shared.
        """
        if n_workers <= 1 or len(candidates) <= 1:
            return self.process_candidates(candidates)
        chunks = [list(candidates[i::n_workers]) for i in range(n_workers)]
        seeds = np.random.SeedSequence(self.config.seed).spawn(len(chunks))
        with Pool(processes=n_workers) as pool:
            partials = pool.map(_process_chunk, [(self.config, c, s) for c, s in zip(chunks, seeds, strict=True)])
        n_candidates = n_skipped = n_observables = 0
        for aggregator, summary in partials:
            self.aggregator.merge(aggregator)
            n_candidates += summary.n_candidates
            n_skipped += summary.n_skipped
            n_observables += summary.n_observables
        LOGGER.info(
            "Merged %d partial histogram sets: %d candidates (%d skipped), %d observable tuples",
            len(partials),
            n_candidates,
            n_skipped,
            n_observables,
        )
        return TaskSummary(n_candidates=n_candidates, n_skipped=n_skipped, n_observables=n_observables)


def _process_chunk(
    args: tuple[PolarisationConfig, list[CandidateRecord], np.random.SeedSequence],
) -> tuple[HistogramAggregator, TaskSummary]:
    """Worker entry point: fill a private aggregator for one chunk of candidates."""
    config, chunk, seed = args
    task = PolarisationTask(config, rng=np.random.default_rng(seed))
    summary = task.process_candidates(chunk)
    return task.aggregator, summary
