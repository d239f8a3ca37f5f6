"""Sparse multi-dimensional counting histograms and the per-axis aggregator.

The polarisation histograms have up to eight dimensions, far too many bins
for dense storage, so counts are kept in a `Counter` keyed by the tuple of
bin indices while binning itself is delegated to `hist.axis.Regular`.
Index `-1` is the underflow bin and index `size` the overflow bin of an
axis; NaN values end up in the overflow bin.
"""

from __future__ import annotations

import logging
from collections import Counter
from enum import Enum
from typing import Iterator, Sequence

import hist
import numpy as np

from .config import PolarisationConfig, ProcessingMode
from .models import ObservableTuple

LOGGER = logging.getLogger("charmpol.histograms")

KINEMATIC_AXES = ("inv_mass", "pt", "pz", "y")
ML_AXES = ("ml_bkg", "ml_non_prompt")
ROTATION_AXIS = "is_rotated"


class ReferenceAxis(str, Enum):
    """Reference directions for the decay-angle cosine, one histogram each."""

    HELICITY = "helicity"
    PRODUCTION = "production"
    BEAM = "beam"
    RANDOM = "random"

    @property
    def hist_name(self) -> str:
        return f"hSparseCharmPolarisation{self.value.capitalize()}"

    @property
    def cos_axis_name(self) -> str:
        return f"cos_theta_star_{self.value}"

    def cosine(self, obs: ObservableTuple) -> float:
        return getattr(obs, f"cos_theta_{self.value}")


class SparseHistogram:
    """Named sparse histogram over a fixed tuple of regular axes."""

    def __init__(self, name: str, title: str, axes: Sequence[hist.axis.Regular]) -> None:
        self.name = name
        self.title = title
        self.axes = tuple(axes)
        self.counts: Counter[tuple[int, ...]] = Counter()

    @property
    def ndim(self) -> int:
        return len(self.axes)

    @property
    def axis_names(self) -> tuple[str, ...]:
        return tuple(ax.name for ax in self.axes)

    @property
    def entries(self) -> int:
        """Total number of fills, flow bins included."""
        return sum(self.counts.values())

    def bin_index(self, values: Sequence[float]) -> tuple[int, ...]:
        if len(values) != self.ndim:
            raise ValueError(
                f"Histogram '{self.name}' has {self.ndim} axes, got {len(values)} values."
            )
        return tuple(int(ax.index(v)) for ax, v in zip(self.axes, values, strict=True))

    def fill(self, *values: float) -> tuple[int, ...]:
        """Increment the bin containing `values` by one and return its index."""
        key = self.bin_index(values)
        self.counts[key] += 1
        return key

    def count(self, *values: float) -> int:
        """Return the content of the bin containing `values`."""
        return self.counts.get(self.bin_index(values), 0)

    def merge(self, other: "SparseHistogram") -> None:
        """Add the counts of a histogram with identical binning."""
        if other.axis_names != self.axis_names or any(
            not np.array_equal(a.edges, b.edges) for a, b in zip(self.axes, other.axes, strict=True)
        ):
            raise ValueError(f"Cannot merge histogram '{other.name}' into '{self.name}': binning differs.")
        self.counts.update(other.counts)

    def iter_bins(self) -> Iterator[tuple[tuple[float, ...], int]]:
        """Yield `(lower bin edges, count)` for every non-empty bin.

        Underflow bins report `-inf` and overflow bins the upper axis edge.
        """
        for key, count in self.counts.items():
            edges = tuple(_lower_edge(ax, idx) for ax, idx in zip(self.axes, key, strict=True))
            yield edges, count

    def to_hist(self, *axis_names: str) -> hist.Hist:
        """Project onto a dense `hist.Hist` over the selected axes (all by default)."""
        names = axis_names or self.axis_names
        try:
            positions = [self.axis_names.index(n) for n in names]
        except ValueError as exc:
            raise ValueError(
                f"Unknown axis in {names!r}; histogram '{self.name}' has {self.axis_names!r}."
            ) from exc
        axes = [self.axes[p] for p in positions]
        out = hist.Hist(
            *(
                hist.axis.Regular(ax.size, ax.edges[0], ax.edges[-1], name=ax.name, label=ax.label)
                for ax in axes
            ),
            storage=hist.storage.Double(),
        )
        if not self.counts:
            return out
        keys = np.array(list(self.counts.keys()), dtype=int)
        weights = np.array(list(self.counts.values()), dtype=float)
        columns = [_bin_representatives(ax, keys[:, p]) for ax, p in zip(axes, positions, strict=True)]
        out.fill(*columns, weight=weights)
        return out


class HistogramAggregator:
    """Route observable tuples into one sparse histogram per enabled reference axis.

    The axis set of every histogram is the kinematic block (mass, pT, pz, y),
    the reference-axis cosine, then the two classifier-score axes in ML mode
    and the rotated-candidate flag for channels with rotational background.
    """

    def __init__(self, config: PolarisationConfig, mode: ProcessingMode | None = None) -> None:
        self.mode: ProcessingMode = mode if mode is not None else config.validate()
        self.with_ml = self.mode.with_ml
        self.with_rotation_axis = self.mode.channel.supports_rotation
        self.n_fills = 0
        toggles = {
            ReferenceAxis.HELICITY: config.activate_helicity,
            ReferenceAxis.PRODUCTION: config.activate_production,
            ReferenceAxis.BEAM: config.activate_beam,
            ReferenceAxis.RANDOM: config.activate_random,
        }
        self._histograms: dict[ReferenceAxis, SparseHistogram] = {}
        for ref, enabled in toggles.items():
            if not enabled:
                continue
            LOGGER.info("Histogram with cosThetaStar w.r.t. %s axis active", ref.value)
            names = self.axis_names(ref)
            title = f"Polarisation studies with cosThetaStar w.r.t. {ref.value} axis"
            if self.with_ml:
                title += " and BDT scores"
            self._histograms[ref] = SparseHistogram(
                name=ref.hist_name,
                title=title,
                axes=[config.axis(n) for n in names],
            )

    def axis_names(self, ref: ReferenceAxis) -> tuple[str, ...]:
        names = KINEMATIC_AXES + (ref.cos_axis_name,)
        if self.with_ml:
            names += ML_AXES
        if self.with_rotation_axis:
            names += (ROTATION_AXIS,)
        return names

    @property
    def reference_axes(self) -> tuple[ReferenceAxis, ...]:
        return tuple(self._histograms)

    @property
    def histograms(self) -> dict[str, SparseHistogram]:
        """Enabled histograms keyed by their output name."""
        return {h.name: h for h in self._histograms.values()}

    def __getitem__(self, ref: ReferenceAxis) -> SparseHistogram:
        return self._histograms[ref]

    def values_for(self, ref: ReferenceAxis, obs: ObservableTuple) -> tuple[float, ...]:
        """Axis tuple of `obs` for the histogram of reference axis `ref`."""
        values: tuple[float, ...] = (obs.inv_mass, obs.pt, obs.pz, obs.rapidity, ref.cosine(obs))
        if self.with_ml:
            values += (obs.ml_bkg, obs.ml_non_prompt)
        if self.with_rotation_axis:
            values += (float(obs.is_rotated),)
        return values

    def fill(self, obs: ObservableTuple) -> None:
        """Count `obs` once in every enabled histogram."""
        for ref, histogram in self._histograms.items():
            histogram.fill(*self.values_for(ref, obs))
        self.n_fills += 1

    def merge(self, other: "HistogramAggregator") -> None:
        """Add partial histograms filled by another aggregator of the same layout."""
        if other.mode is not self.mode or other.reference_axes != self.reference_axes:
            raise ValueError("Cannot merge aggregators with different modes or histogram sets.")
        for ref, histogram in self._histograms.items():
            histogram.merge(other._histograms[ref])
        self.n_fills += other.n_fills


def _lower_edge(ax: hist.axis.Regular, idx: int) -> float:
    if idx < 0:
        return float("-inf")
    return float(ax.edges[min(idx, ax.size)])


def _bin_representatives(ax: hist.axis.Regular, indices: np.ndarray) -> np.ndarray:
    """Map bin indices to values that fall in the same bin (flow bins via +-inf)."""
    centers = np.asarray(ax.centers)
    inner = centers[np.clip(indices, 0, ax.size - 1)]
    return np.where(indices < 0, -np.inf, np.where(indices >= ax.size, np.inf, inner))
