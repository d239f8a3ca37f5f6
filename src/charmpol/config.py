"""Run configuration: processing modes, histogram toggles and axis binning."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping

import hist

from .models import DecayChannel

LOGGER = logging.getLogger("charmpol.config")


class ConfigurationError(ValueError):
    """Fatal configuration problem detected before any candidate is processed."""


class ProcessingMode(str, Enum):
    """Decay channel x classifier-mode combination of one run."""

    DSTAR = "dstar"
    DSTAR_WITH_ML = "dstar_with_ml"
    LC_TO_PKPI = "lc_to_pkpi"
    LC_TO_PKPI_WITH_ML = "lc_to_pkpi_with_ml"

    @property
    def channel(self) -> DecayChannel:
        if self in (ProcessingMode.DSTAR, ProcessingMode.DSTAR_WITH_ML):
            return DecayChannel.DSTAR_TO_D0_PI
        return DecayChannel.LC_TO_PKPI

    @property
    def with_ml(self) -> bool:
        return self in (ProcessingMode.DSTAR_WITH_ML, ProcessingMode.LC_TO_PKPI_WITH_ML)


@dataclass(frozen=True)
class AxisBinning:
    """Uniform binning of one histogram dimension."""

    bins: int
    start: float
    stop: float

    def validate(self, name: str) -> None:
        if self.bins <= 0:
            raise ConfigurationError(f"Axis '{name}' must have a positive number of bins, got {self.bins}.")
        if not self.stop > self.start:
            raise ConfigurationError(
                f"Axis '{name}' range must satisfy start < stop, got [{self.start}, {self.stop}]."
            )

    def to_axis(self, name: str, label: str) -> hist.axis.Regular:
        return hist.axis.Regular(self.bins, self.start, self.stop, name=name, label=label)


# Axis name -> (default binning, label).
AXIS_DEFINITIONS: dict[str, tuple[AxisBinning, str]] = {
    "inv_mass": (AxisBinning(200, 0.139, 0.179), "M (GeV/c^2)"),
    "pt": (AxisBinning(100, 0.0, 100.0), "p_T (GeV/c)"),
    "pz": (AxisBinning(100, -50.0, 50.0), "p_z (GeV/c)"),
    "y": (AxisBinning(20, -1.0, 1.0), "y"),
    "cos_theta_star_helicity": (AxisBinning(20, -1.0, 1.0), "cos(theta*_helicity)"),
    "cos_theta_star_production": (AxisBinning(20, -1.0, 1.0), "cos(theta*_production)"),
    "cos_theta_star_beam": (AxisBinning(20, -1.0, 1.0), "cos(theta*_beam)"),
    "cos_theta_star_random": (AxisBinning(20, -1.0, 1.0), "cos(theta*_random)"),
    "ml_bkg": (AxisBinning(100, 0.0, 1.0), "ML bkg"),
    "ml_non_prompt": (AxisBinning(100, 0.0, 1.0), "ML non-prompt"),
    "is_rotated": (AxisBinning(2, -0.5, 1.5), "0: standard candidate, 1: rotated candidate"),
}


def default_axes() -> dict[str, AxisBinning]:
    return {name: binning for name, (binning, _) in AXIS_DEFINITIONS.items()}


@dataclass(frozen=True)
class PolarisationConfig:
    """All options recognised by a polarisation run.

    Exactly one `process_*` switch must be enabled and at least one of the
    four `activate_*` histogram toggles must be true; `validate` enforces both.
    """

    selection_flag_dstar: bool = True
    selection_flag_lc: int = 1
    n_bkg_rotations: int = 0
    activate_helicity: bool = True
    activate_production: bool = True
    activate_beam: bool = True
    activate_random: bool = True
    process_dstar: bool = True
    process_dstar_with_ml: bool = False
    process_lc_to_pkpi: bool = False
    process_lc_to_pkpi_with_ml: bool = False
    isotropic_random_axis: bool = False
    seed: int | None = None
    axes: Mapping[str, AxisBinning] = field(default_factory=default_axes)

    @property
    def enabled_modes(self) -> list[ProcessingMode]:
        switches = {
            ProcessingMode.DSTAR: self.process_dstar,
            ProcessingMode.DSTAR_WITH_ML: self.process_dstar_with_ml,
            ProcessingMode.LC_TO_PKPI: self.process_lc_to_pkpi,
            ProcessingMode.LC_TO_PKPI_WITH_ML: self.process_lc_to_pkpi_with_ml,
        }
        return [mode for mode, enabled in switches.items() if enabled]

    @property
    def processing_mode(self) -> ProcessingMode:
        """The single enabled processing mode (raises if the count is not one)."""
        modes = self.enabled_modes
        if len(modes) > 1:
            raise ConfigurationError(
                "Only one processing mode should be enabled at a time, got: "
                + ", ".join(m.value for m in modes)
            )
        if not modes:
            raise ConfigurationError("No processing mode enabled.")
        return modes[0]

    def binning(self, axis_name: str) -> AxisBinning:
        try:
            return self.axes[axis_name]
        except KeyError:
            return AXIS_DEFINITIONS[axis_name][0]

    def axis(self, axis_name: str) -> hist.axis.Regular:
        """Build the configured `hist` axis for one histogram dimension."""
        label = AXIS_DEFINITIONS[axis_name][1]
        return self.binning(axis_name).to_axis(axis_name, label)

    def with_overrides(self, **changes: object) -> "PolarisationConfig":
        """Return a copy with selected options replaced (`None` values are ignored)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def validate(self) -> ProcessingMode:
        """Check the configuration and return the active processing mode."""
        mode = self.processing_mode
        toggles = (self.activate_helicity, self.activate_production, self.activate_beam, self.activate_random)
        if not any(toggles):
            raise ConfigurationError("No output histogram enabled.")
        if self.n_bkg_rotations < 0:
            raise ConfigurationError(
                f"Number of background rotations must be non-negative, got {self.n_bkg_rotations}."
            )
        unknown = sorted(set(self.axes) - set(AXIS_DEFINITIONS))
        if unknown:
            raise ConfigurationError(f"Unknown histogram axes in configuration: {', '.join(unknown)}.")
        for name in AXIS_DEFINITIONS:
            self.binning(name).validate(name)
        if self.n_bkg_rotations > 0 and not mode.channel.supports_rotation:
            LOGGER.warning(
                "n_bkg_rotations=%d ignored: channel %s does not support rotational background",
                self.n_bkg_rotations,
                mode.channel.value,
            )
        return mode
