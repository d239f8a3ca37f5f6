"""Decay-angle observables in the rest frame of the charm hadron.

The polarisation daughter is boosted into the parent rest frame and the
cosine of its direction is taken with respect to four reference axes:

- helicity: the parent momentum in the lab frame,
- production: the normal `(py, -px, 0)` to the plane of beam and parent momentum,
- beam: the lab z axis,
- random: a direction drawn per call.

Zero-length vectors are not guarded against; they propagate as NaN into the
cosines.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from .models import Vector3
from .physics import (
    boost_to_rest_frame,
    cos_angle,
    cos_angle_to_unit,
    momentum_to_lorentz,
    rapidity,
    spherical_direction,
    transverse_momentum,
)

BEAM_AXIS: Vector3 = (0.0, 0.0, 1.0)


@dataclass(frozen=True)
class DecayAngles:
    """Reference-axis cosines plus parent kinematics for one candidate variant."""

    cos_theta_helicity: float
    cos_theta_production: float
    cos_theta_beam: float
    cos_theta_random: float
    pt: float
    pz: float
    rapidity: float


class AngularObservableEngine:
    """Compute the four decay-angle cosines of a daughter in its parent rest frame.

    By default the random axis is drawn with azimuth uniform in `[0, 2pi)` and
    polar angle uniform in `[0, pi]`. That is not uniform on the sphere (it
    over-populates the poles); `isotropic=True` samples `cos(theta)` uniformly
    in `[-1, 1]` instead.
    """

    def __init__(self, rng: np.random.Generator | None = None, isotropic: bool = False) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()
        self.isotropic = isotropic

    def random_axis(self) -> Vector3:
        """Draw one random reference direction."""
        phi = self.rng.uniform(0.0, 2.0 * math.pi)
        if self.isotropic:
            theta = math.acos(self.rng.uniform(-1.0, 1.0))
        else:
            theta = self.rng.uniform(0.0, math.pi)
        return spherical_direction(theta, phi)

    def compute(
        self,
        daughter_p3: Vector3,
        daughter_mass: float,
        parent_p3: Vector3,
        parent_mass: float,
        nominal_mass: float,
        random_axis: Vector3 | None = None,
    ) -> DecayAngles:
        """Boost the daughter into the parent rest frame and build the observables.

        `parent_mass` is the reconstructed (possibly rotated) invariant mass used
        for the boost; `nominal_mass` is the PDG mass used for the rapidity.
        """
        parent = momentum_to_lorentz(parent_p3, parent_mass)
        daughter = momentum_to_lorentz(daughter_p3, daughter_mass)
        d = boost_to_rest_frame(daughter, parent).p3

        if random_axis is None:
            random_axis = self.random_axis()
        helicity_axis = parent.p3
        production_axis = (parent_p3[1], -parent_p3[0], 0.0)

        return DecayAngles(
            cos_theta_helicity=cos_angle(helicity_axis, d),
            cos_theta_production=cos_angle(production_axis, d),
            cos_theta_beam=cos_angle_to_unit(BEAM_AXIS, d),
            cos_theta_random=cos_angle_to_unit(random_axis, d),
            pt=transverse_momentum(parent_p3),
            pz=parent_p3[2],
            rapidity=rapidity(parent_p3, nominal_mass),
        )
