"""Unit tests for four-vector boosts, beam-axis rotations and angle helpers."""

from __future__ import annotations

import math
import unittest

from charmpol import LorentzVector
from charmpol.physics import (
    boost,
    boost_to_rest_frame,
    cos_angle,
    cos_angle_to_unit,
    invariant_mass,
    momentum_to_lorentz,
    rapidity,
    rotate_around_beam,
    sum_momenta,
)


class TestPhysicsHelpers(unittest.TestCase):
    """Validate Lorentz-boost and rotation math used by the observables."""

    def assertVectorAlmostEqual(self, a, b, places: int = 10) -> None:
        for x, y in zip(a, b, strict=True):
            self.assertAlmostEqual(x, y, places=places)

    def test_boost_round_trip_reproduces_original(self) -> None:
        """Boosting into a rest frame and back must give the original 4-vector."""
        parent = momentum_to_lorentz((1.3, -0.7, 4.2), 2.28646)
        daughter = momentum_to_lorentz((0.9, -0.1, 2.5), 0.93827208816)

        in_rest = boost_to_rest_frame(daughter, parent)
        back = boost(in_rest, parent.beta_vector)

        self.assertVectorAlmostEqual(
            (back.px, back.py, back.pz, back.e),
            (daughter.px, daughter.py, daughter.pz, daughter.e),
        )

    def test_parent_is_at_rest_in_its_own_frame(self) -> None:
        """A system boosted to its own rest frame has zero momentum and E = m."""
        parent = momentum_to_lorentz((2.0, 1.0, -3.0), 2.01026)
        rest = boost_to_rest_frame(parent, parent)
        self.assertVectorAlmostEqual(rest.p3, (0.0, 0.0, 0.0))
        self.assertAlmostEqual(rest.e, 2.01026, places=10)

    def test_boost_preserves_invariant_mass(self) -> None:
        """The invariant mass is frame independent."""
        parent = momentum_to_lorentz((0.5, 0.5, 8.0), 1.9)
        p4 = LorentzVector(0.3, -0.2, 1.1, 1.5)
        boosted = boost_to_rest_frame(p4, parent)
        self.assertAlmostEqual(boosted.mass, p4.mass, places=10)

    def test_rotation_keeps_longitudinal_momentum_and_pt(self) -> None:
        """Rotations around the beam axis act only in the transverse plane."""
        p3 = (0.8, -0.3, 2.7)
        rotated = rotate_around_beam(p3, 2.0 * math.pi / 3.0)
        self.assertEqual(rotated[2], p3[2])
        self.assertAlmostEqual(math.hypot(rotated[0], rotated[1]), math.hypot(p3[0], p3[1]), places=12)

    def test_rotation_by_pi_flips_transverse_components(self) -> None:
        rotated = rotate_around_beam((1.0, 2.0, 3.0), math.pi)
        self.assertVectorAlmostEqual(rotated, (-1.0, -2.0, 3.0))

    def test_invariant_mass_of_back_to_back_pair(self) -> None:
        """Two back-to-back pions with p = 1 GeV have m = 2 * sqrt(1 + m_pi^2)."""
        m_pi = 0.13957039
        mass = invariant_mass([(1.0, 0.0, 0.0), (-1.0, 0.0, 0.0)], [m_pi, m_pi])
        self.assertAlmostEqual(mass, 2.0 * math.sqrt(1.0 + m_pi * m_pi), places=12)

    def test_invariant_mass_requires_matching_mass_list(self) -> None:
        with self.assertRaises(ValueError):
            invariant_mass([(1.0, 0.0, 0.0)], [0.1, 0.2])

    def test_rapidity_is_zero_without_longitudinal_momentum(self) -> None:
        self.assertAlmostEqual(rapidity((3.0, 1.0, 0.0), 2.28646), 0.0, places=12)

    def test_rapidity_sign_follows_pz(self) -> None:
        self.assertGreater(rapidity((0.0, 0.0, 2.0), 1.0), 0.0)
        self.assertLess(rapidity((0.0, 0.0, -2.0), 1.0), 0.0)

    def test_cos_angle_of_zero_vector_is_nan(self) -> None:
        """Degenerate vectors propagate NaN instead of raising."""
        self.assertTrue(math.isnan(cos_angle((0.0, 0.0, 0.0), (1.0, 0.0, 0.0))))
        self.assertTrue(math.isnan(cos_angle_to_unit((0.0, 0.0, 1.0), (0.0, 0.0, 0.0))))

    def test_sum_momenta(self) -> None:
        self.assertEqual(sum_momenta([(1.0, 2.0, 3.0), (-1.0, 0.5, 1.0)]), (0.0, 2.5, 4.0))


if __name__ == "__main__":
    unittest.main()
