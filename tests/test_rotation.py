"""Unit tests for the rotational-background ensemble."""

from __future__ import annotations

import math
import unittest

from charmpol import (
    CandidateRecord,
    MassHypothesisResolver,
    RotationalBackgroundGenerator,
    make_kaon,
    make_pion,
    make_proton,
)
from charmpol.physics import invariant_mass, sum_momenta

PRONGS = ((1.2, 0.3, 2.0), (-0.4, 0.9, 1.1), (0.2, -0.6, 0.7))


def _lc(ml_scores=None) -> CandidateRecord:
    """Build a Lambda_c candidate whose stored masses match its prongs."""
    proton, kaon, pion = make_proton().mass, make_kaon().mass, make_pion().mass
    return CandidateRecord.from_lc_to_pkpi(
        prongs=PRONGS,
        inv_mass_pkpi=invariant_mass(PRONGS, (proton, kaon, pion)),
        inv_mass_pikp=invariant_mass(PRONGS, (pion, kaon, proton)),
        selection_pkpi=1,
        selection_pikp=1,
        ml_scores_pkpi=ml_scores,
    )


def _dstar() -> CandidateRecord:
    return CandidateRecord.from_dstar(
        soft_pion=(0.3, 0.1, 0.2),
        p_dstar=(4.0, 1.0, 2.0),
        soft_pion_sign=-1,
        inv_mass_dstar=2.010,
        inv_mass_anti_dstar=2.012,
        inv_mass_d0=1.865,
        inv_mass_d0bar=1.866,
        selection_flag=1,
    )


class TestRotationalBackground(unittest.TestCase):
    """Validate variant multiplicity, rotation angles and recomputed kinematics."""

    def test_variant_count_is_n_plus_one(self) -> None:
        candidate = _lc()
        pkpi = MassHypothesisResolver().resolve(candidate)[0]
        for n in (0, 1, 2, 5):
            variants = RotationalBackgroundGenerator(n).variants(candidate, pkpi)
            self.assertEqual(len(variants), n + 1)
            self.assertEqual([v.index for v in variants], list(range(n + 1)))

    def test_channel_without_prongs_is_never_rotated(self) -> None:
        """D*+ yields only the unrotated candidate whatever the rotation count."""
        candidate = _dstar()
        [resolved] = MassHypothesisResolver().resolve(candidate)
        [variant] = RotationalBackgroundGenerator(4).variants(candidate, resolved)
        self.assertEqual(variant.is_rotated, 0)
        self.assertEqual(variant.p_parent, candidate.p_parent)
        self.assertAlmostEqual(variant.hist_mass, 2.012 - 1.866, places=12)

    def test_rotation_angles(self) -> None:
        """N=1 rotates by pi; N=2 by 2pi/3 and 4pi/3."""
        self.assertEqual(RotationalBackgroundGenerator(1).angle(1), math.pi)
        gen = RotationalBackgroundGenerator(2)
        self.assertAlmostEqual(gen.angle(1), 2.0 * math.pi / 3.0, places=12)
        self.assertAlmostEqual(gen.angle(2), 4.0 * math.pi / 3.0, places=12)
        self.assertEqual(RotationalBackgroundGenerator(0).angle_step, 2.0 * math.pi)

    def test_only_kaon_transverse_momentum_rotates(self) -> None:
        """Prong1 keeps pz and pT; the other prongs are untouched."""
        candidate = _lc()
        pkpi = MassHypothesisResolver().resolve(candidate)[0]
        for variant in RotationalBackgroundGenerator(3).variants(candidate, pkpi):
            self.assertEqual(variant.prongs[0], PRONGS[0])
            self.assertEqual(variant.prongs[2], PRONGS[2])
            self.assertEqual(variant.prongs[1][2], PRONGS[1][2])
            self.assertAlmostEqual(
                math.hypot(variant.prongs[1][0], variant.prongs[1][1]),
                math.hypot(PRONGS[1][0], PRONGS[1][1]),
                places=12,
            )

    def test_rotation_by_pi_flips_kaon(self) -> None:
        candidate = _lc()
        pkpi = MassHypothesisResolver().resolve(candidate)[0]
        rotated = RotationalBackgroundGenerator(1).rotated(candidate, pkpi, 1)
        self.assertAlmostEqual(rotated.prongs[1][0], -PRONGS[1][0], places=12)
        self.assertAlmostEqual(rotated.prongs[1][1], -PRONGS[1][1], places=12)
        self.assertEqual(rotated.is_rotated, 1)

    def test_rotated_variant_recomputes_parent_and_mass(self) -> None:
        """Rotated parents are the prong sum and the mass uses the active assignment."""
        candidate = _lc()
        pkpi, pikp = MassHypothesisResolver().resolve(candidate)
        gen = RotationalBackgroundGenerator(2)
        for resolved in (pkpi, pikp):
            variant = gen.rotated(candidate, resolved, 2)
            self.assertEqual(variant.p_parent, sum_momenta(variant.prongs))
            self.assertAlmostEqual(
                variant.inv_mass, invariant_mass(variant.prongs, resolved.prong_masses), places=12
            )
            self.assertEqual(variant.hist_mass, variant.inv_mass)
            self.assertNotAlmostEqual(variant.inv_mass, resolved.inv_mass, places=6)

    def test_unrotated_variant_keeps_candidate_mass(self) -> None:
        """Variant 0 has flag 0 and its recomputed mass matches the stored one."""
        candidate = _lc()
        for resolved in MassHypothesisResolver().resolve(candidate):
            for n in (0, 1, 3):
                variant = RotationalBackgroundGenerator(n).variants(candidate, resolved)[0]
                self.assertEqual(variant.is_rotated, 0)
                self.assertEqual(variant.inv_mass, resolved.inv_mass)
                self.assertAlmostEqual(
                    invariant_mass(variant.prongs, resolved.prong_masses), resolved.inv_mass, places=10
                )

    def test_rotated_variants_inherit_scores(self) -> None:
        candidate = _lc(ml_scores=(0.05, 0.8, 0.15))
        pkpi = MassHypothesisResolver().resolve(candidate)[0]
        variants = RotationalBackgroundGenerator(3).variants(candidate, pkpi)
        self.assertTrue(all(v.ml_scores == (0.05, 0.8, 0.15) for v in variants))

    def test_invalid_rotation_configuration_raises(self) -> None:
        with self.assertRaises(ValueError):
            RotationalBackgroundGenerator(-1)
        with self.assertRaises(ValueError):
            RotationalBackgroundGenerator(2).angle(3)


if __name__ == "__main__":
    unittest.main()
