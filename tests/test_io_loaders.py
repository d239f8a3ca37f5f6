"""Unit tests for JSON input loaders and histogram table export."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

import pandas as pd

from charmpol import (
    AxisBinning,
    ConfigurationError,
    DecayChannel,
    HistogramAggregator,
    MassHypothesis,
    PolarisationConfig,
    ProcessingMode,
    ReferenceAxis,
    make_kaon,
    make_pion,
    make_proton,
)
from charmpol.io import load_candidates_json, load_config_json, write_histograms_table
from charmpol.physics import invariant_mass


def _write_json(tmpdir: str, name: str, payload: object) -> Path:
    path = Path(tmpdir) / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestIOLoaders(unittest.TestCase):
    """Validate parsing of candidate containers and run options."""

    def test_load_candidates_json_parses_both_channels(self) -> None:
        """Lambda_c masses are computed when missing; D*+ picks antiparticle masses for negative pions."""
        prongs = [[1.0, 0.2, 0.5], [-0.3, 0.8, 0.2], [0.4, -0.5, 1.0]]
        payload = {
            "candidates": [
                {
                    "candidate_id": "lc42",
                    "channel": "lc_to_pkpi",
                    "prongs": prongs,
                    "selection": {"pkpi": 1, "pikp": 0},
                    "ml_scores": {"pkpi": [0.1, 0.6, 0.3]},
                },
                {
                    "channel": "dstar_to_d0pi",
                    "soft_pion": [0.3, 0.1, 0.2],
                    "p_parent": [4.0, 1.0, 2.0],
                    "soft_pion_sign": -1,
                    "inv_mass_dstar": 2.010,
                    "inv_mass_anti_dstar": 2.012,
                    "inv_mass_d0": 1.865,
                    "inv_mass_d0bar": 1.866,
                    "selection": 1,
                },
            ]
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            lc, dstar = load_candidates_json(_write_json(tmpdir, "candidates.json", payload))

        self.assertEqual(lc.candidate_id, "lc42")
        self.assertIs(lc.channel, DecayChannel.LC_TO_PKPI)
        proton, kaon, pion = make_proton().mass, make_kaon().mass, make_pion().mass
        as_tuples = [tuple(p) for p in prongs]
        self.assertAlmostEqual(
            lc.inv_masses[MassHypothesis.PKPI], invariant_mass(as_tuples, (proton, kaon, pion)), places=12
        )
        self.assertAlmostEqual(
            lc.inv_masses[MassHypothesis.PIKP], invariant_mass(as_tuples, (pion, kaon, proton)), places=12
        )
        self.assertAlmostEqual(lc.p_parent[2], 1.7, places=12)
        self.assertEqual(lc.selection_flags[MassHypothesis.PIKP], 0)
        self.assertEqual(lc.ml_scores, {MassHypothesis.PKPI: (0.1, 0.6, 0.3)})

        self.assertEqual(dstar.candidate_id, "cand1")
        self.assertIs(dstar.channel, DecayChannel.DSTAR_TO_D0_PI)
        self.assertEqual(dstar.inv_masses[MassHypothesis.DSTAR_TO_D0_PI], 2.012)
        self.assertEqual(dstar.inv_mass_d0, 1.866)
        self.assertEqual(dstar.prongs, ((0.3, 0.1, 0.2),))

    def test_malformed_candidates_are_rejected(self) -> None:
        bad_entries = [
            {"channel": "lc_to_pk0s", "prongs": []},
            {"channel": "lc_to_pkpi", "prongs": [[0, 0, 1]], "selection": {}},
            {"channel": "lc_to_pkpi", "prongs": [[0, 0, 1]] * 3},
            {"channel": "lc_to_pkpi", "prongs": [[0, 0, 1]] * 3, "selection": {}, "ml_scores": {"pkpi": [0.5]}},
            {"channel": "dstar_to_d0pi", "soft_pion": [0, 0, 1], "p_parent": [0, 0, 3]},
            {"prongs": []},
        ]
        with tempfile.TemporaryDirectory() as tmpdir:
            for idx, entry in enumerate(bad_entries):
                path = _write_json(tmpdir, f"bad{idx}.json", {"candidates": [entry]})
                with self.assertRaises(ValueError, msg=repr(entry)):
                    load_candidates_json(path)
            with self.assertRaises(ValueError):
                load_candidates_json(_write_json(tmpdir, "empty.json", {"events": []}))

    def test_load_config_json_parses_modes_and_axes(self) -> None:
        payload = {
            "process_dstar": False,
            "process_lc_to_pkpi_with_ml": True,
            "n_bkg_rotations": 4,
            "activate_random": False,
            "seed": 11,
            "axes": {
                "inv_mass": [120, 2.1, 2.5],
                "pt": {"bins": 50, "start": 0.0, "stop": 50.0},
            },
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            config = load_config_json(_write_json(tmpdir, "config.json", payload))

        self.assertEqual(config.validate(), ProcessingMode.LC_TO_PKPI_WITH_ML)
        self.assertEqual(config.n_bkg_rotations, 4)
        self.assertFalse(config.activate_random)
        self.assertEqual(config.seed, 11)
        self.assertEqual(config.binning("inv_mass"), AxisBinning(120, 2.1, 2.5))
        self.assertEqual(config.binning("pt"), AxisBinning(50, 0.0, 50.0))
        self.assertEqual(config.binning("y"), AxisBinning(20, -1.0, 1.0))

    def test_unknown_config_keys_are_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ConfigurationError):
                load_config_json(_write_json(tmpdir, "typo.json", {"n_bkg_rotation": 3}))
            with self.assertRaises(ConfigurationError):
                load_config_json(_write_json(tmpdir, "axis.json", {"axes": {"eta": [10, 0, 1]}}))


class TestHistogramTable(unittest.TestCase):
    """Validate the flat table written for non-empty histogram bins."""

    def test_csv_table_has_one_row_per_filled_bin(self) -> None:
        config = PolarisationConfig(activate_production=False, activate_beam=False, activate_random=False)
        aggregator = HistogramAggregator(config)
        histogram = aggregator[ReferenceAxis.HELICITY]
        histogram.fill(0.145, 5.0, 1.0, 0.1, 0.5)
        histogram.fill(0.145, 5.0, 1.0, 0.1, 0.5)
        histogram.fill(0.170, 12.0, -3.0, -0.4, -0.9)

        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "histograms.csv"
            write_histograms_table(out, aggregator.histograms)
            df = pd.read_csv(out)

        self.assertEqual(len(df), 2)
        self.assertEqual(
            list(df.columns),
            ["histogram", "inv_mass", "pt", "pz", "y", "cos_theta_star_helicity", "count"],
        )
        self.assertEqual(set(df["histogram"]), {"hSparseCharmPolarisationHelicity"})
        self.assertEqual(int(df["count"].sum()), 3)
        self.assertEqual(int(df["count"].max()), 2)

    def test_unsupported_suffix_is_rejected(self) -> None:
        aggregator = HistogramAggregator(PolarisationConfig())
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ValueError):
                write_histograms_table(Path(tmpdir) / "histograms.root", aggregator.histograms)


if __name__ == "__main__":
    unittest.main()
