"""Command-line interface for filling polarisation histograms from candidate inputs."""

from __future__ import annotations

import argparse
import importlib.util
import logging
from pathlib import Path
from typing import Any

from .config import PolarisationConfig
from .histograms import SparseHistogram
from .io import load_candidates_json, load_config_json, write_histograms_table
from .task import PolarisationTask

LOGGER = logging.getLogger("charmpol.cli")


def build_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="charm-polarisation",
        description="Fill decay-angle histograms of charm-hadron candidates, with optional rotational background.",
    )
    parser.add_argument("--candidates", required=True, help="Input JSON with key 'candidates'.")
    parser.add_argument(
        "--config",
        default=None,
        help="Run options JSON (processing mode, histogram toggles, axis binning). Defaults apply if omitted.",
    )
    parser.add_argument(
        "--n-bkg-rotations",
        type=int,
        default=None,
        help="Override the number of rotated copies per candidate.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Override the random-axis seed.")
    parser.add_argument("--workers", type=int, default=1, help="Number of worker processes.")
    parser.add_argument(
        "--out",
        required=True,
        help="Output table file for non-empty histogram bins (.parquet, .csv, .pkl).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    parser.add_argument(
        "--custom-script",
        default=None,
        help="Path to Python file with process(histograms, context) function.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: load inputs, fill histograms, write table, optional custom hook."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    config = load_config_json(args.config) if args.config else PolarisationConfig()
    config = config.with_overrides(n_bkg_rotations=args.n_bkg_rotations, seed=args.seed)
    candidates = load_candidates_json(args.candidates)

    task = PolarisationTask(config)
    LOGGER.info(
        "Running mode=%s rotations=%d candidates=%d input=%s",
        task.mode.value,
        task.rotations.n_rotations,
        len(candidates),
        args.candidates,
    )
    summary = task.process_parallel(candidates, n_workers=args.workers)
    histograms = task.aggregator.histograms
    write_histograms_table(args.out, histograms)
    LOGGER.info("Wrote %d histograms to %s", len(histograms), args.out)

    if args.custom_script:
        run_custom_script(
            script_path=args.custom_script,
            histograms=histograms,
            context={
                "candidates_path": args.candidates,
                "config_path": args.config,
                "config": config,
                "summary": summary,
                "output_path": args.out,
            },
        )
    return 0


def run_custom_script(
    script_path: str, histograms: dict[str, SparseHistogram], context: dict[str, Any]
) -> None:
    """Execute user-supplied post-processing callback `process(histograms, context)`."""
    module = _load_module(script_path)
    process = getattr(module, "process", None)
    if process is None or not callable(process):
        raise ValueError(
            f"Custom script {script_path} must define callable process(histograms, context)."
        )
    process(histograms, context)


def _load_module(script_path: str):
    """Import a Python module from an arbitrary file path."""
    path = Path(script_path)
    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Cannot import custom script: {script_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


if __name__ == "__main__":
    raise SystemExit(main())
