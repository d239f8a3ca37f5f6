"""Utility script to inspect/plot histogram tables written by charm-polarisation."""

from __future__ import annotations

import argparse
from pathlib import Path


def _require_pandas():
    """Import pandas with an actionable error if not installed."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required. Install with: pip install pandas pyarrow"
        ) from exc
    return pd


def load_table(path: str):
    """Load table data from parquet/csv/pickle into a pandas DataFrame."""
    pd = _require_pandas()
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(p)
    if suffix == ".csv":
        return pd.read_csv(p)
    if suffix in (".pkl", ".pickle"):
        return pd.read_pickle(p)
    raise ValueError("Supported input formats: .parquet, .csv, .pkl")


def cos_theta_projection(df, histogram: str):
    """Sum bin counts per lower cos(theta*) edge, split by rotated flag when present."""
    selected = df[df["histogram"] == histogram]
    cos_column = next(c for c in selected.columns if c.startswith("cos_theta_star_"))
    if "is_rotated" in selected.columns and selected["is_rotated"].notna().any():
        return selected.groupby([cos_column, "is_rotated"])["count"].sum().unstack(fill_value=0)
    return selected.groupby(cos_column)["count"].sum()


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for interactive inspection and optional quick plotting."""
    parser = argparse.ArgumentParser(description="Inspect polarisation histogram table.")
    parser.add_argument("--input", required=True, help="Path to .parquet/.csv/.pkl output.")
    parser.add_argument("--head", type=int, default=10, help="Rows to print.")
    parser.add_argument(
        "--histogram",
        default="hSparseCharmPolarisationHelicity",
        help="Histogram to project on its cos(theta*) axis.",
    )
    parser.add_argument("--plot", action="store_true", help="Save the cos(theta*) projection as png.")
    args = parser.parse_args(argv)

    df = load_table(args.input)
    print(df.head(args.head).to_string(index=False))
    print(f"\nRows={len(df)}  Columns={len(df.columns)}")
    print(df.groupby("histogram")["count"].sum().to_string())

    projection = cos_theta_projection(df, args.histogram)
    print(f"\n{args.histogram} projected on cos(theta*):")
    print(projection.to_string())

    if args.plot:
        try:
            import matplotlib.pyplot as plt  # type: ignore
        except ModuleNotFoundError:
            print("matplotlib not installed; skipping plot.")
            return 0
        out = Path(args.input).with_suffix(f".{args.histogram}.png")
        ax = projection.plot(drawstyle="steps-post")
        ax.set_xlabel("cos(theta*)")
        ax.set_ylabel("Counts")
        ax.set_title(args.histogram)
        plt.tight_layout()
        plt.savefig(out, dpi=120)
        print(f"Saved plot: {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
