"""Example custom callback: project every histogram on cos(theta*) and save JSON."""

from __future__ import annotations

import json
from pathlib import Path


def process(histograms, context):
    """Write per-histogram cos(theta*) projections and the run summary."""
    payload = {
        "n_candidates": context["summary"].n_candidates,
        "n_observables": context["summary"].n_observables,
        "histograms": {},
    }
    for name, histogram in histograms.items():
        cos_axis = next(n for n in histogram.axis_names if n.startswith("cos_theta_star_"))
        projection = histogram.to_hist(cos_axis)
        payload["histograms"][name] = {
            "entries": histogram.entries,
            "bin_edges": projection.axes[0].edges.tolist(),
            "counts": projection.values().tolist(),
        }
    out = Path(context["output_path"]).with_name("cos_theta_summary.json")
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Wrote {out}")
