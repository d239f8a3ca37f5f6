"""Input/output helpers for JSON inputs and tabular histogram export."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from .config import AXIS_DEFINITIONS, AxisBinning, ConfigurationError, PolarisationConfig, default_axes
from .histograms import SparseHistogram
from .models import CandidateRecord, DecayChannel, MassHypothesis, Vector3
from .physics import invariant_mass
from .pid import make_kaon, make_pion, make_proton

_CONFIG_KEYS = {
    "selection_flag_dstar": bool,
    "selection_flag_lc": int,
    "n_bkg_rotations": int,
    "activate_helicity": bool,
    "activate_production": bool,
    "activate_beam": bool,
    "activate_random": bool,
    "process_dstar": bool,
    "process_dstar_with_ml": bool,
    "process_lc_to_pkpi": bool,
    "process_lc_to_pkpi_with_ml": bool,
    "isotropic_random_axis": bool,
}


def load_candidates_json(path: str | Path) -> list[CandidateRecord]:
    """Load candidate container JSON into `CandidateRecord` objects.

    Expected shape:
    {
      "candidates": [
        {"channel": "lc_to_pkpi", "prongs": [[px, py, pz], ...], ...},
        {"channel": "dstar_to_d0pi", "soft_pion": [px, py, pz], ...}
      ]
    }
    """
    data = _load_json(path)
    candidates_data = data.get("candidates")
    if not isinstance(candidates_data, list):
        raise ValueError("Input JSON must contain a list under key 'candidates'.")
    return [
        parse_candidate(item=item, idx=idx, context=f"{path}")
        for idx, item in enumerate(candidates_data)
    ]


def load_config_json(path: str | Path) -> PolarisationConfig:
    """Load run options JSON into a `PolarisationConfig`.

    Unknown keys are rejected; axis binnings may be given as
    `{"axes": {"pt": [bins, start, stop], ...}}` or with explicit
    `{"bins": .., "start": .., "stop": ..}` objects.
    """
    data = _load_json(path)
    return parse_config(data, context=f"{path}")


def parse_config(data: Mapping[str, Any], context: str = "configuration") -> PolarisationConfig:
    """Convert a configuration mapping into a `PolarisationConfig`."""
    unknown = sorted(set(data) - set(_CONFIG_KEYS) - {"axes", "seed"})
    if unknown:
        raise ConfigurationError(f"Unknown options in {context}: {', '.join(unknown)}.")
    kwargs: dict[str, Any] = {}
    for key, kind in _CONFIG_KEYS.items():
        if key in data:
            kwargs[key] = kind(data[key])
    if data.get("seed") is not None:
        kwargs["seed"] = int(data["seed"])
    axes = default_axes()
    axes_data = data.get("axes", {})
    if not isinstance(axes_data, dict):
        raise ConfigurationError(f"Key 'axes' in {context} must be an object.")
    for name, value in axes_data.items():
        if name not in AXIS_DEFINITIONS:
            raise ConfigurationError(f"Unknown histogram axis '{name}' in {context}.")
        axes[name] = _parse_binning(name, value)
    kwargs["axes"] = axes
    return PolarisationConfig(**kwargs)


def parse_candidate(item: Any, idx: int, context: str) -> CandidateRecord:
    """Parse one candidate dictionary into a `CandidateRecord`."""
    if not isinstance(item, dict):
        raise ValueError(f"Candidate entry at index {idx} in {context} must be an object.")
    try:
        channel = DecayChannel(str(item["channel"]))
    except KeyError as exc:
        raise ValueError(f"Candidate at index {idx} in {context} must define 'channel'.") from exc
    except ValueError as exc:
        supported = ", ".join(c.value for c in DecayChannel)
        raise ValueError(
            f"Candidate at index {idx} in {context} has unknown channel {item['channel']!r}. "
            f"Supported channels: {supported}"
        ) from exc
    candidate_id = str(item.get("candidate_id", f"cand{idx}"))
    if channel is DecayChannel.DSTAR_TO_D0_PI:
        return _parse_dstar_item(item, candidate_id, f"candidate '{candidate_id}' in {context}")
    return _parse_lc_item(item, candidate_id, f"candidate '{candidate_id}' in {context}")


def write_histograms_table(path: str | Path, histograms: Mapping[str, SparseHistogram]) -> None:
    """Write non-empty histogram bins into a Parquet/CSV/Pickle table."""
    pd = _require_pandas()
    df = pd.DataFrame(_histogram_rows(histograms))
    out = Path(path)
    suffix = out.suffix.lower()
    if suffix == ".parquet":
        df.to_parquet(out, index=False)
    elif suffix in (".pkl", ".pickle"):
        df.to_pickle(out)
    elif suffix == ".csv":
        df.to_csv(out, index=False)
    else:
        raise ValueError(
            f"Unsupported output format '{suffix}'. Use .parquet, .csv, or .pkl"
        )


def _histogram_rows(histograms: Mapping[str, SparseHistogram]) -> list[dict[str, Any]]:
    """Flatten sparse histograms into one row per (histogram, non-empty bin)."""
    rows: list[dict[str, Any]] = []
    for name, histogram in histograms.items():
        for edges, count in histogram.iter_bins():
            row: dict[str, Any] = {"histogram": name}
            for axis_name, edge in zip(histogram.axis_names, edges, strict=True):
                row[axis_name] = edge
            row["count"] = count
            rows.append(row)
    return rows


def _require_pandas():
    """Import pandas lazily and provide a clear installation hint on failure."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required to write output tables. Install pandas and pyarrow."
        ) from exc
    return pd


def _parse_dstar_item(item: dict[str, Any], candidate_id: str, context: str) -> CandidateRecord:
    """Parse a D*+ -> D0 pi+ candidate (soft pion as the only stored prong)."""
    soft_pion = item.get("soft_pion")
    if soft_pion is None:
        prongs = item.get("prongs")
        if not isinstance(prongs, list) or len(prongs) != 1:
            raise ValueError(f"D*+ {context} must define 'soft_pion' or a single-entry 'prongs' list.")
        soft_pion = prongs[0]
    if "p_parent" not in item:
        raise ValueError(f"D*+ {context} must define 'p_parent'.")
    sign = int(item.get("soft_pion_sign", 1))
    inv_mass = _parse_mass_map(item.get("inv_mass", {}), context)
    try:
        inv_mass_dstar = float(item.get("inv_mass_dstar", inv_mass.get(MassHypothesis.DSTAR_TO_D0_PI)))
        inv_mass_d0 = float(item["inv_mass_d0"])
    except (KeyError, TypeError) as exc:
        raise ValueError(f"D*+ {context} must define 'inv_mass_dstar' and 'inv_mass_d0'.") from exc
    selection = item.get("selection", 1)
    if isinstance(selection, dict):
        selection = selection.get(MassHypothesis.DSTAR_TO_D0_PI.value, 0)
    scores = item.get("ml_scores")
    if isinstance(scores, dict):
        scores = scores.get(MassHypothesis.DSTAR_TO_D0_PI.value)
    return CandidateRecord.from_dstar(
        soft_pion=_parse_vector(soft_pion, "soft_pion", context),
        p_dstar=_parse_vector(item["p_parent"], "p_parent", context),
        soft_pion_sign=sign,
        inv_mass_dstar=inv_mass_dstar,
        inv_mass_anti_dstar=float(item.get("inv_mass_anti_dstar", inv_mass_dstar)),
        inv_mass_d0=inv_mass_d0,
        inv_mass_d0bar=float(item.get("inv_mass_d0bar", inv_mass_d0)),
        selection_flag=int(selection),
        ml_scores=_parse_scores(scores, context),
        candidate_id=candidate_id,
    )


def _parse_lc_item(item: dict[str, Any], candidate_id: str, context: str) -> CandidateRecord:
    """Parse a Lambda_c -> pKpi candidate; missing masses are computed from the prongs."""
    prongs_data = item.get("prongs")
    if not isinstance(prongs_data, list) or len(prongs_data) != 3:
        raise ValueError(f"Lambda_c {context} must define a 3-entry 'prongs' list.")
    prongs = tuple(_parse_vector(p, f"prongs[{i}]", context) for i, p in enumerate(prongs_data))
    p_parent = None
    if item.get("p_parent") is not None:
        p_parent = _parse_vector(item["p_parent"], "p_parent", context)
    inv_mass = _parse_mass_map(item.get("inv_mass", {}), context)
    proton, kaon, pion = make_proton().mass, make_kaon().mass, make_pion().mass
    if MassHypothesis.PKPI not in inv_mass:
        inv_mass[MassHypothesis.PKPI] = invariant_mass(prongs, (proton, kaon, pion))
    if MassHypothesis.PIKP not in inv_mass:
        inv_mass[MassHypothesis.PIKP] = invariant_mass(prongs, (pion, kaon, proton))
    selection = item.get("selection")
    if not isinstance(selection, dict):
        raise ValueError(f"Lambda_c {context} must define a 'selection' object with pkpi/pikp flags.")
    scores = item.get("ml_scores", {})
    if not isinstance(scores, dict):
        raise ValueError(f"Lambda_c {context} field 'ml_scores' must be an object keyed by hypothesis.")
    return CandidateRecord.from_lc_to_pkpi(
        prongs=prongs,
        inv_mass_pkpi=inv_mass[MassHypothesis.PKPI],
        inv_mass_pikp=inv_mass[MassHypothesis.PIKP],
        selection_pkpi=int(selection.get(MassHypothesis.PKPI.value, 0)),
        selection_pikp=int(selection.get(MassHypothesis.PIKP.value, 0)),
        p_parent=p_parent,
        ml_scores_pkpi=_parse_scores(scores.get(MassHypothesis.PKPI.value), context),
        ml_scores_pikp=_parse_scores(scores.get(MassHypothesis.PIKP.value), context),
        candidate_id=candidate_id,
    )


def _parse_mass_map(value: Any, context: str) -> dict[MassHypothesis, float]:
    if not isinstance(value, dict):
        raise ValueError(f"Field 'inv_mass' of {context} must be an object keyed by hypothesis.")
    out: dict[MassHypothesis, float] = {}
    for key, mass in value.items():
        try:
            out[MassHypothesis(str(key))] = float(mass)
        except ValueError as exc:
            raise ValueError(f"Unknown mass hypothesis '{key}' in {context}.") from exc
    return out


def _parse_scores(value: Any, context: str):
    """Validate an optional ML score triple; an empty list counts as absent."""
    if value is None or value == []:
        return None
    if not isinstance(value, list) or len(value) != 3:
        raise ValueError(f"ML scores in {context} must be a list of 3 numbers (bkg, prompt, non-prompt).")
    return (float(value[0]), float(value[1]), float(value[2]))


def _parse_vector(value: Any, field_name: str, context: str) -> Vector3:
    """Validate and convert a 3-element list into a momentum tuple."""
    if not isinstance(value, list) or len(value) != 3:
        raise ValueError(f"Field '{field_name}' of {context} must be a [px, py, pz] list.")
    return (float(value[0]), float(value[1]), float(value[2]))


def _parse_binning(name: str, value: Any) -> AxisBinning:
    if isinstance(value, list) and len(value) == 3:
        return AxisBinning(int(value[0]), float(value[1]), float(value[2]))
    if isinstance(value, dict):
        try:
            return AxisBinning(int(value["bins"]), float(value["start"]), float(value["stop"]))
        except KeyError as exc:
            raise ConfigurationError(f"Axis '{name}' must define bins, start and stop.") from exc
    raise ConfigurationError(f"Axis '{name}' must be [bins, start, stop] or an object.")


def _load_json(path: str | Path) -> dict[str, Any]:
    """Read and validate a JSON object document from disk."""
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"JSON document at {path} must be an object.")
    return data
