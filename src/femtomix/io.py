"""Input/output helpers for JSON inputs and tabular result export."""

from __future__ import annotations

import json
import math
from dataclasses import fields, replace
from pathlib import Path
from typing import Any

from .models import (
    Collision,
    DcaWindow,
    EventSelection,
    MixingBinning,
    MixingConfig,
    PairCuts,
    PairResult,
    RejectionSelection,
    SpeciesSelection,
    Track,
    TrackQualityCuts,
    TrackRecord,
)

Batch = tuple[list[Collision], list[Track]]

_TRACK_FIELDS = {f.name for f in fields(Track)}

# Option names of the analysis-task configuration, mapped to field names.
_ALIASES: dict[str, dict[str, str]] = {
    "species": {
        "particlePDG": "pdg",
        "PIDtrshld": "pid_threshold",
        "tpcNSigma": "tpc_nsigma",
        "tofNSigma": "tof_nsigma",
    },
    "rejection": {
        "particlePDGtoRejectFromSecond": "pdg",
        "rejectWithinNsigmaTOF": "tof_nsigma",
    },
    "quality": {
        "eta": "eta_max",
        "minTpcNClsFound": "min_tpc_n_cls_found",
        "maxTpcNClsShared": "max_tpc_n_cls_shared",
        "tpcChi2NCl": "max_tpc_chi2_ncl",
        "tpcCrossedRowsOverFindableCls": "min_tpc_crossed_rows_over_findable",
        "minItsNCls": "min_its_n_cls",
        "itsChi2NCl": "max_its_chi2_ncl",
    },
    "events": {"VertexZ": "vertex_z_max"},
    "pairs": {
        "deta": "deta_min",
        "dphi": "dphi_star_min",
        "radiusTPC": "radius",
        "_maxy": "max_track_rapidity",
    },
    "binning": {
        "vertexbinwidth": "vertex_bin_width",
        "multbinwidth": "mult_bin_width",
    },
}

# `[low, high]` options that fill two scalar fields.
_WINDOW_ALIASES: dict[str, dict[str, tuple[str, str]]] = {
    "quality": {"momentumCut": ("p_min", "p_max")},
    "events": {"multPercentileCut": ("mult_percentile_min", "mult_percentile_max")},
}


def load_batch_json(path: str | Path) -> Batch:
    """Load one batch JSON into `(collisions, tracks)`.

    Expected shape:
    {
      "collisions": [{"collision_id": 0, "pos_z": ..., "mult": ...}, ...],
      "tracks": [{"track_id": 0, "collision_id": 0, "pt": ..., ...}, ...]
    }
    """
    data = _load_json(path)
    return _parse_batch(data, context=str(path))


def load_batches_json(path: str | Path) -> list[Batch]:
    """Load a multi-batch JSON (`{"batches": [...]}`) or a single batch document."""
    data = _load_json(path)
    batches_data = data.get("batches")
    if batches_data is None:
        return [_parse_batch(data, context=str(path))]
    if not isinstance(batches_data, list):
        raise ValueError("Batches JSON key 'batches' must be a list.")
    out: list[Batch] = []
    for idx, batch in enumerate(batches_data):
        if not isinstance(batch, dict):
            raise ValueError(f"Batch entry at index {idx} must be an object.")
        out.append(_parse_batch(batch, context=f"{path} batch {idx}"))
    return out


def load_config_json(path: str | Path) -> MixingConfig:
    """Load a mixing configuration JSON into a `MixingConfig`.

    Sections: `first`, `second` (required), `rejection`, `quality`, `events`,
    `pairs`, `binning` and the boolean `do_mixed_event`. Windows are given as
    two-element lists `[low, high]`. Option names of the analysis task
    (`deta`, `radiusTPC`, `PIDtrshld_1`, `momentumCut`, `doMixedEvent`, ...) are
    accepted in place of the field names.
    """
    data = _load_json(path)
    return parse_config(data)


def parse_config(data: dict[str, Any]) -> MixingConfig:
    """Build a `MixingConfig` from an already decoded JSON object."""
    for key in ("first", "second"):
        if not isinstance(data.get(key), dict):
            raise ValueError(f"Configuration must contain an object under key '{key}'.")
    return MixingConfig(
        first=_parse_species(data["first"], "first"),
        second=_parse_species(data["second"], "second"),
        rejection=_parse_rejection(data.get("rejection", {})),
        quality=_parse_quality(data.get("quality", {})),
        events=_parse_section(
            EventSelection, _resolve_aliases(data.get("events", {}), "events"), "events"
        ),
        pairs=_parse_section(PairCuts, _resolve_aliases(data.get("pairs", {}), "pairs"), "pairs"),
        binning=_parse_section(
            MixingBinning, _resolve_aliases(data.get("binning", {}), "binning"), "binning"
        ),
        do_mixed_event=bool(data.get("do_mixed_event", data.get("doMixedEvent", False))),
    )


def pairs_to_frame(pairs: list[PairResult]):
    """Flatten accepted pairs into a `pandas.DataFrame`."""
    pd = _require_pandas()
    columns = [
        "scope",
        "track_id_1",
        "track_id_2",
        "collision_id_1",
        "collision_id_2",
        "mass",
        "pt",
        "rapidity",
    ]
    rows = [
        {
            "scope": pair.scope.value,
            "track_id_1": pair.track_ids[0],
            "track_id_2": pair.track_ids[1],
            "collision_id_1": pair.collision_ids[0],
            "collision_id_2": pair.collision_ids[1],
            "mass": pair.mass,
            "pt": pair.pt,
            "rapidity": pair.rapidity,
        }
        for pair in pairs
    ]
    return pd.DataFrame(rows, columns=columns)


def tracks_to_frame(records: list[TrackRecord]):
    """Flatten selected-track records into a `pandas.DataFrame`."""
    pd = _require_pandas()
    columns = [
        "role",
        "track_id",
        "collision_id",
        "p",
        "pt",
        "eta",
        "dca_xy",
        "tpc_nsigma",
        "tof_nsigma",
        "rapidity",
    ]
    rows = [
        {
            "role": int(rec.role),
            "track_id": rec.track_id,
            "collision_id": rec.collision_id,
            "p": rec.p,
            "pt": rec.pt,
            "eta": rec.eta,
            "dca_xy": rec.dca_xy,
            "tpc_nsigma": rec.tpc_nsigma,
            "tof_nsigma": rec.tof_nsigma,
            "rapidity": rec.rapidity,
        }
        for rec in records
    ]
    return pd.DataFrame(rows, columns=columns)


def write_pairs_table(path: str | Path, pairs: list[PairResult]) -> None:
    """Write accepted pairs into Parquet/CSV/Pickle table."""
    _write_frame(path, pairs_to_frame(pairs))


def write_tracks_table(path: str | Path, records: list[TrackRecord]) -> None:
    """Write selected-track records into Parquet/CSV/Pickle table."""
    _write_frame(path, tracks_to_frame(records))


def _write_frame(path: str | Path, df) -> None:
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


def _require_pandas():
    """Import pandas lazily and provide a clear installation hint on failure."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required to build output tables. Install pandas and pyarrow."
        ) from exc
    return pd


def _parse_batch(data: dict[str, Any], context: str) -> Batch:
    collisions_data = data.get("collisions")
    if not isinstance(collisions_data, list):
        raise ValueError(f"{context} must contain a list under key 'collisions'.")
    tracks_data = data.get("tracks")
    if not isinstance(tracks_data, list):
        raise ValueError(f"{context} must contain a list under key 'tracks'.")
    collisions = [
        _parse_collision_item(item, idx, context) for idx, item in enumerate(collisions_data)
    ]
    tracks = [_parse_track_item(item, idx, context) for idx, item in enumerate(tracks_data)]
    return collisions, tracks


def _parse_collision_item(item: Any, idx: int, context: str) -> Collision:
    """Parse one collision dictionary into a `Collision`."""
    if not isinstance(item, dict):
        raise ValueError(f"Collision entry at index {idx} in {context} must be an object.")
    try:
        return Collision(
            collision_id=int(item.get("collision_id", idx)),
            pos_z=float(item["pos_z"]),
            mult=float(item["mult"]),
            mult_percentile=float(item.get("mult_percentile", 0.0)),
            mag_field=float(item.get("mag_field", 5.0)),
        )
    except KeyError as exc:
        raise ValueError(f"Collision at index {idx} in {context} misses field {exc}.") from exc


def _parse_track_item(item: Any, idx: int, context: str) -> Track:
    """Parse one track dictionary into a `Track`."""
    if not isinstance(item, dict):
        raise ValueError(f"Track entry at index {idx} in {context} must be an object.")
    unknown = set(item) - _TRACK_FIELDS
    if unknown:
        raise ValueError(
            f"Track at index {idx} in {context} has unknown fields: {', '.join(sorted(unknown))}"
        )
    for required in ("collision_id", "pt", "eta", "phi", "charge"):
        if required not in item:
            raise ValueError(f"Track at index {idx} in {context} misses field '{required}'.")
    kwargs: dict[str, Any] = {"track_id": idx}
    for key, value in item.items():
        if key in ("track_id", "collision_id", "charge", "tpc_n_cls_found", "tpc_n_cls_shared", "its_n_cls"):
            kwargs[key] = int(value)
        else:
            kwargs[key] = float(value)
    return Track(**kwargs)


def _parse_window(value: Any, name: str) -> tuple[float, float]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"Window '{name}' must be a two-element list [low, high].")
    low, high = float(value[0]), float(value[1])
    if low > high:
        raise ValueError(f"Window '{name}' has low bound above high bound.")
    return low, high


def _parse_species(data: dict[str, Any], name: str) -> SpeciesSelection:
    suffix = "_1" if name == "first" else "_2"
    aliases = dict(_ALIASES["species"])
    aliases.update({alias + suffix: field for alias, field in _ALIASES["species"].items()})
    aliases["sign" + suffix] = "sign"
    data = _resolve_aliases(data, name, aliases)
    if "pdg" not in data:
        raise ValueError(f"Species section '{name}' must define 'pdg'.")
    return SpeciesSelection(
        pdg=int(data["pdg"]),
        sign=int(data.get("sign", 1)),
        pid_threshold=float(data.get("pid_threshold", 10.0)),
        tpc_nsigma=_parse_window(data.get("tpc_nsigma", [-3.0, 3.0]), f"{name}.tpc_nsigma"),
        tof_nsigma=_parse_window(data.get("tof_nsigma", [-3.0, 3.0]), f"{name}.tof_nsigma"),
    )


def _parse_rejection(data: dict[str, Any]) -> RejectionSelection:
    if not isinstance(data, dict):
        raise ValueError("Configuration section 'rejection' must be an object.")
    data = _resolve_aliases(data, "rejection")
    return RejectionSelection(
        pdg=int(data.get("pdg", 0)),
        tof_nsigma=_parse_window(data.get("tof_nsigma", [0.0, 0.0]), "rejection.tof_nsigma"),
    )


def _parse_dca(data: Any, name: str) -> DcaWindow:
    if not isinstance(data, dict):
        raise ValueError(f"Configuration section '{name}' must be an object.")
    include = data.get("include", [0.0, math.inf])
    exclude = data.get("exclude", [0.0, 0.0])
    include_min, include_max = _parse_window(include, f"{name}.include")
    exclude_min, exclude_max = _parse_window(exclude, f"{name}.exclude")
    return DcaWindow(include_min, include_max, exclude_min, exclude_max)


def _parse_quality(data: dict[str, Any]) -> TrackQualityCuts:
    if not isinstance(data, dict):
        raise ValueError("Configuration section 'quality' must be an object.")
    data = _resolve_aliases(data, "quality")
    scalars = {k: v for k, v in data.items() if k not in ("dca_xy", "dca_z")}
    base = _parse_section(TrackQualityCuts, scalars, "quality")
    return replace(
        base,
        dca_xy=_parse_dca(data.get("dca_xy", {}), "quality.dca_xy"),
        dca_z=_parse_dca(data.get("dca_z", {}), "quality.dca_z"),
    )


def _resolve_aliases(data: Any, name: str, aliases: dict[str, str] | None = None) -> Any:
    """Rename task-style option names of one section to field names."""
    if not isinstance(data, dict):
        return data
    if aliases is None:
        aliases = _ALIASES.get(name, {})
    windows = _WINDOW_ALIASES.get(name, {})
    out: dict[str, Any] = {}
    for key, value in data.items():
        if key in windows:
            targets = windows[key]
            values = _parse_window(value, f"{name}.{key}")
        else:
            targets = (aliases.get(key, key),)
            values = (value,)
        for target, item in zip(targets, values):
            if target in out:
                raise ValueError(f"Configuration section '{name}' sets '{target}' more than once.")
            out[target] = item
    return out


def _parse_section(cls, data: Any, name: str):
    """Build a flat numeric configuration dataclass from a JSON object."""
    if not isinstance(data, dict):
        raise ValueError(f"Configuration section '{name}' must be an object.")
    known = {f.name: f for f in fields(cls)}
    unknown = set(data) - set(known)
    if unknown:
        raise ValueError(
            f"Configuration section '{name}' has unknown keys: {', '.join(sorted(unknown))}"
        )
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        default = getattr(cls(), key)
        kwargs[key] = int(value) if isinstance(default, int) and not isinstance(default, bool) else float(value)
    return cls(**kwargs)


def _load_json(path: str | Path) -> dict[str, Any]:
    """Read and validate a JSON object document from disk."""
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"JSON document at {path} must be an object.")
    return data
