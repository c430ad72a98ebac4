"""Example custom callback: summarize SE/ME yields per mass window."""

from __future__ import annotations

import json
from pathlib import Path


def process(recorder, context):
    """Count SE and ME pairs in coarse invariant-mass windows and save them."""
    df = recorder.pairs_frame()
    if df.empty:
        payload = {"n_pairs": 0, "windows": []}
    else:
        df["window"] = (df["mass"] // 0.05) * 0.05
        counts = df.groupby(["window", "scope"]).size().unstack(fill_value=0)
        payload = {
            "n_pairs": int(len(df)),
            "windows": [
                {"mass_low": float(window), **{str(k): int(v) for k, v in row.items()}}
                for window, row in counts.iterrows()
            ],
        }
    out = Path(context["output_path"]).with_name("se_me_summary.json")
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Wrote {out}")
