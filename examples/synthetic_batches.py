"""Mixed-event API example on synthetic proton batches.

Run from repository root without installation:
    PYTHONPATH=src python examples/synthetic_batches.py
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from random import Random

from femtomix import Collision, MixingConfig, MixingEngine, PairCuts, SpeciesSelection, TableRecorder, Track
from femtomix.io import write_pairs_table


def make_batch(rng: Random, first_id: int, n_collisions: int) -> tuple[list[Collision], list[Track]]:
    """Generate collisions with a handful of proton-like tracks each."""
    collisions: list[Collision] = []
    tracks: list[Track] = []
    for cid in range(first_id, first_id + n_collisions):
        collisions.append(
            Collision(
                collision_id=cid,
                pos_z=rng.uniform(-8.0, 8.0),
                mult=rng.uniform(0.0, 150.0),
                mult_percentile=rng.uniform(0.0, 100.0),
                mag_field=rng.choice((-5.0, 5.0)),
            )
        )
        for _ in range(rng.randint(0, 5)):
            tracks.append(
                Track(
                    track_id=len(tracks),
                    collision_id=cid,
                    pt=rng.uniform(0.3, 3.0),
                    eta=rng.uniform(-0.8, 0.8),
                    phi=rng.uniform(0.0, 2.0 * math.pi),
                    charge=rng.choice((-1, 1)),
                    tpc_nsigma_pr=rng.gauss(0.0, 1.5),
                    tof_nsigma_pr=rng.gauss(0.0, 1.5),
                )
            )
    return collisions, tracks


def main() -> int:
    """Run three batches and write the accepted pairs to a parquet table."""
    logging.basicConfig(level=logging.INFO)
    proton = SpeciesSelection(pdg=2212, sign=1, pid_threshold=0.8)
    config = MixingConfig(
        first=proton,
        second=proton,
        pairs=PairCuts(max_pair_rapidity=0.5),
        do_mixed_event=True,
    )
    rng = Random(7)
    recorder = TableRecorder()
    engine = MixingEngine(config, sink=recorder)
    engine.process_batches(make_batch(rng, 100 * i, 40) for i in range(3))

    out_path = Path("examples/synthetic_pairs.parquet")
    write_pairs_table(out_path, recorder.pairs)
    print(f"Wrote {len(recorder.pairs)} pairs to {out_path}")
    print(dict(recorder.counters))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
