"""Command-line interface for running same-event / mixed-event pairing."""

from __future__ import annotations

import argparse
import importlib.util
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

from .engine import MixingEngine
from .io import load_batches_json, load_config_json, write_pairs_table, write_tracks_table
from .recording import TableRecorder

LOGGER = logging.getLogger("femtomix.cli")


def build_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="femtomix",
        description="Build same-event and mixed-event pair distributions with close-pair rejection.",
    )
    parser.add_argument(
        "--events",
        required=True,
        help="Input JSON with 'collisions' and 'tracks' lists, or a list of such objects under 'batches'.",
    )
    parser.add_argument("--config", required=True, help="Mixing configuration JSON.")
    parser.add_argument(
        "--out",
        required=True,
        help="Output table file for accepted pairs (.parquet, .csv, .pkl).",
    )
    parser.add_argument(
        "--tracks-out",
        default=None,
        help="Optional output table for selected-track monitoring records.",
    )
    mixed = parser.add_mutually_exclusive_group()
    mixed.add_argument(
        "--mixed-event",
        dest="mixed_event",
        action="store_true",
        default=None,
        help="Enable cross-event mixing (overrides the configuration).",
    )
    mixed.add_argument(
        "--no-mixed-event",
        dest="mixed_event",
        action="store_false",
        help="Disable cross-event mixing (overrides the configuration).",
    )
    parser.add_argument(
        "--custom-script",
        default=None,
        help="Path to Python file with process(recorder, context) function.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity.")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: load inputs, run the engine batch by batch, write tables."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING - 10 * min(args.verbose, 2),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_config_json(args.config)
    if args.mixed_event is not None:
        config = replace(config, do_mixed_event=args.mixed_event)
    batches = load_batches_json(args.events)

    recorder = TableRecorder()
    engine = MixingEngine(config, sink=recorder)
    summaries = engine.process_batches(batches)
    LOGGER.info(
        "Processed %d batches: %d SE pairs, %d ME pairs",
        len(summaries),
        sum(s.n_se_pairs for s in summaries),
        sum(s.n_me_pairs for s in summaries),
    )

    write_pairs_table(args.out, recorder.pairs)
    if args.tracks_out:
        write_tracks_table(args.tracks_out, recorder.tracks)

    if args.custom_script:
        run_custom_script(
            script_path=args.custom_script,
            recorder=recorder,
            context={
                "events_path": args.events,
                "config_path": args.config,
                "config": config,
                "summaries": summaries,
                "output_path": args.out,
            },
        )
    return 0


def run_custom_script(script_path: str, recorder: TableRecorder, context: dict[str, Any]) -> None:
    """Execute user-supplied post-processing callback `process(recorder, context)`."""
    module = _load_module(script_path)
    process = getattr(module, "process", None)
    if process is None or not callable(process):
        raise ValueError(
            f"Custom script {script_path} must define callable process(recorder, context)."
        )
    process(recorder, context)


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
