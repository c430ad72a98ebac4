"""Unit tests for JSON input loaders, table export and the command-line entry point."""

from __future__ import annotations

import json
import math
import tempfile
import unittest
from pathlib import Path

from femtomix import ConfigurationError, MixingConfig, PairResult, Scope
from femtomix.cli import main
from femtomix.io import (
    load_batch_json,
    load_batches_json,
    load_config_json,
    parse_config,
    write_pairs_table,
)

_BATCH = {
    "collisions": [
        {"collision_id": 3, "pos_z": 0.2, "mult": 12, "mult_percentile": 30.0, "mag_field": -5.0},
        {"collision_id": 4, "pos_z": 0.5, "mult": 20},
    ],
    "tracks": [
        {"track_id": 0, "collision_id": 3, "pt": 1.0, "eta": 0.0, "phi": 0.0, "charge": 1, "tof_nsigma_pr": 0.5},
        {"track_id": 1, "collision_id": 3, "pt": 1.0, "eta": 0.1, "phi": 1.5, "charge": 1, "its_n_cls": 7},
        {"track_id": 2, "collision_id": 4, "pt": 0.8, "eta": -0.1, "phi": 3.0, "charge": 1},
    ],
}

_CONFIG = {
    "first": {"pdg": 2212, "sign": 1, "pid_threshold": 0.8, "tpc_nsigma": [-3, 3], "tof_nsigma": [-2, 2]},
    "second": {"pdg": 2212, "sign": 1, "pid_threshold": 0.8},
    "quality": {"min_its_n_cls": 0, "dca_xy": {"include": [0.0, 0.1], "exclude": [0.0, 0.001]}},
    "pairs": {"deta_min": 0.02, "radius": 1.2},
    "binning": {"vertex_bin_width": 2, "mult_bin_width": 50},
    "do_mixed_event": True,
}


class TestIOLoaders(unittest.TestCase):
    """Validate parsing for batch and configuration JSON inputs."""

    def _write(self, tmpdir: str, name: str, payload: dict) -> Path:
        path = Path(tmpdir) / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_load_batch_json_parses_collisions_and_tracks(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            collisions, tracks = load_batch_json(self._write(tmpdir, "batch.json", _BATCH))
        self.assertEqual([c.collision_id for c in collisions], [3, 4])
        self.assertEqual(collisions[0].mag_field, -5.0)
        self.assertEqual(collisions[1].mag_field, 5.0)
        self.assertEqual(len(tracks), 3)
        self.assertEqual(tracks[0].tof_nsigma_pr, 0.5)
        self.assertEqual(tracks[1].its_n_cls, 7)
        self.assertIsInstance(tracks[1].its_n_cls, int)

    def test_load_batches_json_accepts_single_and_multi(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            single = load_batches_json(self._write(tmpdir, "one.json", _BATCH))
            multi = load_batches_json(self._write(tmpdir, "many.json", {"batches": [_BATCH, _BATCH]}))
        self.assertEqual(len(single), 1)
        self.assertEqual(len(multi), 2)

    def test_track_with_unknown_field_is_rejected(self) -> None:
        payload = {
            "collisions": [{"pos_z": 0.0, "mult": 1.0}],
            "tracks": [{"collision_id": 0, "pt": 1.0, "eta": 0.0, "phi": 0.0, "charge": 1, "bogus": 1}],
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ValueError):
                load_batch_json(self._write(tmpdir, "bad.json", payload))

    def test_load_config_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = load_config_json(self._write(tmpdir, "config.json", _CONFIG))
        self.assertIsInstance(config, MixingConfig)
        self.assertTrue(config.is_identical)
        self.assertTrue(config.do_mixed_event)
        self.assertEqual(config.first.tof_nsigma, (-2.0, 2.0))
        self.assertEqual(config.second.tpc_nsigma, (-3.0, 3.0))
        self.assertEqual(config.quality.dca_xy.include_max, 0.1)
        self.assertEqual(config.quality.dca_z.include_max, math.inf)
        self.assertEqual(config.pairs.deta_min, 0.02)
        self.assertEqual(config.pairs.dphi_star_min, 0.01)
        self.assertEqual(config.binning.mult_bin_width, 50.0)

    def test_config_rejects_unknown_keys_and_bad_windows(self) -> None:
        with self.assertRaises(ValueError):
            parse_config({**_CONFIG, "pairs": {"min_deta": 0.1}})
        with self.assertRaises(ValueError):
            parse_config({**_CONFIG, "first": {"pdg": 2212, "tpc_nsigma": [3, -3]}})
        with self.assertRaises(ValueError):
            parse_config({"first": {"pdg": 2212}})

    def test_config_accepts_task_option_names(self) -> None:
        config = parse_config(
            {
                "first": {"particlePDG_1": 2212, "sign_1": -1, "PIDtrshld_1": 0.75, "tofNSigma_1": [-2, 2]},
                "second": {"particlePDG": 211, "tpcNSigma": [-2.5, 2.5]},
                "rejection": {"particlePDGtoRejectFromSecond": 321, "rejectWithinNsigmaTOF": [-1, 1]},
                "quality": {"momentumCut": [0.2, 4.0], "eta": 0.8, "minTpcNClsFound": 70, "itsChi2NCl": 36},
                "events": {"VertexZ": 7.0, "multPercentileCut": [0, 90]},
                "pairs": {"deta": 0.02, "dphi": 0.03, "radiusTPC": 1.4, "_maxy": 0.9},
                "binning": {"vertexbinwidth": 1, "multbinwidth": 25},
                "doMixedEvent": True,
            }
        )
        self.assertEqual((config.first.pdg, config.first.sign, config.first.pid_threshold), (2212, -1, 0.75))
        self.assertEqual(config.first.tof_nsigma, (-2.0, 2.0))
        self.assertEqual(config.second.pdg, 211)
        self.assertEqual(config.second.tpc_nsigma, (-2.5, 2.5))
        self.assertEqual(config.rejection.pdg, 321)
        self.assertEqual(config.rejection.tof_nsigma, (-1.0, 1.0))
        self.assertEqual((config.quality.p_min, config.quality.p_max), (0.2, 4.0))
        self.assertEqual(config.quality.eta_max, 0.8)
        self.assertEqual(config.quality.min_tpc_n_cls_found, 70)
        self.assertEqual(config.quality.max_its_chi2_ncl, 36.0)
        self.assertEqual(config.events.vertex_z_max, 7.0)
        self.assertEqual((config.events.mult_percentile_min, config.events.mult_percentile_max), (0.0, 90.0))
        self.assertEqual(config.pairs.deta_min, 0.02)
        self.assertEqual(config.pairs.dphi_star_min, 0.03)
        self.assertEqual(config.pairs.radius, 1.4)
        self.assertEqual(config.pairs.max_track_rapidity, 0.9)
        self.assertEqual(config.binning.vertex_bin_width, 1.0)
        self.assertEqual(config.binning.mult_bin_width, 25.0)
        self.assertTrue(config.do_mixed_event)

    def test_config_rejects_option_given_twice(self) -> None:
        with self.assertRaises(ValueError):
            parse_config({**_CONFIG, "pairs": {"deta": 0.02, "deta_min": 0.03}})
        with self.assertRaises(ValueError):
            parse_config({**_CONFIG, "quality": {"momentumCut": [0.2, 4.0], "p_max": 3.0}})

    def test_write_pairs_table_csv(self) -> None:
        import pandas as pd

        pairs = [
            PairResult(Scope.SE, (0, 1), (3, 3), 1.9, 0.4, 0.1),
            PairResult(Scope.ME, (0, 2), (3, 4), 2.1, 0.7, -0.2),
        ]
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "pairs.csv"
            write_pairs_table(out, pairs)
            df = pd.read_csv(out)
        self.assertEqual(list(df["scope"]), ["SE", "ME"])
        self.assertEqual(list(df["collision_id_2"]), [3, 4])

    def test_write_pairs_table_rejects_unknown_suffix(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ValueError):
                write_pairs_table(Path(tmpdir) / "pairs.txt", [])


class TestCommandLine(unittest.TestCase):
    """Run the CLI end to end on small JSON inputs."""

    def test_cli_writes_pair_and_track_tables(self) -> None:
        import pandas as pd

        with tempfile.TemporaryDirectory() as tmpdir:
            events = Path(tmpdir) / "events.json"
            config = Path(tmpdir) / "config.json"
            events.write_text(json.dumps(_BATCH), encoding="utf-8")
            config.write_text(json.dumps(_CONFIG), encoding="utf-8")
            out = Path(tmpdir) / "pairs.csv"
            tracks_out = Path(tmpdir) / "tracks.csv"
            code = main(
                [
                    "--events", str(events),
                    "--config", str(config),
                    "--out", str(out),
                    "--tracks-out", str(tracks_out),
                ]
            )
            pairs = pd.read_csv(out)
            tracks = pd.read_csv(tracks_out)
            code_no_mix = main(
                [
                    "--events", str(events),
                    "--config", str(config),
                    "--out", str(out),
                    "--no-mixed-event",
                ]
            )
            pairs_no_mix = pd.read_csv(out)
        self.assertEqual(code, 0)
        self.assertEqual(code_no_mix, 0)
        self.assertEqual(len(tracks), 3)
        self.assertEqual(sorted(pairs["scope"]), ["ME", "ME", "SE"])
        self.assertEqual(list(pairs_no_mix["scope"]), ["SE"])

    def test_cli_unsupported_species_fails(self) -> None:
        bad = {**_CONFIG, "second": {"pdg": 11}}
        with tempfile.TemporaryDirectory() as tmpdir:
            events = Path(tmpdir) / "events.json"
            config = Path(tmpdir) / "config.json"
            events.write_text(json.dumps(_BATCH), encoding="utf-8")
            config.write_text(json.dumps(bad), encoding="utf-8")
            with self.assertRaises(ConfigurationError):
                main(["--events", str(events), "--config", str(config), "--out", str(Path(tmpdir) / "o.csv")])


if __name__ == "__main__":
    unittest.main()
