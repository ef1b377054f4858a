"""Tests for court_director.io."""
from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from court_director.errors import ReplayFormatError
from court_director.geometry import Point
from court_director.models import CameraCommand, PersonLabel
from court_director.io import read_replay, write_commands


@pytest.fixture
def replay_jsonl(tmp_path: Path) -> Path:
    path = tmp_path / "game.jsonl"
    records = [
        {"t": 0.0, "detections": [{"box": [0.4, 0.4, 0.05, 0.15], "confidence": 0.8, "signature": [1, 0, 0]}]},
        {"t": 0.033, "detections": [], "ball": {"x": 0.5, "y": 0.6, "confidence": 0.7}},
        {"t": 0.066, "detections": [{"box": [0.4, 0.4, 0.05, 0.15], "label": "referee"}]},
    ]
    path.write_text("\n".join(json.dumps(r) for r in records[:2]) + "\n\n" + json.dumps(records[2]) + "\n")
    return path


class TestReadJsonl:
    def test_frames(self, replay_jsonl: Path):
        frames = list(read_replay(replay_jsonl))
        assert [f.timestamp for f in frames] == [0.0, 0.033, 0.066]
        det = frames[0].detections[0]
        assert det.box.w == pytest.approx(0.05)
        assert det.confidence == pytest.approx(0.8)
        np.testing.assert_array_equal(det.signature, [1.0, 0.0, 0.0])
        assert frames[1].detections == ()
        assert frames[1].ball.position == Point(0.5, 0.6)
        assert frames[2].detections[0].label is PersonLabel.REFEREE
        assert frames[2].detections[0].confidence == 1.0

    def test_bad_line_reports_position(self, tmp_path: Path):
        path = tmp_path / "bad.jsonl"
        path.write_text('{"t": 0.0, "detections": []}\n{"t": 0.1, "detections": [{"conf": 1}]}\n')
        with pytest.raises(ReplayFormatError, match=":2:"):
            list(read_replay(path))

    def test_not_json(self, tmp_path: Path):
        path = tmp_path / "bad.jsonl"
        path.write_text("hello\n")
        with pytest.raises(ReplayFormatError):
            list(read_replay(path))


class TestReadCsv:
    def test_groups_rows_by_time(self, tmp_path: Path):
        path = tmp_path / "game.csv"
        path.write_text(
            "t,x,y,w,h,confidence,sig_0,sig_1,ball_x,ball_y,ball_conf\n"
            "0.0,0.1,0.4,0.05,0.15,0.9,1,0,0.5,0.6,0.8\n"
            "0.0,0.6,0.4,0.05,0.15,,0,1,0.5,0.6,0.8\n"
            "0.1,,,,,,,,,,\n"
            "0.2,0.2,0.4,0.05,0.15,0.5,1,0,,,\n"
        )
        frames = list(read_replay(path))
        assert [f.timestamp for f in frames] == [0.0, 0.1, 0.2]
        assert len(frames[0].detections) == 2
        assert frames[0].detections[1].confidence == 1.0
        np.testing.assert_array_equal(frames[0].detections[1].signature, [0.0, 1.0])
        assert frames[0].ball.confidence == pytest.approx(0.8)
        assert frames[1].detections == ()
        assert frames[2].ball is None

    def test_missing_columns(self, tmp_path: Path):
        path = tmp_path / "game.csv"
        path.write_text("t,x,y\n0.0,0.1,0.2\n")
        with pytest.raises(ReplayFormatError, match="missing columns"):
            list(read_replay(path))


class TestReadReplay:
    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ReplayFormatError, match="no such file"):
            read_replay(tmp_path / "nope.jsonl")

    def test_unsupported_suffix(self, tmp_path: Path):
        path = tmp_path / "game.txt"
        path.write_text("")
        with pytest.raises(ReplayFormatError, match="unsupported"):
            read_replay(path)


class TestWriteCommands:
    def _commands(self):
        return [CameraCommand(i * 0.1, Point(0.5, 0.5 + 0.01 * i), 1.3) for i in range(3)]

    def test_csv(self, tmp_path: Path):
        out = write_commands(tmp_path / "out" / "commands.csv", self._commands())
        df = pd.read_csv(out)
        assert list(df.columns[:4]) == ["t", "pan_x", "pan_y", "zoom"]
        assert len(df) == 3
        assert df["pan_y"].iloc[2] == pytest.approx(0.52)
        assert (df["state"] == "idle").all()

    def test_jsonl(self, tmp_path: Path):
        out = write_commands(tmp_path / "commands.jsonl", self._commands())
        rows = [json.loads(line) for line in out.read_text().splitlines()]
        assert [r["t"] for r in rows] == [0.0, 0.1, 0.2]
        assert rows[0]["zoom"] == 1.3
        assert rows[0]["region_min_x"] is None
