"""Tests for court_director.cli."""
from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from court_director.cli import build_parser, main


@pytest.fixture
def replay_file(tmp_path: Path) -> Path:
    path = tmp_path / "game.jsonl"
    lines = []
    for i in range(40):
        boxes = [[0.55 + 0.05 * k, 0.45, 0.05, 0.15] for k in range(3)]
        lines.append(json.dumps({"t": i / 30.0, "detections": [{"box": b} for b in boxes]}))
    path.write_text("\n".join(lines) + "\n")
    return path


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_replay_writes_commands(tmp_path: Path, replay_file: Path):
    out = tmp_path / "commands.csv"
    stats = tmp_path / "stats.json"
    code = main(
        [
            "--config",
            str(tmp_path / "missing.yaml"),
            "replay",
            str(replay_file),
            "--out",
            str(out),
            "--stats",
            str(stats),
        ]
    )
    assert code == 0
    df = pd.read_csv(out)
    assert len(df) == 40
    assert df["zoom"].between(1.0, 1.5).all()
    summary = json.loads(stats.read_text())
    assert summary["frames"] == 40
    assert summary["tracks_created"] == 3


def test_replay_default_output_name(tmp_path: Path, replay_file: Path):
    assert main(["--config", str(tmp_path / "missing.yaml"), "replay", str(replay_file), "--no-lead"]) == 0
    assert (tmp_path / "game.commands.csv").exists()


def test_replay_zoom_override(tmp_path: Path, replay_file: Path):
    out = tmp_path / "commands.jsonl"
    code = main(
        [
            "--config",
            str(tmp_path / "missing.yaml"),
            "replay",
            str(replay_file),
            "--out",
            str(out),
            "--zoom-min",
            "1.3",
            "--zoom-max",
            "1.3",
        ]
    )
    assert code == 0
    rows = [json.loads(line) for line in out.read_text().splitlines()]
    assert {r["zoom"] for r in rows} == {1.3}


def test_invalid_config_exit_code(tmp_path: Path, replay_file: Path):
    cfg = tmp_path / "config.yaml"
    cfg.write_text("zoom:\n  min_zoom: 2.0\n  max_zoom: 1.5\n")
    assert main(["--config", str(cfg), "replay", str(replay_file)]) == 2


def test_bad_replay_exit_code(tmp_path: Path):
    bad = tmp_path / "bad.jsonl"
    bad.write_text("not json\n")
    assert main(["--config", str(tmp_path / "missing.yaml"), "replay", str(bad)]) == 3


def test_config_command_prints_yaml(tmp_path: Path, capsys):
    assert main(["--config", str(tmp_path / "missing.yaml"), "config", "--zoom-min", "1.1"]) == 0
    printed = capsys.readouterr().out
    assert "min_zoom: 1.1" in printed
    assert "tracker:" in printed
