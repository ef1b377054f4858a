"""Detection replay files and camera command output."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Sequence

import numpy as np
import pandas as pd
from loguru import logger

from .errors import ReplayFormatError
from .geometry import Box, Point
from .models import BallSignal, CameraCommand, Detection, FrameInput

CSV_COLUMNS = ("t", "x", "y", "w", "h", "confidence")


def _frame_from_record(record: Dict[str, Any]) -> FrameInput:
    ball = record.get("ball")
    return FrameInput(
        timestamp=float(record["t"]),
        detections=tuple(Detection.from_dict(d) for d in record.get("detections") or []),
        ball=BallSignal.from_dict(ball) if ball else None,
    )


def read_jsonl(path: Path) -> Iterator[FrameInput]:
    with path.open() as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield _frame_from_record(json.loads(line))
            except (ValueError, KeyError, TypeError) as exc:
                raise ReplayFormatError(f"{path}:{lineno}: {exc}") from exc


def read_csv(path: Path) -> Iterator[FrameInput]:
    """One row per detection; rows sharing ``t`` form a frame.

    A row with empty box columns marks a frame with no detections.
    """

    try:
        df = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise ReplayFormatError(f"{path}: {exc}") from exc
    missing = [c for c in CSV_COLUMNS if c not in df.columns]
    if missing:
        raise ReplayFormatError(f"{path}: missing columns {missing}")
    sig_cols = sorted((c for c in df.columns if c.startswith("sig_") and c[4:].isdigit()), key=lambda c: int(c[4:]))
    has_ball = {"ball_x", "ball_y", "ball_conf"}.issubset(df.columns)

    for t, group in df.groupby("t", sort=True):
        detections: List[Detection] = []
        for values in group.to_dict("records"):
            if any(pd.isna(values[c]) for c in ("x", "y", "w", "h")):
                continue
            signature = None
            if sig_cols:
                signature = np.asarray([values[c] for c in sig_cols], dtype=np.float32)
            detections.append(
                Detection(
                    box=Box(float(values["x"]), float(values["y"]), float(values["w"]), float(values["h"])),
                    confidence=float(values["confidence"]) if not pd.isna(values["confidence"]) else 1.0,
                    signature=signature,
                )
            )
        ball = None
        if has_ball:
            first = group.iloc[0]
            if not pd.isna(first["ball_x"]) and not pd.isna(first["ball_y"]):
                conf = 0.0 if pd.isna(first["ball_conf"]) else float(first["ball_conf"])
                ball = BallSignal(Point(float(first["ball_x"]), float(first["ball_y"])), conf)
        yield FrameInput(timestamp=float(t), detections=tuple(detections), ball=ball)


def read_replay(path: Path | str) -> Iterator[FrameInput]:
    replay = Path(path)
    if not replay.exists():
        raise ReplayFormatError(f"{replay}: no such file")
    suffix = replay.suffix.lower()
    if suffix in {".jsonl", ".ndjson", ".json"}:
        return read_jsonl(replay)
    if suffix == ".csv":
        return read_csv(replay)
    raise ReplayFormatError(f"{replay}: unsupported replay format '{suffix}'")


def write_commands(path: Path | str, commands: Sequence[CameraCommand]) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    rows = [c.to_dict() for c in commands]
    if out.suffix.lower() in {".jsonl", ".ndjson"}:
        with out.open("w") as f:
            for row in rows:
                f.write(json.dumps(row) + "\n")
    else:
        pd.DataFrame(rows).to_csv(out, index=False)
    logger.info("Wrote {} camera commands to {}", len(rows), out)
    return out
