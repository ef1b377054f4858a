"""Console entry point for the camera director."""
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Iterator, List, Optional

import cv2
import numpy as np
from loguru import logger
from tqdm import tqdm

from .appearance import extract_signature
from .config import DirectorConfig, build_config, dump_config, load_config
from .director import CameraDirector
from .errors import ConfigurationError, ReplayFormatError
from .io import read_replay, write_commands
from .models import CameraCommand, FrameInput


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(sys.stderr, level=level)


def _load_config(path: Path) -> DirectorConfig:
    if not path.exists():
        logger.info("Using default configuration; no {} found", path)
    return load_config(path)


def _apply_overrides(config: DirectorConfig, args: argparse.Namespace) -> DirectorConfig:
    data = config.model_dump()
    if getattr(args, "zoom_min", None) is not None:
        data["zoom"]["min_zoom"] = args.zoom_min
    if getattr(args, "zoom_max", None) is not None:
        data["zoom"]["max_zoom"] = args.zoom_max
    if getattr(args, "dead_zone", None) is not None:
        data["pan"]["dead_zone"] = args.dead_zone
    if getattr(args, "no_lead", False):
        data["lead"]["enabled"] = False
    if getattr(args, "no_ball", False):
        data["ball"]["enabled"] = False
    return build_config(data)


def _attach_video(frames: Iterator[FrameInput], video: Path) -> Iterator[FrameInput]:
    """Pair replay frames with decoded video frames by timestamp."""

    cap = cv2.VideoCapture(str(video))
    if not cap.isOpened():
        logger.warning("Failed to open {}; replaying without pixels", video)
        yield from frames
        return
    fps = cap.get(cv2.CAP_PROP_FPS) or 30.0
    index = -1
    image: Optional[np.ndarray] = None
    try:
        for item in frames:
            wanted = int(round(item.timestamp * fps))
            while index < wanted:
                ok, decoded = cap.read()
                if not ok:
                    break
                image = decoded
                index += 1
            if image is None:
                yield item
                continue
            detections = tuple(
                d if d.signature is not None else replace(d, signature=extract_signature(image, d.box))
                for d in item.detections
            )
            yield replace(item, detections=detections, frame=image)
    finally:
        cap.release()


def cmd_replay(config: DirectorConfig, args: argparse.Namespace) -> int:
    director = CameraDirector(_apply_overrides(config, args))
    frames = read_replay(args.detections)
    if args.video:
        frames = _attach_video(frames, Path(args.video))
    commands: List[CameraCommand] = []
    for item in tqdm(frames, desc="replay", unit="frame", leave=False):
        commands.append(director.submit(item))
    out = Path(args.out or Path(args.detections).with_suffix(".commands.csv"))
    write_commands(out, commands)
    stats = director.statistics.as_dict()
    logger.info("Replay summary: {}", json.dumps(stats))
    if args.stats:
        Path(args.stats).write_text(json.dumps(stats, indent=2))
    return 0


def cmd_config(config: DirectorConfig, args: argparse.Namespace) -> int:
    sys.stdout.write(dump_config(_apply_overrides(config, args)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="court-director", description="Autonomous pan/zoom director for sports video")
    parser.add_argument("--config", default="config.yaml", help="Path to YAML configuration file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    replay_p = sub.add_parser("replay", help="Replay recorded detections and emit camera commands")
    replay_p.add_argument("detections", help="Detections file (.jsonl or .csv)")
    replay_p.add_argument("--video", help="Source video for the stripe test, ball detection and signatures")
    replay_p.add_argument("--out", help="Output commands (.csv or .jsonl)")
    replay_p.add_argument("--stats", help="Write session statistics JSON here")
    replay_p.add_argument("--zoom-min", dest="zoom_min", type=float)
    replay_p.add_argument("--zoom-max", dest="zoom_max", type=float)
    replay_p.add_argument("--dead-zone", dest="dead_zone", type=float)
    replay_p.add_argument("--no-lead", dest="no_lead", action="store_true")
    replay_p.add_argument("--no-ball", dest="no_ball", action="store_true")
    replay_p.set_defaults(func=cmd_replay)

    config_p = sub.add_parser("config", help="Print the resolved configuration")
    config_p.add_argument("--zoom-min", dest="zoom_min", type=float)
    config_p.add_argument("--zoom-max", dest="zoom_max", type=float)
    config_p.set_defaults(func=cmd_config)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        config = _load_config(Path(args.config))
        return args.func(config, args)
    except ConfigurationError as exc:
        logger.error("Invalid configuration: {}", exc)
        return 2
    except ReplayFormatError as exc:
        logger.error("Cannot read replay: {}", exc)
        return 3


if __name__ == "__main__":
    sys.exit(main())
