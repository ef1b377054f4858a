"""Shared fixtures for the court director test suite."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import numpy as np
import pytest

from court_director.config import DirectorConfig
from court_director.geometry import Box, Point
from court_director.models import Detection, PersonLabel
from court_director.track_state import TrackState
from court_director.tracker import TrackSnapshot


@pytest.fixture
def default_config() -> DirectorConfig:
    """Return a default DirectorConfig with no file."""
    return DirectorConfig()


@pytest.fixture
def make_detection() -> Callable[..., Detection]:
    """Factory for a person detection centered on (x, y)."""

    def _make(
        x: float,
        y: float,
        w: float = 0.05,
        h: float = 0.15,
        confidence: float = 0.9,
        signature: Optional[np.ndarray] = None,
        label: Optional[PersonLabel] = None,
    ) -> Detection:
        return Detection(Box.from_center(x, y, w, h), confidence, signature, label)

    return _make


@pytest.fixture
def make_signature() -> Callable[[int], np.ndarray]:
    """Factory for mutually orthogonal appearance signatures."""

    def _make(index: int, size: int = 48) -> np.ndarray:
        sig = np.zeros(size, dtype=np.float32)
        sig[index % size] = 1.0
        return sig

    return _make


@pytest.fixture
def make_track() -> Callable[..., TrackSnapshot]:
    """Factory for a tracker snapshot, confirmed player by default."""

    def _make(
        track_id: int,
        x: float,
        y: float,
        label: PersonLabel = PersonLabel.PLAYER,
        velocity: Point = Point(0.0, 0.0),
        state: TrackState = TrackState.CONFIRMED,
        h: float = 0.15,
    ) -> TrackSnapshot:
        return TrackSnapshot(
            track_id=track_id,
            state=state,
            box=Box.from_center(x, y, 0.05, h),
            velocity=velocity,
            label=label,
            reliability=1.0,
            occlusion=0.0,
            hits=5,
            misses=0,
        )

    return _make


@pytest.fixture
def sample_yaml(tmp_path: Path) -> Path:
    """Write a minimal config.yaml and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "zoom:\n"
        "  min_zoom: 1.1\n"
        "  max_zoom: 1.8\n"
        "pan:\n"
        "  dead_zone: 0.04\n"
        "tracker:\n"
        "  motion_model: Constant_Acceleration\n"
    )
    return cfg
