"""Per-frame data passed into and out of the camera director."""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from .geometry import Box, CourtRegion, Point


class PersonLabel(str, Enum):
    PLAYER = "player"
    REFEREE = "referee"
    ADULT = "adult"
    UNKNOWN = "unknown"


class DirectorState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    TIMEOUT_HOLD = "timeout_hold"


@dataclass(frozen=True)
class Detection:
    """One detected person in one frame."""

    box: Box
    confidence: float = 1.0
    signature: Optional[np.ndarray] = field(default=None, compare=False)
    label: Optional[PersonLabel] = None

    @property
    def center(self) -> Point:
        return self.box.center

    def is_valid(self) -> bool:
        return self.box.is_valid() and math.isfinite(self.confidence)

    def with_label(self, label: PersonLabel) -> "Detection":
        return replace(self, label=label)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Detection":
        x, y, w, h = (float(v) for v in data["box"])
        signature = data.get("signature")
        label = data.get("label")
        return cls(
            box=Box(x, y, w, h),
            confidence=float(data.get("confidence", 1.0)),
            signature=np.asarray(signature, dtype=np.float32) if signature is not None else None,
            label=PersonLabel(label) if label else None,
        )


@dataclass(frozen=True)
class BallSignal:
    position: Point
    confidence: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BallSignal":
        return cls(Point(float(data["x"]), float(data["y"])), float(data.get("confidence", 0.0)))


@dataclass(frozen=True)
class FrameInput:
    timestamp: float
    detections: Sequence[Detection] = ()
    ball: Optional[BallSignal] = None
    frame: Optional[np.ndarray] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Diagnostics:
    track_count: int = 0
    player_count: int = 0
    referee_count: int = 0
    is_timeout_hold: bool = False
    is_in_recovery_mode: bool = False
    state: DirectorState = DirectorState.IDLE
    court_region: Optional[CourtRegion] = None
    reliability: float = 0.0
    desired_zoom: float = 0.0


@dataclass(frozen=True)
class CameraCommand:
    timestamp: float
    pan_target: Point
    zoom_target: float
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def to_dict(self) -> Dict[str, Any]:
        diag = self.diagnostics
        region: List[Optional[float]] = list(diag.court_region.as_tuple()) if diag.court_region else [None] * 4
        return {
            "t": round(self.timestamp, 4),
            "pan_x": round(self.pan_target.x, 5),
            "pan_y": round(self.pan_target.y, 5),
            "zoom": round(self.zoom_target, 5),
            "state": diag.state.value,
            "tracks": diag.track_count,
            "players": diag.player_count,
            "referees": diag.referee_count,
            "timeout_hold": diag.is_timeout_hold,
            "recovery": diag.is_in_recovery_mode,
            "reliability": round(diag.reliability, 4),
            "region_min_x": region[0],
            "region_max_x": region[1],
            "region_min_y": region[2],
            "region_max_y": region[3],
        }
