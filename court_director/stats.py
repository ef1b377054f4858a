"""Running statistics for a director session."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Optional


@dataclass
class SessionStatistics:
    frames: int = 0
    frames_with_detections: int = 0
    detections: int = 0
    tracks_created: int = 0
    tracks_revived: int = 0
    tracks_deleted: int = 0
    timeout_frames: int = 0
    recovery_frames: int = 0
    confirmed_track_frames: int = 0
    first_timestamp: Optional[float] = None
    last_timestamp: Optional[float] = None

    def record(
        self,
        timestamp: float,
        detections: int,
        confirmed: int,
        timeout_hold: bool,
        recovery: bool,
    ) -> None:
        self.frames += 1
        self.detections += detections
        if detections:
            self.frames_with_detections += 1
        self.confirmed_track_frames += confirmed
        if timeout_hold:
            self.timeout_frames += 1
        if recovery:
            self.recovery_frames += 1
        if not math.isfinite(timestamp):
            return
        if self.first_timestamp is None:
            self.first_timestamp = timestamp
        self.last_timestamp = timestamp

    @property
    def mean_confirmed_tracks(self) -> float:
        return self.confirmed_track_frames / self.frames if self.frames else 0.0

    @property
    def elapsed(self) -> float:
        if self.first_timestamp is None or self.last_timestamp is None:
            return 0.0
        return max(0.0, self.last_timestamp - self.first_timestamp)

    def as_dict(self) -> dict:
        data = asdict(self)
        data["mean_confirmed_tracks"] = round(self.mean_confirmed_tracks, 3)
        data["elapsed"] = round(self.elapsed, 3)
        return data
