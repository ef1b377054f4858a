"""Predictive lead, scene activity and proximity damping."""
from __future__ import annotations

from collections import deque
from typing import Deque, Optional, Sequence, Tuple

import numpy as np

from .geometry import Point, clamp
from .tracker import TrackSnapshot


class PredictiveLead:
    """Extrapolates the focal point a short horizon ahead with a linear fit."""

    def __init__(self, window: float = 0.5, horizon: float = 0.4, bounds: Tuple[float, float] = (0.1, 0.9)) -> None:
        self.window = window
        self.horizon = horizon
        self.bounds = bounds
        self._history: Deque[Tuple[float, Point]] = deque()

    def reset(self) -> None:
        self._history.clear()

    def update(self, point: Point, timestamp: float) -> Point:
        if self._history and timestamp < self._history[-1][0]:
            self._history.clear()
        self._history.append((timestamp, point))
        while self._history and timestamp - self._history[0][0] > self.window:
            self._history.popleft()
        if len(self._history) < 3:
            return point

        t = np.array([s[0] for s in self._history]) - timestamp
        if float(t.max() - t.min()) <= 1e-6:
            return point
        xs = np.array([s[1].x for s in self._history])
        ys = np.array([s[1].y for s in self._history])
        slope_x, icpt_x = np.polyfit(t, xs, 1)
        slope_y, icpt_y = np.polyfit(t, ys, 1)
        lo, hi = self.bounds
        return Point(
            clamp(float(icpt_x + slope_x * self.horizon), lo, hi),
            clamp(float(icpt_y + slope_y * self.horizon), lo, hi),
        )


class SceneActivityMonitor:
    def __init__(self, samples: int = 30, high_speed: float = 0.05) -> None:
        self.high_speed = high_speed
        self._speeds: Deque[float] = deque(maxlen=samples)

    def reset(self) -> None:
        self._speeds.clear()

    def update(self, tracks: Sequence[TrackSnapshot]) -> float:
        confirmed = [t.speed for t in tracks if t.is_confirmed]
        self._speeds.append(float(np.mean(confirmed)) if confirmed else 0.0)
        return self.activity

    @property
    def activity(self) -> float:
        return float(np.mean(self._speeds)) if self._speeds else 0.0

    @property
    def is_high_action(self) -> bool:
        return self.activity > self.high_speed


def proximity_damping(avg_height: Optional[float]) -> float:
    """Pan gain factor: tall (close) players get gentler camera motion."""

    if not avg_height:
        return 1.0
    return clamp(1.0 - (avg_height - 0.15) * 2.0, 0.2, 1.0)
