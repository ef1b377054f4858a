"""Color/shape heuristic that yields one weak ball position per frame."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import cv2
import numpy as np
from loguru import logger

from .config import BallConfig
from .geometry import Point
from .kalman import KalmanFilter2D
from .models import BallSignal

HOT_FRACTION = 1.0 / 3.0
WARM_FRACTION = 1.0 / 4.0


@dataclass(frozen=True)
class BallCandidate:
    position: Point
    confidence: float
    cells: int


def orange_mask(frame_bgr: np.ndarray, config: BallConfig) -> np.ndarray:
    """Binary mask of pixels inside the configured HSV range (OpenCV units)."""

    hsv = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2HSV)
    lower = np.array([config.hue_min / 2.0, config.sat_min * 255.0, config.val_min * 255.0])
    upper = np.array([config.hue_max / 2.0, config.sat_max * 255.0, config.val_max * 255.0])
    return cv2.inRange(hsv, lower, upper)


def occupancy_grid(mask: np.ndarray, grid_size: int) -> np.ndarray:
    """Fraction of masked pixels per grid cell."""

    small = cv2.resize(mask.astype(np.float32) / 255.0, (grid_size, grid_size), interpolation=cv2.INTER_AREA)
    return np.clip(small, 0.0, 1.0)


def find_candidates(
    grid: np.ndarray, config: BallConfig, previous: Optional[Point] = None
) -> List[BallCandidate]:
    size = grid.shape[0]
    warm = (grid >= WARM_FRACTION).astype(np.uint8)
    count, labels, stats, _ = cv2.connectedComponentsWithStats(warm, connectivity=4)
    candidates: List[BallCandidate] = []
    for label in range(1, count):
        cells = labels == label
        n_cells = int(stats[label, cv2.CC_STAT_AREA])
        if n_cells < config.min_cells or n_cells > config.max_cells:
            continue
        if not np.any(grid[cells] > HOT_FRACTION):
            continue
        rows, cols = np.nonzero(cells)
        center = Point((cols.mean() + 0.5) / size, (rows.mean() + 0.5) / size)
        if center.y < config.ignore_top:
            logger.debug("Ball candidate at {} rejected: hoop zone", center.as_tuple())
            continue
        if center.x < config.edge_margin or center.x > 1.0 - config.edge_margin:
            continue
        width = int(stats[label, cv2.CC_STAT_WIDTH])
        height = int(stats[label, cv2.CC_STAT_HEIGHT])
        aspect = width / max(height, 1)
        if not 0.5 < aspect < 2.0:
            continue
        circularity = 1.0 - abs(aspect - 1.0) * 0.5
        density = float(grid[cells].mean())
        penalty = 0.02 * max(0, n_cells - 8)
        confidence = density * circularity - penalty
        if previous is not None and 0.005 < center.distance(previous) < 0.15:
            confidence += 0.1
        confidence = min(1.0, confidence)
        if confidence > config.min_confidence:
            candidates.append(BallCandidate(center, confidence, n_cells))
    return candidates


class BallSignalDetector:
    """Finds an orange ball-sized blob and smooths it with a small Kalman filter."""

    def __init__(self, config: Optional[BallConfig] = None) -> None:
        self.config = config or BallConfig()
        self.reset()

    def reset(self) -> None:
        self._kalman: Optional[KalmanFilter2D] = None
        self._misses = 0

    def detect(self, frame_bgr: np.ndarray, dt: float) -> Optional[BallSignal]:
        if frame_bgr is None or frame_bgr.ndim != 3 or frame_bgr.size == 0:
            return None
        previous = Point(*self._kalman.position) if self._kalman is not None else None
        grid = occupancy_grid(orange_mask(frame_bgr, self.config), self.config.grid_size)
        candidates = find_candidates(grid, self.config, previous)
        return self.track(candidates, dt)

    def track(self, candidates: List[BallCandidate], dt: float) -> Optional[BallSignal]:
        """Feed this frame's candidates through the ball filter."""

        if self._kalman is None:
            if not candidates:
                return None
            first = max(candidates, key=lambda c: c.confidence)
            self._kalman = KalmanFilter2D(
                first.position.as_tuple(), process_noise=(0.001, 0.001, 0.05, 0.05), measurement_noise=0.002
            )
            self._misses = 0
            return BallSignal(first.position, first.confidence)

        predicted = Point(*self._kalman.predict(dt))
        best: Optional[BallCandidate] = None
        best_score = float("inf")
        for candidate in candidates:
            score = candidate.position.distance(predicted) / (candidate.confidence + 0.1)
            if score < best_score:
                best, best_score = candidate, score
        if best is not None and best_score < 0.15:
            self._kalman.update(best.position.as_tuple())
            self._misses = 0
            return BallSignal(Point(*self._kalman.position), best.confidence)

        self._misses += 1
        if self._misses > self.config.max_misses:
            logger.debug("Ball lost after {} misses", self._misses)
            self.reset()
            return None
        return BallSignal(predicted, max(0.1, 0.8 - 0.1 * self._misses))
