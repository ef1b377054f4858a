"""Occupancy-grid learning of the active play area."""
from __future__ import annotations

import math
from typing import Iterable, Optional, Union

import numpy as np
from loguru import logger

from .config import CourtRegionConfig
from .geometry import Box, CourtRegion
from .models import Detection


class CourtRegionLearner:
    """Accumulates where people stand and derives the play-area rectangle.

    Every observed box increments the grid cells it overlaps. Every
    ``recompute_interval`` seconds the hot cells (above a fraction of the
    grid maximum, inside the vertical band) define the new region and the
    whole grid decays so older play fades out.
    """

    def __init__(self, config: Optional[CourtRegionConfig] = None) -> None:
        self.config = config or CourtRegionConfig()
        size = self.config.grid_size
        self.grid = np.zeros((size, size), dtype=np.float64)
        self._region = self.default_region()
        self._last_recompute: Optional[float] = None
        self.version = 0

    def default_region(self) -> CourtRegion:
        return CourtRegion(*self.config.default_region).normalized(self.config.min_width, self.config.min_height)

    def current_region(self) -> CourtRegion:
        return self._region

    def update(self, observations: Iterable[Union[Detection, Box]], timestamp: float) -> CourtRegion:
        self.accumulate(getattr(item, "box", item) for item in observations)
        if not math.isfinite(timestamp):
            return self._region
        if self._last_recompute is None:
            self._last_recompute = timestamp
        elif timestamp - self._last_recompute >= self.config.recompute_interval or timestamp < self._last_recompute:
            self._last_recompute = timestamp
            self.recompute()
        return self._region

    def accumulate(self, boxes: Iterable[Box]) -> None:
        size = self.config.grid_size
        for box in boxes:
            box = box.clipped()
            if box.w <= 0.0 or box.h <= 0.0:
                continue
            x0 = min(size - 1, int(box.x * size))
            x1 = min(size - 1, int(box.max_x * size))
            y0 = min(size - 1, int(box.y * size))
            y1 = min(size - 1, int(box.max_y * size))
            self.grid[y0 : y1 + 1, x0 : x1 + 1] += 1.0

    def recompute(self) -> CourtRegion:
        cfg = self.config
        size = cfg.grid_size
        peak = float(self.grid.max())
        if peak > 0.0:
            row_lo = int(size * cfg.band_top)
            row_hi = max(row_lo + 1, int(size * cfg.band_bottom))
            band = self.grid[row_lo:row_hi]
            hot_rows, hot_cols = np.nonzero(band > peak * cfg.occupancy_threshold)
            if hot_rows.size:
                min_y = (row_lo + int(hot_rows.min())) / size - cfg.padding
                max_y = (row_lo + int(hot_rows.max()) + 1) / size + cfg.padding
                min_x = int(hot_cols.min()) / size - cfg.padding
                max_x = (int(hot_cols.max()) + 1) / size + cfg.padding
                region = CourtRegion(min_x, max_x, min_y, max_y).normalized(cfg.min_width, cfg.min_height)
                if region != self._region:
                    self.version += 1
                    logger.info(
                        "Court region updated to x=[{:.2f}, {:.2f}] y=[{:.2f}, {:.2f}]",
                        region.min_x,
                        region.max_x,
                        region.min_y,
                        region.max_y,
                    )
                self._region = region
            else:
                logger.debug("No occupancy cell above threshold inside the band; keeping region")
        self.grid *= cfg.decay
        return self._region

    def reset(self) -> None:
        self.grid.fill(0.0)
        self._region = self.default_region()
        self._last_recompute = None
        self.version += 1
