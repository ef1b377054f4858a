"""Player / referee / adult classification of person detections."""
from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .config import ClassifierConfig
from .geometry import Box
from .models import Detection, PersonLabel


def _count_transitions(pixels_bgr: np.ndarray, saturation_max: float, brightness_split: float) -> int:
    """Light/dark flips along a line of pixels, ignoring colored samples."""

    if pixels_bgr.size == 0:
        return 0
    px = pixels_bgr.astype(np.int32)
    brightness = px.sum(axis=1) // 3
    max_c = px.max(axis=1)
    min_c = px.min(axis=1)
    saturation = np.where(max_c > 0, (max_c - min_c) * 100 // np.maximum(max_c, 1), 0)
    grayscale = saturation < saturation_max
    light = brightness[grayscale] > brightness_split
    if light.size < 2:
        return 0
    return int(np.count_nonzero(light[1:] != light[:-1]))


def stripe_transitions(frame_bgr: np.ndarray, box: Box, config: ClassifierConfig) -> int:
    """Count referee-shirt stripe transitions in the torso of ``box``.

    Samples ``stripe_columns`` vertical lines and one horizontal line through
    the torso band. Returns the larger of the mean vertical count (over lines
    that saw any transition) and the horizontal count.
    """

    height, width = frame_bgr.shape[:2]
    x0 = max(0, int(box.x * width))
    x1 = min(width - 1, int(box.max_x * width))
    y0 = max(0, int((box.y + box.h * config.torso_offset) * height))
    y1 = min(height - 1, int((box.y + box.h * (config.torso_offset + config.torso_height)) * height))
    if x1 <= x0 + 10 or y1 <= y0 + 10:
        return 0

    step = config.stripe_step_px
    columns = config.stripe_columns
    vertical: List[int] = []
    for i in range(columns):
        offset = i / (columns - 1) if columns > 1 else 0.5
        x = x0 + int((x1 - x0) * offset)
        line = frame_bgr[y0:y1:step, x]
        count = _count_transitions(line, config.stripe_saturation_max, config.stripe_brightness_split)
        if count > 0:
            vertical.append(count)
    mean_vertical = sum(vertical) // len(vertical) if vertical else 0

    row = frame_bgr[(y0 + y1) // 2, x0:x1:step]
    horizontal = _count_transitions(row, config.stripe_saturation_max, config.stripe_brightness_split)
    return max(mean_vertical, horizontal)


class PersonClassifier:
    """Labels detections using a rolling height baseline and a torso stripe test."""

    def __init__(self, config: Optional[ClassifierConfig] = None) -> None:
        self.config = config or ClassifierConfig()
        self._heights: Deque[float] = deque(maxlen=self.config.height_buffer)

    @property
    def sample_count(self) -> int:
        return len(self._heights)

    @property
    def median_height(self) -> Optional[float]:
        if not self._heights:
            return None
        return float(np.median(np.fromiter(self._heights, dtype=np.float64)))

    def height_baseline(self) -> Tuple[float, ...]:
        return tuple(self._heights)

    def reset(self) -> None:
        self._heights.clear()

    def classify(self, detections: Sequence[Detection], frame: Optional[np.ndarray] = None) -> List[PersonLabel]:
        """Label every detection, then add its height to the baseline.

        Labels are decided against the baseline as it stood before this
        frame, so a crowd of tall people cannot redefine "tall" on arrival.
        """

        median = self.median_height if self.sample_count >= self.config.min_samples else None
        labels = [self._classify_one(det, frame, median) for det in detections]
        for det in detections:
            if det.box.h > 0.0:
                self._heights.append(det.box.h)
        return labels

    def label(self, detections: Sequence[Detection], frame: Optional[np.ndarray] = None) -> List[Detection]:
        labels = self.classify(detections, frame)
        return [det.with_label(lbl) for det, lbl in zip(detections, labels)]

    def _classify_one(self, det: Detection, frame: Optional[np.ndarray], median: Optional[float]) -> PersonLabel:
        if det.label is not None:
            return det.label
        if median is None:
            return PersonLabel.PLAYER
        if frame is not None:
            transitions = stripe_transitions(frame, det.box, self.config)
            if transitions >= self.config.stripe_min_transitions:
                logger.debug("Referee stripes ({}) at {}", transitions, det.box.center)
                return PersonLabel.REFEREE
        if det.box.w > det.box.h * self.config.max_aspect:
            return PersonLabel.UNKNOWN
        if det.box.h >= median * self.config.adult_height_ratio:
            return PersonLabel.ADULT
        return PersonLabel.PLAYER
