"""Appearance signatures used for association and re-identification."""
from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from .geometry import Box, clamp


def extract_signature(frame_bgr: np.ndarray, box: Box, bins: int = 16) -> np.ndarray:
    """HSV histogram of the interior of ``box`` (normalized coordinates).

    The outer 15% of the box is trimmed so background pixels around the
    person contribute less. Returns a flat ``(3 * bins,)`` float32 vector.
    """

    height, width = frame_bgr.shape[:2]
    inset_w = box.w * 0.15
    inset_h = box.h * 0.15
    x1 = max(0, int((box.x + inset_w) * width))
    y1 = max(0, int((box.y + inset_h) * height))
    x2 = min(width, int((box.max_x - inset_w) * width))
    y2 = min(height, int((box.max_y - inset_h) * height))
    if x2 <= x1 or y2 <= y1:
        return np.zeros(3 * bins, dtype=np.float32)

    hsv = cv2.cvtColor(frame_bgr[y1:y2, x1:x2], cv2.COLOR_BGR2HSV)
    hist_h = cv2.calcHist([hsv], [0], None, [bins], [0, 180])
    hist_s = cv2.calcHist([hsv], [1], None, [bins], [0, 256])
    hist_v = cv2.calcHist([hsv], [2], None, [bins], [0, 256])
    hist_h = cv2.normalize(hist_h, hist_h).flatten()
    hist_s = cv2.normalize(hist_s, hist_s).flatten()
    hist_v = cv2.normalize(hist_v, hist_v).flatten()
    return np.concatenate([hist_h, hist_s, hist_v]).astype(np.float32)


def signature_similarity(a: Optional[np.ndarray], b: Optional[np.ndarray]) -> float:
    """Cosine similarity of two signatures, clamped to [0, 1].

    Missing or mismatched signatures score a neutral 0.5 so that position
    alone decides ordinary association (and re-identification, which needs
    a much higher score, cannot happen).
    """

    if a is None or b is None or a.shape != b.shape or a.size == 0:
        return 0.5
    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm <= 1e-12:
        return 0.5
    return clamp(float(np.dot(a, b)) / norm, 0.0, 1.0)


def blend_signature(current: Optional[np.ndarray], new: Optional[np.ndarray], alpha: float) -> Optional[np.ndarray]:
    if new is None:
        return current
    if current is None or current.shape != new.shape:
        return new.astype(np.float32).copy()
    return ((1.0 - alpha) * current + alpha * new).astype(np.float32)
