"""Normalized-coordinate geometry helpers."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def distance(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


CENTER = Point(0.5, 0.5)


@dataclass(frozen=True)
class Box:
    """Axis-aligned box, top-left origin, in normalized frame units."""

    x: float
    y: float
    w: float
    h: float

    @property
    def center(self) -> Point:
        return Point(self.x + self.w / 2.0, self.y + self.h / 2.0)

    @property
    def max_x(self) -> float:
        return self.x + self.w

    @property
    def max_y(self) -> float:
        return self.y + self.h

    @property
    def area(self) -> float:
        return self.w * self.h

    def is_valid(self) -> bool:
        values = (self.x, self.y, self.w, self.h)
        return all(math.isfinite(v) for v in values) and self.w > 0.0 and self.h > 0.0

    def clipped(self) -> "Box":
        x0 = clamp(self.x, 0.0, 1.0)
        y0 = clamp(self.y, 0.0, 1.0)
        x1 = clamp(self.max_x, 0.0, 1.0)
        y1 = clamp(self.max_y, 0.0, 1.0)
        return Box(x0, y0, max(0.0, x1 - x0), max(0.0, y1 - y0))

    @classmethod
    def from_center(cls, cx: float, cy: float, w: float, h: float) -> "Box":
        return cls(cx - w / 2.0, cy - h / 2.0, w, h)


@dataclass(frozen=True)
class CourtRegion:
    """Learned play area; always non-empty and inside the unit square."""

    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def area(self) -> float:
        return self.width * self.height

    def contains(self, point: Point, margin: float = 0.0) -> bool:
        return (
            self.min_x - margin <= point.x <= self.max_x + margin
            and self.min_y - margin <= point.y <= self.max_y + margin
        )

    def normalized(self, min_width: float, min_height: float) -> "CourtRegion":
        """Clamp to [0, 1] and grow around the center up to the minimum size."""

        min_x, max_x = _grow_span(self.min_x, self.max_x, min_width)
        min_y, max_y = _grow_span(self.min_y, self.max_y, min_height)
        return CourtRegion(min_x, max_x, min_y, max_y)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.min_x, self.max_x, self.min_y, self.max_y)


def _grow_span(lo: float, hi: float, minimum: float) -> Tuple[float, float]:
    lo = clamp(lo, 0.0, 1.0)
    hi = clamp(hi, 0.0, 1.0)
    if hi < lo:
        lo, hi = hi, lo
    minimum = clamp(minimum, 1e-3, 1.0)
    if hi - lo >= minimum:
        return lo, hi
    mid = (lo + hi) / 2.0
    lo = mid - minimum / 2.0
    hi = mid + minimum / 2.0
    if lo < 0.0:
        lo, hi = 0.0, minimum
    elif hi > 1.0:
        lo, hi = 1.0 - minimum, 1.0
    return lo, hi


def envelope(boxes: Iterable[Box], margin: float = 0.0) -> Optional[Box]:
    boxes = list(boxes)
    if not boxes:
        return None
    x0 = clamp(min(b.x for b in boxes) - margin, 0.0, 1.0)
    y0 = clamp(min(b.y for b in boxes) - margin, 0.0, 1.0)
    x1 = clamp(max(b.max_x for b in boxes) + margin, 0.0, 1.0)
    y1 = clamp(max(b.max_y for b in boxes) + margin, 0.0, 1.0)
    return Box(x0, y0, x1 - x0, y1 - y0)
