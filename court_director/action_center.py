"""Focal point and spread of the play from confirmed tracks."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .config import ActionCenterConfig
from .geometry import CENTER, Point
from .models import BallSignal, PersonLabel
from .tracker import TrackSnapshot


@dataclass(frozen=True)
class ActionEstimate:
    focal_point: Point
    spread: float
    confidence: float = 0.0
    contributors: int = 0
    used_ball: bool = False

    @property
    def has_target(self) -> bool:
        return self.confidence > 0.0


def label_weight(label: PersonLabel, players_present: bool, config: ActionCenterConfig) -> float:
    if label is PersonLabel.PLAYER:
        return 1.0
    if label is PersonLabel.REFEREE:
        return config.referee_weight
    if label is PersonLabel.ADULT or label is PersonLabel.UNKNOWN:
        return 0.0 if players_present else 1.0
    raise ValueError(f"unhandled person label {label!r}")


class ActionCenterEstimator:
    """Proximity- and momentum-weighted centroid of the tracked people.

    Tracks near the current camera focus and fast movers count more.
    Without any usable input the previous estimate is returned unchanged.
    """

    def __init__(self, config: Optional[ActionCenterConfig] = None) -> None:
        self.config = config or ActionCenterConfig()
        self._last = ActionEstimate(CENTER, 0.0)

    @property
    def last(self) -> ActionEstimate:
        return self._last

    def reset(self) -> None:
        self._last = ActionEstimate(CENTER, 0.0)

    def estimate(
        self,
        tracks: Sequence[TrackSnapshot],
        ball: Optional[BallSignal],
        current_focus: Point,
    ) -> ActionEstimate:
        cfg = self.config
        confirmed = [t for t in tracks if t.is_confirmed]
        players_present = any(t.label is PersonLabel.PLAYER for t in confirmed)

        weighted: List[Tuple[Point, float]] = []
        for track in confirmed:
            factor = label_weight(track.label, players_present, cfg)
            if factor <= 0.0:
                continue
            pos = track.position
            proximity = max(cfg.proximity_floor, 1.0 - pos.distance(current_focus) * cfg.proximity_gain)
            momentum = 1.0 + track.speed * cfg.momentum_gain
            weighted.append((pos, factor * proximity * momentum))

        ball_ok = ball is not None and math.isfinite(ball.position.x) and math.isfinite(ball.position.y)
        if weighted:
            total = sum(w for _, w in weighted)
            cx = sum(p.x * w for p, w in weighted) / total
            cy = sum(p.y * w for p, w in weighted) / total
            variance = sum(w * ((p.x - cx) ** 2 + (p.y - cy) ** 2) for p, w in weighted) / total
            focal = Point(cx, cy)
            used_ball = False
            if players_present and ball_ok and ball.confidence > cfg.ball_min_confidence:
                share = cfg.ball_weight
                focal = Point(
                    ball.position.x * share + cx * (1.0 - share),
                    ball.position.y * share + cy * (1.0 - share),
                )
                used_ball = True
            players = sum(1 for t in confirmed if t.label is PersonLabel.PLAYER)
            confidence = 0.7 if players >= 2 else 0.4
            self._last = ActionEstimate(focal, math.sqrt(variance), confidence, len(weighted), used_ball)
        elif ball_ok and ball.confidence > cfg.ball_only_confidence:
            self._last = ActionEstimate(ball.position, self._last.spread, ball.confidence, 0, True)
        else:
            self._last = ActionEstimate(self._last.focal_point, self._last.spread)
        return self._last
