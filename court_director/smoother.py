"""Pan smoothing, zoom policy and the timeout-hold state machine."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from loguru import logger

from .action_center import ActionEstimate
from .config import PanConfig, TimeoutConfig, ZoomConfig
from .geometry import CENTER, Point, clamp
from .models import BallSignal, DirectorState, PersonLabel
from .tracker import TrackSnapshot


def frame_steps(dt: float, reference_fps: float) -> float:
    """Express ``dt`` in reference frames; unusable dts count as one frame."""

    if not math.isfinite(dt) or dt <= 0.0:
        return 1.0
    return min(dt * reference_fps, 30.0)


@dataclass(frozen=True)
class FocusState:
    position: Point = CENTER
    velocity: Point = Point(0.0, 0.0)
    target: Point = CENTER
    streak: int = 0
    zoom: float = 1.3
    zoom_target: float = 1.3
    timeout_mode: bool = False
    state: DirectorState = DirectorState.IDLE


class PanSmoother:
    """Momentum pan toward an accepted target with dead zone and streak gating."""

    def __init__(self, config: Optional[PanConfig] = None) -> None:
        self.config = config or PanConfig()
        self.reset()

    def reset(self) -> None:
        self.position = CENTER
        self.velocity = Point(0.0, 0.0)
        self.target = CENTER
        self.streak = 0

    def update(
        self,
        target: Optional[Point],
        confidence: float,
        dt: float,
        timeout_mode: bool = False,
        proximity_factor: float = 1.0,
    ) -> Point:
        cfg = self.config
        steps = frame_steps(dt, cfg.reference_fps)
        smoothing = cfg.smoothing * proximity_factor
        max_speed = cfg.max_speed * proximity_factor
        if timeout_mode:
            smoothing *= cfg.timeout_scale
            max_speed *= cfg.timeout_scale

        if target is not None and confidence >= cfg.streak_confidence:
            self.streak += 1
        else:
            self.streak = 0

        if target is not None and self.streak >= cfg.min_streak:
            if target.distance(self.position) > cfg.dead_zone:
                self.target = target

        vx = self.velocity.x + (self.target.x - self.position.x) * smoothing * steps
        vy = self.velocity.y + (self.target.y - self.position.y) * smoothing * steps
        damping = cfg.damping ** steps
        vx *= damping
        vy *= damping
        speed = math.hypot(vx, vy)
        limit = max_speed * steps
        if speed > limit:
            scale = limit / speed
            vx *= scale
            vy *= scale
        self.velocity = Point(vx, vy)
        self.position = Point(
            clamp(self.position.x + vx, cfg.position_min, cfg.position_max),
            clamp(self.position.y + vy, cfg.position_min, cfg.position_max),
        )
        return self.position


class ZoomController:
    """Banded zoom policy followed by a slow exponential approach."""

    def __init__(self, config: Optional[ZoomConfig] = None) -> None:
        self.config = config or ZoomConfig()
        self.reset()

    def reset(self) -> None:
        self.zoom = self.config.initial_zoom
        self.target = self.config.initial_zoom

    def choose_target(
        self,
        spread: float,
        person_count: int,
        ball_confidence: float,
        timeout_mode: bool = False,
        recovery: bool = False,
        high_action: bool = False,
    ) -> Optional[float]:
        """Desired zoom for this frame, or None to keep the current target."""

        cfg = self.config
        if timeout_mode:
            return cfg.min_zoom
        ball_seen = ball_confidence > cfg.ball_confidence
        if person_count > 0:
            if spread > cfg.wide_spread:
                desired = cfg.wide_zoom
            elif spread < cfg.tight_spread and ball_seen:
                desired = cfg.tight_zoom
            elif ball_seen:
                desired = cfg.ball_zoom
            else:
                desired = cfg.default_zoom
        elif ball_seen:
            desired = cfg.tight_zoom
        else:
            return None
        if high_action:
            desired = min(desired, cfg.wide_zoom)
        if recovery:
            desired -= cfg.recovery_zoom_out
        return clamp(desired, cfg.min_zoom, cfg.max_zoom)

    def update(self, desired: Optional[float], dt: float, reference_fps: float = 30.0) -> float:
        cfg = self.config
        if desired is not None:
            self.target = clamp(desired, cfg.min_zoom, cfg.max_zoom)
        steps = frame_steps(dt, reference_fps)
        alpha = 1.0 - (1.0 - cfg.smoothing) ** steps
        self.zoom = clamp(self.zoom + (self.target - self.zoom) * alpha, cfg.min_zoom, cfg.max_zoom)
        return self.zoom


def edge_clustered(positions: Sequence[Point], config: TimeoutConfig) -> bool:
    """True when a supermajority of player positions sit in the edge bands."""

    if len(positions) < config.min_players:
        return False
    lo, hi = config.edge_band, 1.0 - config.edge_band
    edge = sum(1 for p in positions if p.x < lo or p.x > hi)
    return edge / len(positions) > config.majority_fraction


def is_edge_clustered(tracks: Sequence[TrackSnapshot], config: TimeoutConfig) -> bool:
    players = [t.position for t in tracks if t.is_confirmed and t.label is PersonLabel.PLAYER]
    return edge_clustered(players, config)


class MotionController:
    """Owns :class:`FocusState`; the only component whose output the camera sees."""

    def __init__(
        self,
        pan: Optional[PanConfig] = None,
        zoom: Optional[ZoomConfig] = None,
        timeout: Optional[TimeoutConfig] = None,
    ) -> None:
        self.pan = PanSmoother(pan)
        self.zoom = ZoomController(zoom)
        self.timeout_config = timeout or TimeoutConfig()
        self._state = DirectorState.IDLE

    @property
    def state(self) -> DirectorState:
        return self._state

    @property
    def focus(self) -> FocusState:
        return FocusState(
            position=self.pan.position,
            velocity=self.pan.velocity,
            target=self.pan.target,
            streak=self.pan.streak,
            zoom=self.zoom.zoom,
            zoom_target=self.zoom.target,
            timeout_mode=self._state is DirectorState.TIMEOUT_HOLD,
            state=self._state,
        )

    def reset(self) -> None:
        self.pan.reset()
        self.zoom.reset()
        self._state = DirectorState.IDLE

    def update(
        self,
        estimate: ActionEstimate,
        tracks: Sequence[TrackSnapshot],
        ball: Optional[BallSignal],
        dt: float,
        recovery: bool = False,
        high_action: bool = False,
        proximity_factor: float = 1.0,
        target: Optional[Point] = None,
        players: Optional[Sequence[Point]] = None,
    ) -> FocusState:
        """Advance one frame.

        ``target`` overrides the estimate's focal point. ``players`` are
        player positions seen this frame whether or not they are tracked;
        sideline groups often sit outside the court region.
        """

        timeout = is_edge_clustered(tracks, self.timeout_config)
        if not timeout and players is not None:
            timeout = edge_clustered(players, self.timeout_config)
        if timeout:
            state = DirectorState.TIMEOUT_HOLD
        elif estimate.has_target or any(t.is_confirmed for t in tracks):
            state = DirectorState.TRACKING
        else:
            state = DirectorState.IDLE
        if state is not self._state:
            logger.debug("Motion state {} -> {}", self._state.value, state.value)
            self._state = state

        aim = (target or estimate.focal_point) if estimate.has_target else None
        self.pan.update(aim, estimate.confidence, dt, timeout_mode=timeout, proximity_factor=proximity_factor)

        persons = sum(1 for t in tracks if t.is_confirmed)
        ball_confidence = ball.confidence if ball is not None else 0.0
        desired = self.zoom.choose_target(
            estimate.spread,
            persons,
            ball_confidence,
            timeout_mode=timeout,
            recovery=recovery,
            high_action=high_action,
        )
        self.zoom.update(desired, dt, self.pan.config.reference_fps)
        return self.focus
