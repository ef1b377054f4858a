"""The per-frame detection-to-camera-command pipeline."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from .action_center import ActionCenterEstimator
from .ball_signal import BallSignalDetector
from .classifier import PersonClassifier
from .config import DirectorConfig, build_config
from .court_region import CourtRegionLearner
from .geometry import CourtRegion, Point
from .lead import PredictiveLead, SceneActivityMonitor, proximity_damping
from .models import BallSignal, CameraCommand, Detection, Diagnostics, DirectorState, FrameInput, PersonLabel
from .smoother import MotionController
from .stats import SessionStatistics
from .tracker import MultiObjectTracker


@dataclass(frozen=True)
class Calibration:
    """Learned state that survives :meth:`CameraDirector.reset_tracking_state`."""

    version: int
    court_region: CourtRegion
    height_baseline: Tuple[float, ...]


class CameraDirector:
    """Turns per-frame detections into pan/zoom commands.

    Construction validates the configuration and raises
    :class:`~court_director.errors.ConfigurationError` on bad values.
    After that, :meth:`process_frame` never raises: per-frame problems are
    logged and the previous command is held.
    """

    def __init__(self, config: Union[DirectorConfig, Mapping[str, Any], None] = None) -> None:
        if config is None:
            config = DirectorConfig()
        elif not isinstance(config, DirectorConfig):
            config = build_config(config)
        self.config = config
        self.classifier = PersonClassifier(config.classifier)
        self.court = CourtRegionLearner(config.court)
        self.tracker = MultiObjectTracker(config.tracker)
        self.action = ActionCenterEstimator(config.action)
        self.motion = MotionController(config.pan, config.zoom, config.timeout)
        self.ball_detector = BallSignalDetector(config.ball)
        self.lead = PredictiveLead(config.lead.window, config.lead.horizon)
        self.activity = SceneActivityMonitor(config.lead.activity_samples, config.lead.high_activity_speed)
        self.statistics = SessionStatistics()
        self._last_timestamp: Optional[float] = None
        self._last_confirmed: Optional[float] = None
        self._last_command = self._idle_command(0.0)

    # ---------------------------------------------------------------- state
    @property
    def court_region(self) -> CourtRegion:
        return self.court.current_region()

    @property
    def height_baseline(self) -> Tuple[float, ...]:
        return self.classifier.height_baseline()

    @property
    def calibration(self) -> Calibration:
        return Calibration(self.court.version, self.court_region, self.height_baseline)

    @property
    def last_command(self) -> CameraCommand:
        return self._last_command

    def reset_tracking_state(self) -> None:
        """Drop tracks and camera momentum; keep the court region and height baseline."""

        self.tracker.reset()
        self.motion.reset()
        self.action.reset()
        self.lead.reset()
        self.activity.reset()
        self.ball_detector.reset()
        self._last_timestamp = None
        self._last_confirmed = None
        self._last_command = self._idle_command(self._last_command.timestamp)
        logger.info("Tracking state reset; calibration version {} kept", self.court.version)

    def recalibrate(self) -> None:
        """Full reset, including everything learned about the court and the players."""

        self.reset_tracking_state()
        self.court.reset()
        self.classifier.reset()
        logger.info("Calibration cleared")

    # ------------------------------------------------------------- pipeline
    def submit(self, item: FrameInput) -> CameraCommand:
        return self.process_frame(item.timestamp, item.detections, item.ball, item.frame)

    def process_frame(
        self,
        timestamp: float,
        detections: Sequence[Detection],
        ball_signal: Optional[BallSignal] = None,
        frame: Optional[np.ndarray] = None,
    ) -> CameraCommand:
        try:
            command = self._process(float(timestamp), detections, ball_signal, frame)
        except Exception:
            logger.exception("Frame at t={} failed; holding previous command", timestamp)
            return self._last_command
        self._last_command = command
        return command

    def _frame_dt(self, timestamp: float) -> float:
        fallback = 1.0 / self.config.pan.reference_fps
        last = self._last_timestamp
        if not np.isfinite(timestamp):
            return fallback
        self._last_timestamp = timestamp
        if last is None or timestamp <= last:
            return fallback
        return timestamp - last

    def _gating_region(self, timestamp: float) -> CourtRegion:
        """Learned region, or the default one when nothing has been confirmed lately."""

        last = self._last_confirmed
        if not np.isfinite(timestamp):
            return self.court_region
        if last is None or timestamp - last > self.config.tracker.region_fallback:
            return self.court.default_region()
        return self.court_region

    def _process(
        self,
        timestamp: float,
        detections: Sequence[Detection],
        ball: Optional[BallSignal],
        frame: Optional[np.ndarray],
    ) -> CameraCommand:
        dt = self._frame_dt(timestamp)
        valid = [d for d in detections if d.is_valid()]
        if len(valid) != len(detections):
            logger.debug("Dropped {} malformed detections", len(detections) - len(valid))

        labeled = self.classifier.label(valid, frame)
        self.court.update(labeled, timestamp)
        region = self._gating_region(timestamp)
        margin = self.config.tracker.region_margin
        in_play = [d for d in labeled if region.contains(d.center, margin)]

        tracks = self.tracker.update(in_play, dt)
        if tracks and np.isfinite(timestamp):
            self._last_confirmed = timestamp

        if ball is None and frame is not None and self.config.ball.enabled:
            ball = self.ball_detector.detect(frame, dt)

        estimate = self.action.estimate(tracks, ball, self.motion.pan.position)
        self.activity.update(tracks)
        high_action = self.activity.is_high_action

        lead_target: Optional[Point] = None
        if self.config.lead.enabled and estimate.has_target and np.isfinite(timestamp):
            projected = self.lead.update(estimate.focal_point, timestamp)
            if high_action:
                lead_target = projected

        factor = 1.0
        players = [t for t in tracks if t.label is PersonLabel.PLAYER]
        if self.config.lead.proximity_damping and players:
            factor = proximity_damping(float(np.mean([t.box.h for t in players])))

        recovery = self.tracker.is_in_recovery_mode
        focus = self.motion.update(
            estimate,
            tracks,
            ball,
            dt,
            recovery=recovery,
            high_action=high_action,
            proximity_factor=factor,
            target=lead_target,
            players=[d.center for d in labeled if d.label is PersonLabel.PLAYER],
        )

        timeout_hold = focus.state is DirectorState.TIMEOUT_HOLD
        self.statistics.record(timestamp, len(valid), len(tracks), timeout_hold, recovery)
        self.statistics.tracks_created = self.tracker.created
        self.statistics.tracks_revived = self.tracker.revived
        self.statistics.tracks_deleted = self.tracker.deleted

        diagnostics = Diagnostics(
            track_count=len(tracks),
            player_count=len(players),
            referee_count=sum(1 for t in tracks if t.label is PersonLabel.REFEREE),
            is_timeout_hold=timeout_hold,
            is_in_recovery_mode=recovery,
            state=focus.state,
            court_region=self.court_region,
            reliability=self.tracker.average_reliability(),
            desired_zoom=focus.zoom_target,
        )
        return CameraCommand(timestamp, focus.position, focus.zoom, diagnostics)

    def _idle_command(self, timestamp: float) -> CameraCommand:
        focus = self.motion.focus
        diagnostics = Diagnostics(court_region=self.court_region, desired_zoom=focus.zoom_target)
        return CameraCommand(timestamp, focus.position, focus.zoom, diagnostics)
