"""SORT-style multi-object tracker with appearance re-identification."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger
from scipy.optimize import linear_sum_assignment

from .appearance import blend_signature, signature_similarity
from .config import TrackerConfig
from .geometry import Box, Point, clamp, envelope
from .kalman import KalmanFilter2D
from .models import Detection, PersonLabel
from .track_state import Lifecycle, LifecyclePolicy, TrackState, on_match, on_miss

# Cost assigned to pairs outside the gate; never accepted.
_INFEASIBLE = 1e6


def _labels_disagree(track_label: PersonLabel, det_label: Optional[PersonLabel]) -> bool:
    if det_label is None or PersonLabel.UNKNOWN in (track_label, det_label):
        return False
    return track_label is not det_label


DEFAULT_GROUP_BOX = Box(0.25, 0.25, 0.5, 0.5)


@dataclass(frozen=True)
class TrackSnapshot:
    """Read-only view of a track handed to downstream components."""

    track_id: int
    state: TrackState
    box: Box
    velocity: Point
    label: PersonLabel
    reliability: float
    occlusion: float
    hits: int
    misses: int

    @property
    def position(self) -> Point:
        return self.box.center

    @property
    def speed(self) -> float:
        return float(np.hypot(self.velocity.x, self.velocity.y))

    @property
    def is_confirmed(self) -> bool:
        return self.state is TrackState.CONFIRMED


class _Track:
    def __init__(self, track_id: int, detection: Detection, config: TrackerConfig) -> None:
        center = detection.center
        self.track_id = track_id
        self.kalman = KalmanFilter2D(
            (center.x, center.y), acceleration=config.motion_model == "constant_acceleration"
        )
        self.size = (detection.box.w, detection.box.h)
        self.signature = blend_signature(None, detection.signature, 1.0)
        self.label = detection.label or PersonLabel.UNKNOWN
        self.lifecycle = Lifecycle()
        self.reliability = config.reliability_gain
        self.occlusion = 0.0

    @property
    def state(self) -> TrackState:
        return self.lifecycle.state

    @property
    def position(self) -> Point:
        x, y = self.kalman.position
        return Point(x, y)

    def snapshot(self) -> TrackSnapshot:
        x, y = self.kalman.position
        vx, vy = self.kalman.velocity
        return TrackSnapshot(
            track_id=self.track_id,
            state=self.state,
            box=Box.from_center(x, y, self.size[0], self.size[1]),
            velocity=Point(vx, vy),
            label=self.label,
            reliability=self.reliability,
            occlusion=self.occlusion,
            hits=self.lifecycle.hits,
            misses=self.lifecycle.misses,
        )


class MultiObjectTracker:
    """Predict, associate, update; confirmed tracks are the public output.

    Tracks are owned here and never handed out mutably: callers receive
    :class:`TrackSnapshot` copies.
    """

    def __init__(self, config: Optional[TrackerConfig] = None) -> None:
        self.config = config or TrackerConfig()
        self.policy = LifecyclePolicy(
            confirm_hits=self.config.confirm_hits,
            max_misses=self.config.max_misses,
            delete_after_misses=self.config.delete_after_misses,
        )
        self._tracks: List[_Track] = []
        self._next_id = 1
        self._primary_id: Optional[int] = None
        self.created = 0
        self.revived = 0
        self.deleted = 0

    # ------------------------------------------------------------------ update
    def update(self, detections: Sequence[Detection], dt: float) -> List[TrackSnapshot]:
        cfg = self.config
        dets = [d for d in detections if d.is_valid() and d.confidence >= cfg.min_confidence]

        for track in self._tracks:
            track.kalman.predict(dt)

        active = [t for t in self._tracks if t.state in (TrackState.TENTATIVE, TrackState.CONFIRMED)]
        matches, unmatched_tracks, unmatched_dets = self._associate(active, dets)
        for t_idx, d_idx in matches:
            self._apply_match(active[t_idx], dets[d_idx], reidentified=False)

        # coasting and lost tracks get a second chance on appearance
        recovering = [active[i] for i in unmatched_tracks if active[i].lifecycle.misses > 0]
        recovering += [t for t in self._tracks if t.state is TrackState.LOST]
        leftover = [dets[i] for i in unmatched_dets]
        revived, leftover_idx = self._reidentify(recovering, leftover)
        for track, det in revived:
            was_lost = track.state is TrackState.LOST
            self._apply_match(track, det, reidentified=True)
            if was_lost:
                self.revived += 1
                logger.debug("Track {} re-identified", track.track_id)

        touched = {id(t) for t, _ in revived}
        touched.update(id(active[t_idx]) for t_idx, _ in matches)
        for track in self._tracks:
            if id(track) not in touched:
                self._apply_miss(track)

        for d_idx in leftover_idx:
            if len(self._tracks) >= cfg.max_tracks:
                logger.debug("Track limit {} reached; ignoring detection", cfg.max_tracks)
                break
            self._spawn(leftover[d_idx])

        self._drop_deleted()
        self._select_primary()
        return self.confirmed_tracks()

    def _associate(
        self, tracks: Sequence[_Track], dets: Sequence[Detection]
    ) -> Tuple[List[Tuple[int, int]], List[int], List[int]]:
        if not tracks or not dets:
            return [], list(range(len(tracks))), list(range(len(dets)))

        cfg = self.config
        cost = np.full((len(tracks), len(dets)), _INFEASIBLE, dtype=np.float64)
        for i, track in enumerate(tracks):
            predicted = track.position
            for j, det in enumerate(dets):
                distance = predicted.distance(det.center) / cfg.gate_distance
                if distance > 1.0:
                    continue
                appearance = 1.0 - signature_similarity(track.signature, det.signature)
                cost[i, j] = (1.0 - cfg.appearance_weight) * distance + cfg.appearance_weight * appearance
                if _labels_disagree(track.label, det.label):
                    cost[i, j] += cfg.label_mismatch_cost
        return _linear_assignment(cost, cfg.max_cost)

    def _reidentify(
        self, tracks: Sequence[_Track], dets: Sequence[Detection]
    ) -> Tuple[List[Tuple[_Track, Detection]], List[int]]:
        if not tracks or not dets:
            return [], list(range(len(dets)))

        cfg = self.config
        cost = np.full((len(tracks), len(dets)), _INFEASIBLE, dtype=np.float64)
        for i, track in enumerate(tracks):
            for j, det in enumerate(dets):
                if track.position.distance(det.center) > cfg.reid_max_distance:
                    continue
                similarity = signature_similarity(track.signature, det.signature)
                if similarity >= cfg.reid_similarity:
                    cost[i, j] = 1.0 - similarity
        matched, _, unmatched = _linear_assignment(cost, 1.0 - cfg.reid_similarity)
        return [(tracks[i], dets[j]) for i, j in matched], unmatched

    def _apply_match(self, track: _Track, det: Detection, reidentified: bool) -> None:
        cfg = self.config
        if track.state is TrackState.LOST:
            track.kalman.reset_velocity()
        center = det.center
        # low-confidence detections are trusted less
        track.kalman.update((center.x, center.y), noise_scale=1.0 / clamp(det.confidence, 0.1, 1.0))
        w, h = track.size
        track.size = (0.7 * w + 0.3 * det.box.w, 0.7 * h + 0.3 * det.box.h)
        track.signature = blend_signature(track.signature, det.signature, cfg.appearance_alpha)
        if det.label is not None:
            track.label = det.label
        track.reliability = min(1.0, track.reliability + cfg.reliability_gain)
        track.occlusion = max(0.0, track.occlusion - cfg.occlusion_recovery)
        track.lifecycle = on_match(track.lifecycle, self.policy, reidentified=reidentified)

    def _apply_miss(self, track: _Track) -> None:
        cfg = self.config
        before = track.state
        track.lifecycle = on_miss(track.lifecycle, self.policy)
        misses = track.lifecycle.misses
        track.reliability = min(track.reliability, max(0.0, 1.0 - misses / cfg.max_misses))
        if before is not TrackState.TENTATIVE:
            track.occlusion = min(1.0, track.occlusion + cfg.occlusion_gain)
        if before is TrackState.CONFIRMED and track.state is TrackState.LOST:
            # hold the last known position while searching
            track.kalman.reset_velocity()
            logger.debug("Track {} lost after {} missed frames", track.track_id, misses)

    def _spawn(self, det: Detection) -> None:
        track = _Track(self._next_id, det, self.config)
        self._next_id += 1
        self.created += 1
        self._tracks.append(track)

    def _drop_deleted(self) -> None:
        kept: List[_Track] = []
        for track in self._tracks:
            if track.state is not TrackState.DELETED:
                kept.append(track)
            elif track.lifecycle.hits > 0:
                self.deleted += 1
                logger.info("Track {} deleted after {} missed frames", track.track_id, track.lifecycle.misses)
        self._tracks = kept

    def _select_primary(self) -> None:
        by_id: Dict[int, _Track] = {t.track_id: t for t in self._tracks}
        current = by_id.get(self._primary_id) if self._primary_id is not None else None
        if current is not None and current.state in (TrackState.CONFIRMED, TrackState.LOST):
            return
        confirmed = [t for t in self._tracks if t.state is TrackState.CONFIRMED]
        if not confirmed:
            self._primary_id = None
            return
        best = max(confirmed, key=lambda t: (t.reliability, -t.track_id))
        if best.track_id != self._primary_id:
            logger.debug("Primary track is now {}", best.track_id)
        self._primary_id = best.track_id

    # ----------------------------------------------------------------- queries
    def confirmed_tracks(self) -> List[TrackSnapshot]:
        confirmed = [t.snapshot() for t in self._tracks if t.state is TrackState.CONFIRMED]
        return sorted(confirmed, key=lambda s: (-s.reliability, s.track_id))

    def all_tracks(self) -> List[TrackSnapshot]:
        return [t.snapshot() for t in self._tracks]

    @property
    def primary_track_id(self) -> Optional[int]:
        return self._primary_id

    @property
    def is_in_recovery_mode(self) -> bool:
        if self._primary_id is None:
            return False
        return any(t.track_id == self._primary_id and t.state is TrackState.LOST for t in self._tracks)

    def group_bounding_box(self, margin: float = 0.05) -> Box:
        group = envelope((t.box for t in self.confirmed_tracks()), margin)
        return group if group is not None else DEFAULT_GROUP_BOX

    def average_reliability(self) -> float:
        confirmed = self.confirmed_tracks()
        if not confirmed:
            return 0.0
        return float(np.mean([t.reliability for t in confirmed]))

    def reset(self) -> None:
        self._tracks.clear()
        self._next_id = 1
        self._primary_id = None


def _linear_assignment(cost: np.ndarray, thresh: float) -> Tuple[List[Tuple[int, int]], List[int], List[int]]:
    """Optimal assignment keeping only pairs with cost <= ``thresh``."""

    if cost.size == 0:
        return [], list(range(cost.shape[0])), list(range(cost.shape[1]))
    rows, cols = linear_sum_assignment(cost)
    matched: List[Tuple[int, int]] = []
    unmatched_rows = set(range(cost.shape[0]))
    unmatched_cols = set(range(cost.shape[1]))
    for r, c in zip(rows, cols):
        if cost[r, c] <= thresh:
            matched.append((int(r), int(c)))
            unmatched_rows.discard(r)
            unmatched_cols.discard(c)
    return matched, sorted(unmatched_rows), sorted(unmatched_cols)
