"""Tests for court_director.action_center."""
from __future__ import annotations

import pytest

from court_director.action_center import ActionCenterEstimator, label_weight
from court_director.config import ActionCenterConfig
from court_director.geometry import CENTER, Point
from court_director.models import BallSignal, PersonLabel
from court_director.track_state import TrackState


def test_two_players_centered(make_track):
    est = ActionCenterEstimator().estimate([make_track(1, 0.4, 0.5), make_track(2, 0.6, 0.5)], None, CENTER)
    assert est.focal_point.x == pytest.approx(0.5)
    assert est.focal_point.y == pytest.approx(0.5)
    assert est.spread == pytest.approx(0.1)
    assert est.confidence == pytest.approx(0.7)
    assert est.contributors == 2
    assert est.has_target


def test_adult_ignored_when_players_present(make_track):
    tracks = [make_track(1, 0.3, 0.5), make_track(2, 0.7, 0.5, label=PersonLabel.ADULT)]
    est = ActionCenterEstimator().estimate(tracks, None, CENTER)
    assert est.focal_point.x == pytest.approx(0.3)
    assert est.confidence == pytest.approx(0.4)


def test_adults_only_fall_back(make_track):
    tracks = [make_track(1, 0.3, 0.5, label=PersonLabel.ADULT), make_track(2, 0.7, 0.5, label=PersonLabel.UNKNOWN)]
    est = ActionCenterEstimator().estimate(tracks, None, CENTER)
    assert est.focal_point.x == pytest.approx(0.5)
    assert est.contributors == 2


def test_referee_counts_less(make_track):
    tracks = [make_track(1, 0.4, 0.5), make_track(2, 0.6, 0.5, label=PersonLabel.REFEREE)]
    est = ActionCenterEstimator().estimate(tracks, None, CENTER)
    assert est.focal_point.x == pytest.approx((0.4 * 1.0 + 0.6 * 0.3) / 1.3)


def test_nearby_players_count_more(make_track):
    tracks = [make_track(1, 0.45, 0.5), make_track(2, 0.9, 0.5)]
    est = ActionCenterEstimator().estimate(tracks, None, Point(0.4, 0.5))
    assert est.focal_point.x < (0.45 + 0.9) / 2.0


def test_fast_mover_pulls_focus(make_track):
    tracks = [make_track(1, 0.4, 0.5), make_track(2, 0.6, 0.5, velocity=Point(0.5, 0.0))]
    est = ActionCenterEstimator().estimate(tracks, None, CENTER)
    assert est.focal_point.x > 0.5


def test_tentative_tracks_ignored(make_track):
    tracks = [make_track(1, 0.3, 0.5), make_track(2, 0.8, 0.5, state=TrackState.TENTATIVE)]
    est = ActionCenterEstimator().estimate(tracks, None, CENTER)
    assert est.focal_point.x == pytest.approx(0.3)


def test_confident_ball_blends(make_track):
    tracks = [make_track(1, 0.4, 0.5), make_track(2, 0.6, 0.5)]
    ball = BallSignal(Point(0.8, 0.5), 0.9)
    est = ActionCenterEstimator().estimate(tracks, ball, CENTER)
    assert est.focal_point.x == pytest.approx(0.8 * 0.3 + 0.5 * 0.7)
    assert est.used_ball


def test_weak_ball_ignored_with_players(make_track):
    tracks = [make_track(1, 0.4, 0.5), make_track(2, 0.6, 0.5)]
    est = ActionCenterEstimator().estimate(tracks, BallSignal(Point(0.8, 0.5), 0.3), CENTER)
    assert est.focal_point.x == pytest.approx(0.5)
    assert not est.used_ball


def test_ball_not_blended_without_players(make_track):
    tracks = [make_track(1, 0.3, 0.5, label=PersonLabel.REFEREE)]
    est = ActionCenterEstimator().estimate(tracks, BallSignal(Point(0.9, 0.5), 0.9), CENTER)
    assert est.focal_point.x == pytest.approx(0.3)
    assert est.focal_point.y == pytest.approx(0.5)
    assert not est.used_ball


def test_ball_only():
    est = ActionCenterEstimator().estimate([], BallSignal(Point(0.7, 0.6), 0.5), CENTER)
    assert est.focal_point == Point(0.7, 0.6)
    assert est.confidence == pytest.approx(0.5)
    assert est.used_ball


def test_nothing_holds_previous_point(make_track):
    estimator = ActionCenterEstimator()
    estimator.estimate([make_track(1, 0.3, 0.6)], None, CENTER)
    est = estimator.estimate([], None, CENTER)
    assert est.focal_point.x == pytest.approx(0.3)
    assert est.focal_point.y == pytest.approx(0.6)
    assert not est.has_target
    estimator.reset()
    assert estimator.last.focal_point == CENTER


def test_label_weight_is_exhaustive():
    cfg = ActionCenterConfig()
    assert label_weight(PersonLabel.PLAYER, True, cfg) == 1.0
    assert label_weight(PersonLabel.UNKNOWN, False, cfg) == 1.0
    assert label_weight(PersonLabel.ADULT, True, cfg) == 0.0
    with pytest.raises(ValueError):
        label_weight("coach", True, cfg)  # type: ignore[arg-type]
