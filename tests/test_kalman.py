"""Tests for court_director.kalman."""
from __future__ import annotations

import math

import numpy as np
import pytest

from court_director.kalman import NOMINAL_DT, KalmanFilter2D


def test_converges_on_constant_velocity() -> None:
    kf = KalmanFilter2D((0.1, 0.5))
    for i in range(1, 90):
        kf.predict(NOMINAL_DT)
        kf.update((0.1 + 0.3 * i * NOMINAL_DT, 0.5))
    vx, vy = kf.velocity
    assert vx == pytest.approx(0.3, abs=0.05)
    assert vy == pytest.approx(0.0, abs=0.02)
    assert kf.position[0] == pytest.approx(0.1 + 0.3 * 89 * NOMINAL_DT, abs=0.01)


def test_acceleration_model_has_six_states() -> None:
    kf = KalmanFilter2D((0.5, 0.5), acceleration=True)
    assert kf.x.shape == (6,)
    kf.predict(NOMINAL_DT)
    assert kf.update((0.51, 0.5))


def test_non_finite_measurement_is_skipped() -> None:
    kf = KalmanFilter2D((0.4, 0.6))
    before = kf.x.copy()
    assert kf.update((math.nan, 0.6)) is False
    assert kf.update((0.4, math.inf)) is False
    np.testing.assert_array_equal(kf.x, before)


def test_project_leaves_state_untouched() -> None:
    kf = KalmanFilter2D((0.2, 0.2), velocity=(0.5, 0.0))
    ahead = kf.project(0.4)
    assert ahead == pytest.approx((0.4, 0.2))
    assert kf.position == pytest.approx((0.2, 0.2))


def test_predict_scales_with_dt() -> None:
    kf = KalmanFilter2D((0.2, 0.2), velocity=(0.3, -0.3))
    kf.predict(0.5)
    assert kf.position == pytest.approx((0.35, 0.05))


def test_negative_dt_is_clamped() -> None:
    kf = KalmanFilter2D((0.2, 0.2), velocity=(0.3, 0.0))
    kf.predict(-1.0)
    assert kf.position == pytest.approx((0.2, 0.2))


def test_reset_velocity() -> None:
    kf = KalmanFilter2D((0.2, 0.2), velocity=(0.3, 0.1))
    kf.reset_velocity()
    assert kf.velocity == (0.0, 0.0)
    assert kf.speed == 0.0


def test_covariance_is_capped() -> None:
    kf = KalmanFilter2D((0.5, 0.5))
    for _ in range(500):
        kf.predict(1.0)
    diag = np.diag(kf.P)
    assert np.all(diag[:2] <= KalmanFilter2D.POSITION_VARIANCE_CAP)
    assert np.all(diag[2:] <= KalmanFilter2D.VELOCITY_VARIANCE_CAP)


def test_low_confidence_measurement_moves_less() -> None:
    trusted = KalmanFilter2D((0.5, 0.5))
    doubted = KalmanFilter2D((0.5, 0.5))
    trusted.update((0.6, 0.5))
    doubted.update((0.6, 0.5), noise_scale=10.0)
    assert trusted.position[0] > doubted.position[0] > 0.5
