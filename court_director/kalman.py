"""Linear Kalman filter over normalized image position."""
from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

# Noise terms are tuned per frame at this rate and scaled by the real dt.
NOMINAL_DT = 1.0 / 30.0


class KalmanFilter2D:
    """Constant-velocity (or constant-acceleration) filter with explicit dt.

    State is ``[x, y, vx, vy]`` or ``[x, y, vx, vy, ax, ay]``; only position
    is observed. Velocities are in normalized units per second.
    """

    POSITION_VARIANCE_CAP = 0.5
    VELOCITY_VARIANCE_CAP = 2.0

    def __init__(
        self,
        position: Tuple[float, float],
        velocity: Tuple[float, float] = (0.0, 0.0),
        acceleration: bool = False,
        process_noise: Tuple[float, float, float, float] = (0.0002, 0.0002, 0.02, 0.015),
        measurement_noise: float = 0.004,
    ) -> None:
        self.dim = 6 if acceleration else 4
        self.x = np.zeros(self.dim, dtype=np.float64)
        self.x[0:2] = position
        self.x[2:4] = velocity

        diag = [0.01, 0.01, 0.5, 0.5] + ([1.0, 1.0] if acceleration else [])
        self.P = np.diag(diag).astype(np.float64)

        q = list(process_noise) + ([process_noise[2] * 2.0, process_noise[3] * 2.0] if acceleration else [])
        self._q = np.diag(q).astype(np.float64)
        self.R = np.eye(2, dtype=np.float64) * measurement_noise
        self.H = np.zeros((2, self.dim), dtype=np.float64)
        self.H[0, 0] = 1.0
        self.H[1, 1] = 1.0

    @property
    def position(self) -> Tuple[float, float]:
        return float(self.x[0]), float(self.x[1])

    @property
    def velocity(self) -> Tuple[float, float]:
        return float(self.x[2]), float(self.x[3])

    @property
    def speed(self) -> float:
        return float(np.hypot(self.x[2], self.x[3]))

    def _transition(self, dt: float) -> np.ndarray:
        F = np.eye(self.dim, dtype=np.float64)
        F[0, 2] = dt
        F[1, 3] = dt
        if self.dim == 6:
            half = 0.5 * dt * dt
            F[0, 4] = half
            F[1, 5] = half
            F[2, 4] = dt
            F[3, 5] = dt
        return F

    def predict(self, dt: float) -> Tuple[float, float]:
        dt = max(0.0, float(dt))
        F = self._transition(dt)
        self.x = F @ self.x
        self.P = F @ self.P @ F.T + self._q * (dt / NOMINAL_DT)
        self._cap_covariance()
        return self.position

    def project(self, dt: float) -> Tuple[float, float]:
        """Position ``dt`` seconds ahead without changing the filter."""

        ahead = self._transition(max(0.0, float(dt))) @ self.x
        return float(ahead[0]), float(ahead[1])

    def update(self, measurement: Tuple[float, float], noise_scale: float = 1.0) -> bool:
        """Correct with a position measurement; returns False if it was skipped."""

        z = np.asarray(measurement, dtype=np.float64)
        if not np.all(np.isfinite(z)):
            return False
        R = self.R * max(noise_scale, 1e-6)
        y = z - self.H @ self.x
        S = self.H @ self.P @ self.H.T + R
        try:
            K = self.P @ self.H.T @ np.linalg.inv(S)
        except np.linalg.LinAlgError:
            return False
        self.x = self.x + K @ y
        I = np.eye(self.dim, dtype=np.float64)
        self.P = (I - K @ self.H) @ self.P
        self._cap_covariance()
        return True

    def reset_velocity(self) -> None:
        self.x[2:] = 0.0

    def _cap_covariance(self) -> None:
        idx = np.arange(self.dim)
        caps = np.full(self.dim, self.VELOCITY_VARIANCE_CAP)
        caps[0:2] = self.POSITION_VARIANCE_CAP
        diag = np.minimum(self.P[idx, idx], caps)
        self.P[idx, idx] = diag
