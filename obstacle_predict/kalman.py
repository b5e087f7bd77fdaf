"""Constant-velocity Kalman filters for obstacles and the vehicle pose."""

from __future__ import annotations

import copy
import math

import numpy as np

_TWO_PI = 2.0 * math.pi


def normalize_angle(angle: float) -> float:
    """Map an angle into (-pi, pi]."""
    a = math.fmod(math.fmod(angle, _TWO_PI) + _TWO_PI, _TWO_PI)
    if a > math.pi:
        a -= _TWO_PI
    return a


def shortest_angular_distance(source: float, target: float) -> float:
    """Signed smallest rotation that takes ``source`` to ``target``."""
    return normalize_angle(target - source)


def _as_vector(z, size: int) -> np.ndarray:
    vec = np.asarray(z, dtype=float).reshape(-1)
    if vec.shape != (size,):
        raise ValueError(f"measurement must have {size} components, got {vec.size}")
    return vec


class KF2D:
    """Filter over the state [x, y, vx, vy] measuring position only."""

    def __init__(self, mx: float, my: float, meas_noise: float, proc_noise: float, stamp: float):
        self.x = np.array([mx, my, 0.0, 0.0], dtype=float)
        self.P = np.eye(4) * 1e2
        self.F = np.eye(4)
        self.Q = np.eye(4) * proc_noise
        self.H = np.zeros((2, 4))
        self.H[0, 0] = 1.0
        self.H[1, 1] = 1.0
        self.R = np.eye(2) * meas_noise
        self.last_stamp = stamp

    def predict(self, dt: float) -> None:
        self.F[0, 2] = dt
        self.F[1, 3] = dt
        self.x = self.F @ self.x
        self.P = self.F @ self.P @ self.F.T + self.Q

    def update(self, z) -> None:
        z = _as_vector(z, 2)
        y = z - self.H @ self.x
        s = self.H @ self.P @ self.H.T + self.R
        k = self.P @ self.H.T @ np.linalg.inv(s)
        self.x = self.x + k @ y
        self.P = (np.eye(4) - k @ self.H) @ self.P

    def copy(self) -> KF2D:
        return copy.deepcopy(self)


class VehicleKF:
    """Filter over [px, py, yaw, vx, vy, yaw_rate] with a full-state measurement."""

    def __init__(
        self,
        meas_pos: float,
        meas_yaw: float,
        meas_vel: float,
        proc_pos: float,
        proc_yaw: float,
        proc_vel: float,
    ):
        self.H = np.eye(6)
        self.Q = np.diag([proc_pos, proc_pos, proc_yaw, proc_vel, proc_vel, proc_vel]).astype(float)
        self.R = np.diag([meas_pos, meas_pos, meas_yaw, meas_vel, meas_vel, meas_vel]).astype(float)
        self.x = np.zeros(6)
        self.P = np.zeros((6, 6))
        self.last_stamp = 0.0
        self.initialized = False

    def init(self, px: float, py: float, yaw: float, stamp: float) -> None:
        self.x = np.array([px, py, yaw, 0.0, 0.0, 0.0], dtype=float)
        self.P = np.eye(6) * 1e2
        self.last_stamp = stamp
        self.initialized = True

    def predict(self, dt: float) -> None:
        a = np.eye(6)
        a[0, 3] = dt
        a[1, 4] = dt
        a[2, 5] = dt
        self.x = a @ self.x
        self.P = a @ self.P @ a.T + self.Q

    def update(self, z) -> None:
        z = _as_vector(z, 6)
        y = z - self.H @ self.x
        y[2] = shortest_angular_distance(self.x[2], z[2])
        s = self.H @ self.P @ self.H.T + self.R
        k = self.P @ self.H.T @ np.linalg.inv(s)
        self.x = self.x + k @ y
        self.x[2] = normalize_angle(self.x[2])
        self.P = (np.eye(6) - k @ self.H) @ self.P

    def copy(self) -> VehicleKF:
        return copy.deepcopy(self)