"""Shift observed obstacles by the vehicle's predicted ego-motion."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable

from .geometry import Color, Header, Marker, MarkerType, Pose, Vector3, rpy_from_quaternion
from .kalman import VehicleKF, shortest_angular_distance


class FOVObstaclePredictor:
    """Tracks the vehicle pose and re-projects obstacle markers ahead in time."""

    def __init__(self, prediction_dt: float = 0.5, text_size_scale: float = 0.2):
        self.prediction_dt = prediction_dt
        self.text_size_scale = text_size_scale
        self.kf = VehicleKF(1.0, 0.1, 1.0, 0.1, 0.01, 0.1)
        self._markers: list[Marker] = []
        self._last = (0.0, 0.0, 0.0)

    def on_pose(self, pose: Pose, stamp: float) -> None:
        """Feed a vehicle pose observed at ``stamp`` (seconds)."""
        px, py = pose.position.x, pose.position.y
        _, _, yaw = rpy_from_quaternion(pose.orientation.normalized())

        if not self.kf.initialized:
            self.kf.init(px, py, yaw, stamp)
            self._last = (px, py, yaw)
            return

        dt = stamp - self.kf.last_stamp
        if dt <= 1e-6:
            return

        last_px, last_py, last_yaw = self._last
        vx = (px - last_px) / dt
        vy = (py - last_py) / dt
        vyaw = shortest_angular_distance(last_yaw, yaw) / dt

        self.kf.predict(dt)
        self.kf.update((px, py, yaw, vx, vy, vyaw))
        self.kf.last_stamp = stamp
        self._last = (px, py, yaw)

    def on_markers(self, markers: Iterable[Marker]) -> None:
        """Replace the stored obstacle markers."""
        self._markers = list(markers)

    def predictions(self, now: float) -> list[Marker]:
        """Predicted obstacle markers with labels; empty until pose and markers exist."""
        if not self.kf.initialized or not self._markers:
            return []

        future = self.kf.copy()
        future.predict(self.prediction_dt)
        cx, cy, psi = (float(v) for v in self.kf.x[:3])
        ppx, ppy, psi_p = (float(v) for v in future.x[:3])
        cos_c, sin_c = math.cos(psi), math.sin(psi)
        cos_p, sin_p = math.cos(psi_p), math.sin(psi_p)

        out: list[Marker] = []
        for m in self._markers:
            dx = m.pose.position.x - cx
            dy = m.pose.position.y - cy
            lx = cos_c * dx - sin_c * dy
            ly = sin_c * dx + cos_c * dy
            px = cx - (ppx - cx) + cos_p * lx + sin_p * ly
            py = cy - (ppy - cy) - sin_p * lx + cos_p * ly

            moved = replace(
                m,
                header=Header(frame_id="map", stamp=now),
                pose=Pose(Vector3(px, py, m.pose.position.z), m.pose.orientation),
            )
            out.append(moved)

            box_max = max(moved.scale.x, moved.scale.y)
            label = replace(
                moved,
                ns="fov_obs_labels",
                type=MarkerType.TEXT_VIEW_FACING,
                pose=Pose(Vector3(px, py, moved.pose.position.z + 0.1), moved.pose.orientation),
                scale=replace(moved.scale, z=max(1.0, box_max) * self.text_size_scale),
                color=Color(1.0, 1.0, 1.0, 1.0),
                text=f"ID:{moved.id}(fov)",
                lifetime=0.0,
            )
            out.append(label)
        return out