"""Track cube markers with Kalman filters and predict their future positions."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable

from .geometry import Header, Marker, MarkerAction, MarkerType, Pose, Vector3
from .kalman import KF2D


@dataclass
class _Track:
    kf: KF2D
    marker: Marker


class DynamicObstaclePredictor:
    """Keeps one filter per marker id and extrapolates positions ahead in time."""

    def __init__(
        self,
        measurement_noise: float = 1.0,
        process_noise: float = 0.1,
        prediction_dt: float = 0.5,
    ):
        self.measurement_noise = measurement_noise
        self.process_noise = process_noise
        self.prediction_dt = prediction_dt
        self._tracks: dict[int, _Track] = {}

    def on_markers(self, markers: Iterable[Marker], now: float) -> None:
        """Feed a batch of detections observed at time ``now`` (seconds)."""
        cubes = [m for m in markers if m.type == MarkerType.CUBE]
        incoming = {m.id for m in cubes}
        self._tracks = {tid: tr for tid, tr in self._tracks.items() if tid in incoming}

        for m in cubes:
            mx, my = m.pose.position.x, m.pose.position.y
            track = self._tracks.get(m.id)
            if track is None:
                track = _Track(
                    KF2D(mx, my, self.measurement_noise, self.process_noise, now), m
                )
                self._tracks[m.id] = track
            else:
                track.marker = m

            dt = now - track.kf.last_stamp
            if dt <= 0:
                dt = 1e-3
            track.kf.predict(dt)
            track.kf.update((mx, my))
            track.kf.last_stamp = now

    def predictions(self, now: float) -> list[Marker]:
        """Markers for the predicted positions, led by a clearing marker."""
        out = [
            Marker(
                header=Header(frame_id="map", stamp=now),
                ns="predicted",
                action=MarkerAction.DELETEALL,
            )
        ]
        for track in self._tracks.values():
            future = track.kf.copy()
            future.predict(self.prediction_dt)
            m = track.marker
            position = Vector3(float(future.x[0]), float(future.x[1]), m.pose.position.z)
            out.append(
                replace(
                    m,
                    header=replace(m.header, stamp=now),
                    ns="predicted",
                    pose=Pose(position, m.pose.orientation),
                )
            )
        return out