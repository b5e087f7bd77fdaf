"""Sample the surfaces of cube markers into a coloured point cloud."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from .geometry import Marker, MarkerAction, MarkerType, Transform, Vector3


@dataclass(frozen=True)
class ColoredPoint:
    """A point with 8-bit RGBA colour."""

    x: float
    y: float
    z: float
    r: int
    g: int
    b: int
    a: int


def _channel(value: float) -> int:
    return min(255, max(0, int(value * 255)))


def _steps(half: float, step: float) -> Iterator[float]:
    value = -half
    while value <= half:
        yield value
        value += step


def sample_cube(
    marker: Marker, xy_scale: float, z_scale: float, transform: Transform
) -> list[ColoredPoint]:
    """Points on the six faces of a cube marker, mapped through ``transform``."""
    if xy_scale <= 0 or z_scale <= 0:
        raise ValueError("sampling steps must be positive")

    marker_tf = Transform(marker.pose.orientation, marker.pose.position)
    world_tf = transform.compose(marker_tf)
    r, g, b, a = (_channel(c) for c in (marker.color.r, marker.color.g, marker.color.b, marker.color.a))
    hx, hy, hz = marker.scale.x * 0.5, marker.scale.y * 0.5, marker.scale.z * 0.5

    def local_points() -> Iterator[tuple[float, float, float]]:
        for xi in _steps(hx, xy_scale):
            for yi in _steps(hy, xy_scale):
                yield xi, yi, hz
                yield xi, yi, -hz
        for xi in _steps(hx, xy_scale):
            for zi in _steps(hz, z_scale):
                yield xi, hy, zi
                yield xi, -hy, zi
        for yi in _steps(hy, xy_scale):
            for zi in _steps(hz, z_scale):
                yield hx, yi, zi
                yield -hx, yi, zi

    cloud = []
    for x, y, z in local_points():
        p = world_tf.apply(Vector3(x, y, z))
        cloud.append(ColoredPoint(p.x, p.y, p.z, r, g, b, a))
    return cloud


class MarkerToPointCloud:
    """Turns batches of cube markers into a cloud expressed in a target frame."""

    def __init__(self, target_frame: str = "lidar_link", xy_scale: float = 0.1, z_scale: float = 0.1):
        self.target_frame = target_frame
        self.xy_scale = xy_scale
        self.z_scale = z_scale
        self.last_cloud: list[ColoredPoint] | None = None

    @property
    def has_cloud(self) -> bool:
        return self.last_cloud is not None

    def on_markers(
        self, markers: Iterable[Marker], transform: Transform | None
    ) -> list[ColoredPoint] | None:
        """Sample added cube markers; ``transform`` maps their frame into the target frame.

        Returns the new cloud, or None when nothing was produced (no markers,
        no transform available, or no cube samples); the previous cloud is kept then.
        """
        markers = list(markers)
        if not markers or transform is None:
            return None

        cloud: list[ColoredPoint] = []
        for m in markers:
            if m.action != MarkerAction.ADD or m.type != MarkerType.CUBE:
                continue
            cloud.extend(sample_cube(m, self.xy_scale, self.z_scale, transform))

        if not cloud:
            return None
        self.last_cloud = cloud
        return cloud