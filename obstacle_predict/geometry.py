"""Geometric primitives and visualization marker records."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum


@dataclass(frozen=True)
class Vector3:
    """A point or direction in three dimensions."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vector3) -> Vector3:
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector3) -> Vector3:
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __iter__(self):
        yield from (self.x, self.y, self.z)


@dataclass(frozen=True)
class Quaternion:
    """A rotation quaternion stored as (x, y, z, w)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    def normalized(self) -> Quaternion:
        """Return this quaternion scaled to unit length."""
        norm = math.sqrt(self.x**2 + self.y**2 + self.z**2 + self.w**2)
        if norm == 0.0:
            raise ValueError("cannot normalize a zero quaternion")
        return Quaternion(self.x / norm, self.y / norm, self.z / norm, self.w / norm)

    def __mul__(self, other: Quaternion) -> Quaternion:
        return Quaternion(
            self.w * other.x + self.x * other.w + self.y * other.z - self.z * other.y,
            self.w * other.y + self.y * other.w + self.z * other.x - self.x * other.z,
            self.w * other.z + self.z * other.w + self.x * other.y - self.y * other.x,
            self.w * other.w - self.x * other.x - self.y * other.y - self.z * other.z,
        )

    def _matrix(self) -> tuple[tuple[float, float, float], ...]:
        d = self.x**2 + self.y**2 + self.z**2 + self.w**2
        if d == 0.0:
            raise ValueError("a zero quaternion has no rotation matrix")
        s = 2.0 / d
        xs, ys, zs = self.x * s, self.y * s, self.z * s
        wx, wy, wz = self.w * xs, self.w * ys, self.w * zs
        xx, xy, xz = self.x * xs, self.x * ys, self.x * zs
        yy, yz, zz = self.y * ys, self.y * zs, self.z * zs
        return (
            (1.0 - (yy + zz), xy - wz, xz + wy),
            (xy + wz, 1.0 - (xx + zz), yz - wx),
            (xz - wy, yz + wx, 1.0 - (xx + yy)),
        )

    def rotate(self, vector: Vector3) -> Vector3:
        """Rotate a vector by this quaternion."""
        return Vector3(
            *(row[0] * vector.x + row[1] * vector.y + row[2] * vector.z for row in self._matrix())
        )


@dataclass(frozen=True)
class Pose:
    """Position and orientation."""

    position: Vector3 = field(default_factory=Vector3)
    orientation: Quaternion = field(default_factory=Quaternion)


@dataclass(frozen=True)
class Color:
    """RGBA colour with components in [0, 1]."""

    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 0.0


@dataclass(frozen=True)
class Header:
    """Frame name and time stamp in seconds."""

    frame_id: str = ""
    stamp: float = 0.0


class MarkerType(IntEnum):
    ARROW = 0
    CUBE = 1
    SPHERE = 2
    CYLINDER = 3
    LINE_STRIP = 4
    LINE_LIST = 5
    CUBE_LIST = 6
    SPHERE_LIST = 7
    POINTS = 8
    TEXT_VIEW_FACING = 9
    MESH_RESOURCE = 10
    TRIANGLE_LIST = 11


class MarkerAction(IntEnum):
    ADD = 0
    DELETE = 2
    DELETEALL = 3


@dataclass
class Marker:
    """A visualization marker."""

    header: Header = field(default_factory=Header)
    ns: str = ""
    id: int = 0
    type: MarkerType = MarkerType.ARROW
    action: MarkerAction = MarkerAction.ADD
    pose: Pose = field(default_factory=Pose)
    scale: Vector3 = field(default_factory=Vector3)
    color: Color = field(default_factory=Color)
    lifetime: float = 0.0
    text: str = ""


@dataclass(frozen=True)
class Transform:
    """A rigid transform: rotation followed by translation."""

    rotation: Quaternion = field(default_factory=Quaternion)
    translation: Vector3 = field(default_factory=Vector3)

    def apply(self, point: Vector3) -> Vector3:
        """Map a point through this transform."""
        return self.rotation.rotate(point) + self.translation

    def compose(self, other: Transform) -> Transform:
        """Return the transform that applies ``other`` first, then this one."""
        return Transform(self.rotation * other.rotation, self.apply(other.translation))

    def yaw(self) -> float:
        """Yaw angle of the rotation."""
        return rpy_from_quaternion(self.rotation)[2]


@dataclass
class Box:
    """A planar box obstacle with velocity."""

    id: int = -1
    position: tuple[float, float] = (0.0, 0.0)
    size: tuple[float, float] = (0.0, 0.0)
    yaw: float = 0.0
    velocity: tuple[float, float] = (0.0, 0.0)


def quaternion_from_yaw(yaw: float) -> Quaternion:
    """Quaternion for a pure rotation about the z axis."""
    return Quaternion(0.0, 0.0, math.sin(yaw / 2.0), math.cos(yaw / 2.0))


def rpy_from_quaternion(q: Quaternion) -> tuple[float, float, float]:
    """Return (roll, pitch, yaw) of a quaternion."""
    m = q._matrix()
    if abs(m[2][0]) >= 1.0:
        delta = math.atan2(m[2][1], m[2][2])
        pitch = math.pi / 2.0 if m[2][0] < 0 else -math.pi / 2.0
        return delta, pitch, 0.0
    pitch = -math.asin(m[2][0])
    c = math.cos(pitch)
    roll = math.atan2(m[2][1] / c, m[2][2] / c)
    yaw = math.atan2(m[1][0] / c, m[0][0] / c)
    return roll, pitch, yaw