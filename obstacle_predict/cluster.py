"""Cluster point clouds into obstacles and track them as box markers."""

from __future__ import annotations

import math
import random
from collections import deque
from dataclasses import dataclass

import numpy as np
from scipy.spatial import cKDTree

from .geometry import (
    Color,
    Header,
    Marker,
    MarkerAction,
    MarkerType,
    Pose,
    Transform,
    Vector3,
    quaternion_from_yaw,
)


def _as_points(points) -> np.ndarray:
    return np.asarray(points, dtype=float).reshape(-1, 3)


def voxel_downsample(points, leaf_size: float) -> np.ndarray:
    """Replace the points of each cubic voxel by their centroid."""
    if leaf_size <= 0:
        raise ValueError("leaf size must be positive")
    pts = _as_points(points)
    pts = pts[np.all(np.isfinite(pts), axis=1)]
    if len(pts) == 0:
        return np.empty((0, 3))
    cells = np.floor(pts / leaf_size).astype(np.int64)
    # Order voxels by z, then y, then x index.
    keys = cells[:, ::-1]
    _, inverse, counts = np.unique(keys, axis=0, return_inverse=True, return_counts=True)
    inverse = inverse.reshape(-1)
    sums = np.zeros((len(counts), 3))
    np.add.at(sums, inverse, pts)
    return sums / counts[:, None]


def euclidean_clusters(points, tolerance: float, min_size: int, max_size: int) -> list[list[int]]:
    """Group points connected by hops no longer than ``tolerance``.

    Clusters outside [min_size, max_size] are dropped; the rest come
    largest first, each holding sorted point indices.
    """
    pts = _as_points(points)
    if len(pts) == 0:
        return []
    tree = cKDTree(pts)
    processed = np.zeros(len(pts), dtype=bool)
    clusters: list[list[int]] = []
    for start in range(len(pts)):
        if processed[start]:
            continue
        processed[start] = True
        members = [start]
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for neighbour in tree.query_ball_point(pts[current], tolerance):
                if not processed[neighbour]:
                    processed[neighbour] = True
                    members.append(neighbour)
                    queue.append(neighbour)
        if min_size <= len(members) <= max_size:
            clusters.append(sorted(members))
    clusters.sort(key=len, reverse=True)
    return clusters


def merge_nested_clusters(points, clusters: list[list[int]]) -> list[list[int]]:
    """Merge clusters whose axis-aligned bounds lie inside one another."""
    pts = _as_points(points)
    bounds = [(pts[c].min(axis=0), pts[c].max(axis=0)) for c in clusters]
    parent = list(range(len(clusters)))

    def find(i: int) -> int:
        root = i
        while parent[root] != root:
            root = parent[root]
        while parent[i] != root:
            parent[i], i = root, parent[i]
        return root

    def contains(outer, inner) -> bool:
        return bool(np.all(inner[0] >= outer[0]) and np.all(inner[1] <= outer[1]))

    for i, bi in enumerate(bounds):
        for j in range(i + 1, len(bounds)):
            bj = bounds[j]
            if contains(bi, bj) or contains(bj, bi):
                a, b = find(i), find(j)
                if a != b:
                    parent[b] = a

    merged: dict[int, list[int]] = {}
    for i, cluster in enumerate(clusters):
        merged.setdefault(find(i), []).extend(cluster)
    return [merged[root] for root in sorted(merged)]


def oriented_bounding_box(points) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Principal-axis box of the points.

    Returns (min_point, max_point, center, rotation): the extremes in the
    box frame (symmetric about its centre), the centre in the input frame,
    and the rotation whose columns are the major, middle and minor axes.
    """
    pts = _as_points(points)
    if len(pts) == 0:
        raise ValueError("cannot bound an empty set of points")
    mean = pts.mean(axis=0)
    centred = pts - mean
    cov = centred.T @ centred / len(pts)
    _, vecs = np.linalg.eigh(cov)
    major, middle = vecs[:, 2], vecs[:, 1]
    minor = np.cross(major, middle)
    rotation = np.column_stack([major, middle, minor])
    local = centred @ rotation
    lo, hi = local.min(axis=0), local.max(axis=0)
    shift = (lo + hi) / 2.0
    center = mean + rotation @ shift
    return lo - shift, hi - shift, center, rotation


@dataclass
class Track:
    """A tracked cluster with its display colour."""

    id: int
    center: np.ndarray
    r: int
    g: int
    b: int
    missed: int = 0


class PointCloudClusterTracker:
    """Clusters successive clouds and keeps stable ids for the obstacles."""

    def __init__(
        self,
        xy_cluster_tolerance: float = 0.3,
        z_cluster_tolerance: float = 0.3,
        min_cluster_size: int = 10,
        max_cluster_size: int = 25000,
        leaf_size: float = 0.05,
        max_missed_frames: int = 5,
        xy_padding_range: float = 0.0,
        text_size_scale: float = 0.2,
        rng: random.Random | None = None,
    ):
        self.xy_tol = xy_cluster_tolerance
        self.z_tol = z_cluster_tolerance
        self.min_size = min_cluster_size
        self.max_size = max_cluster_size
        self.leaf_size = leaf_size
        self.max_missed = max_missed_frames
        self.xy_padding = xy_padding_range
        self.text_size_scale = text_size_scale
        self.rng = rng or random.Random()
        self.tracks: list[Track] = []
        self.last_markers: list[Marker] = []
        self.next_id = 0

    def clear_markers(self) -> list[Marker]:
        """A batch that deletes every marker."""
        return [Marker(action=MarkerAction.DELETEALL)]

    def process(self, points, transform: Transform | None, stamp: float) -> list[Marker]:
        """Cluster a cloud given in the lidar frame; ``transform`` maps lidar to map.

        Returns the markers to publish. Without a transform nothing changes and
        an empty list is returned; an empty cloud ages the tracks and returns a
        clearing batch.
        """
        if transform is None:
            return []
        pts = _as_points(points)
        if len(pts) == 0:
            for tr in self.tracks:
                tr.missed += 1
            self.tracks = [tr for tr in self.tracks if tr.missed <= self.max_missed]
            return self.clear_markers()

        filtered = voxel_downsample(pts, self.leaf_size)
        scaled = filtered * np.array([1.0, 1.0, self.xy_tol / self.z_tol])
        clusters = euclidean_clusters(scaled, self.xy_tol, self.min_size, self.max_size)
        clusters = merge_nested_clusters(filtered, clusters)
        centroids = [filtered[c].mean(axis=0) for c in clusters]

        threshold = self.xy_tol * 1.5
        markers: list[Marker] = []
        for tr in self.tracks:
            tr.missed += 1

        unmatched = []
        for cluster, centroid in zip(clusters, centroids):
            best, best_d = None, threshold
            for tr in self.tracks:
                d = float(np.linalg.norm(tr.center - centroid))
                if d < best_d:
                    best, best_d = tr, d
            if best is None:
                unmatched.append((cluster, centroid))
                continue
            best.center = centroid
            best.missed = 0
            markers.extend(self._cluster_markers(best, filtered[cluster], stamp, transform))

        for cluster, centroid in unmatched:
            tr = Track(
                self.next_id,
                centroid,
                self.rng.randrange(256),
                self.rng.randrange(256),
                self.rng.randrange(256),
            )
            self.next_id += 1
            self.tracks.append(tr)
            markers.extend(self._cluster_markers(tr, filtered[cluster], stamp, transform))

        removed = [tr.id for tr in self.tracks if tr.missed > self.max_missed]
        self.tracks = [tr for tr in self.tracks if tr.missed <= self.max_missed]
        for track_id in removed:
            for ns in ("cluster", "cluster_labels"):
                markers.append(
                    Marker(
                        header=Header("map", stamp),
                        ns=ns,
                        id=track_id,
                        action=MarkerAction.DELETE,
                    )
                )
        if not self.tracks:
            self.next_id = 0
        self.last_markers = markers
        return markers

    def _cluster_markers(
        self, tr: Track, cluster_points: np.ndarray, stamp: float, transform: Transform
    ) -> list[Marker]:
        lo, hi, center, rotation = oriented_bounding_box(cluster_points)
        local_yaw = math.atan2(rotation[1, 0], rotation[0, 0])
        position = transform.apply(Vector3(*(float(v) for v in center)))
        orientation = quaternion_from_yaw(transform.yaw() + local_yaw)
        extent = hi - lo

        cube = Marker(
            header=Header("map", stamp),
            ns="cluster",
            id=tr.id,
            type=MarkerType.CUBE,
            action=MarkerAction.ADD,
            pose=Pose(position, orientation),
            scale=Vector3(
                float(extent[0]) + 2 * self.xy_padding,
                float(extent[1]) + 2 * self.xy_padding,
                float(extent[2]),
            ),
            color=Color(tr.r / 255.0, tr.g / 255.0, tr.b / 255.0, 0.5),
            lifetime=0.0,
        )
        box_max = max(cube.scale.x, cube.scale.y)
        label = Marker(
            header=cube.header,
            ns="cluster_labels",
            id=tr.id,
            type=MarkerType.TEXT_VIEW_FACING,
            action=MarkerAction.ADD,
            pose=Pose(
                Vector3(position.x, position.y, position.z + float(extent[2]) / 2.0 + 0.1),
                orientation,
            ),
            scale=Vector3(cube.scale.x, cube.scale.y, max(1.0, box_max) * self.text_size_scale),
            color=Color(1.0, 1.0, 1.0, 1.0),
            lifetime=0.0,
            text=f"ID:{tr.id} ({position.x:.2f},{position.y:.2f})",
        )
        return [cube, label]