import math
import random

import numpy as np
import pytest

from obstacle_predict.cluster import (
    PointCloudClusterTracker,
    Track,
    euclidean_clusters,
    merge_nested_clusters,
    oriented_bounding_box,
    voxel_downsample,
)
from obstacle_predict.geometry import MarkerAction, MarkerType, Transform, Vector3


def _blob(cx, cy):
    return [
        (cx + dx * 0.1, cy + dy * 0.1, dz * 0.1)
        for dx in range(-2, 3)
        for dy in range(-2, 3)
        for dz in range(2)
    ]


def _tracker(**kwargs):
    return PointCloudClusterTracker(rng=random.Random(0), **kwargs)


def test_voxel_averages_points_in_one_cell():
    out = voxel_downsample([(0.01, 0.01, 0.01), (0.03, 0.03, 0.03)], 0.05)
    assert out.shape == (1, 3)
    assert out[0] == pytest.approx([0.02, 0.02, 0.02])


def test_voxel_drops_non_finite_and_keeps_separate_cells():
    pts = [(0.0, 0.0, 0.0), (1.0, 1.0, 1.0), (float("nan"), 0.0, 0.0)]
    out = voxel_downsample(pts, 0.5)
    assert len(out) == 2
    assert np.all(np.isfinite(out))


def test_voxel_rejects_bad_leaf():
    with pytest.raises(ValueError):
        voxel_downsample([(0.0, 0.0, 0.0)], 0.0)


def test_euclidean_clusters_split_and_filter():
    pts = _blob(0.0, 0.0) + _blob(5.0, 5.0)[:20] + [(20.0, 20.0, 0.0)]
    clusters = euclidean_clusters(pts, 0.3, 2, 1000)
    assert [len(c) for c in clusters] == [50, 20]
    assert all(c == sorted(c) for c in clusters)
    assert len(set(clusters[0]) & set(clusters[1])) == 0


def test_euclidean_clusters_respect_max_size():
    pts = _blob(0.0, 0.0) + _blob(5.0, 5.0)[:20]
    clusters = euclidean_clusters(pts, 0.3, 1, 30)
    assert [len(c) for c in clusters] == [20]


def test_merge_nested_combines_contained_bounds():
    pts = np.array([(0, 0, 0), (4, 4, 4), (1, 1, 1), (2, 2, 2), (10, 10, 10), (11, 11, 11)], float)
    merged = merge_nested_clusters(pts, [[0, 1], [2, 3], [4, 5]])
    assert merged == [[0, 1, 2, 3], [4, 5]]


def test_obb_of_axis_aligned_rectangle():
    pts = [(x * 0.1, y * 0.1, 0.0) for x in range(21) for y in range(5)]
    lo, hi, center, rot = oriented_bounding_box(pts)
    assert center[:2] == pytest.approx([1.0, 0.2])
    assert hi[0] - lo[0] == pytest.approx(2.0)
    assert hi[1] - lo[1] == pytest.approx(0.4)
    assert lo == pytest.approx(-hi)
    assert abs(math.sin(math.atan2(rot[1, 0], rot[0, 0]))) < 1e-6


def test_obb_follows_rotation():
    c, s = math.cos(math.pi / 4), math.sin(math.pi / 4)
    pts = [(c * x * 0.1 - s * y * 0.1, s * x * 0.1 + c * y * 0.1, 0.0) for x in range(21) for y in range(5)]
    _, _, _, rot = oriented_bounding_box(pts)
    yaw = math.atan2(rot[1, 0], rot[0, 0])
    assert math.sin(2 * yaw) == pytest.approx(1.0)
    assert rot.T @ rot == pytest.approx(np.eye(3))


def test_obb_rejects_empty():
    with pytest.raises(ValueError):
        oriented_bounding_box([])


def test_tracker_publishes_cube_and_label_per_cluster():
    tracker = _tracker()
    markers = tracker.process(_blob(1.0, 2.0), Transform(), 3.0)
    assert [m.type for m in markers] == [MarkerType.CUBE, MarkerType.TEXT_VIEW_FACING]
    cube, label = markers
    assert (cube.ns, label.ns) == ("cluster", "cluster_labels")
    assert cube.header.frame_id == "map" and cube.header.stamp == 3.0
    assert cube.pose.position.x == pytest.approx(1.0)
    assert cube.pose.position.y == pytest.approx(2.0)
    assert label.text == "ID:0 (1.00,2.00)"
    assert cube.color.a == 0.5
    assert tracker.last_markers == markers


def test_tracker_keeps_ids_for_moving_obstacles():
    tracker = _tracker()
    tracker.process(_blob(0.0, 0.0) + _blob(5.0, 5.0), Transform(), 0.0)
    first_ids = sorted(t.id for t in tracker.tracks)
    tracker.process(_blob(0.1, 0.0) + _blob(5.0, 5.1), Transform(), 0.1)
    assert sorted(t.id for t in tracker.tracks) == first_ids == [0, 1]
    assert all(isinstance(t, Track) and t.missed == 0 for t in tracker.tracks)


def test_tracker_deletes_lost_tracks():
    tracker = _tracker(max_missed_frames=0)
    tracker.process(_blob(0.0, 0.0) + _blob(5.0, 5.0), Transform(), 0.0)
    lost = next(t.id for t in tracker.tracks if t.center[0] > 2.5)
    markers = tracker.process(_blob(0.0, 0.0), Transform(), 0.1)
    deletions = [(m.ns, m.id) for m in markers if m.action == MarkerAction.DELETE]
    assert deletions == [("cluster", lost), ("cluster_labels", lost)]
    assert [t.id for t in tracker.tracks] != [lost]
    assert len(tracker.tracks) == 1


def test_tracker_applies_map_transform():
    tracker = _tracker()
    markers = tracker.process(_blob(1.0, 2.0), Transform(translation=Vector3(10.0, 0.0, 0.0)), 0.0)
    assert markers[0].pose.position.x == pytest.approx(11.0)


def test_tracker_without_transform_changes_nothing():
    tracker = _tracker()
    first = tracker.process(_blob(0.0, 0.0), Transform(), 0.0)
    assert tracker.process(_blob(3.0, 3.0), None, 1.0) == []
    assert tracker.last_markers == first


def test_empty_cloud_ages_tracks_and_clears():
    tracker = _tracker(max_missed_frames=1)
    tracker.process(_blob(0.0, 0.0), Transform(), 0.0)
    out = tracker.process([], Transform(), 0.1)
    assert [m.action for m in out] == [MarkerAction.DELETEALL]
    assert tracker.tracks[0].missed == 1
    tracker.process([], Transform(), 0.2)
    assert tracker.tracks == []


def test_colours_are_in_unit_range():
    tracker = _tracker()
    markers = tracker.process(_blob(0.0, 0.0) + _blob(5.0, 5.0), Transform(), 0.0)
    cubes = [m for m in markers if m.type == MarkerType.CUBE]
    assert len(cubes) == 2
    for m in cubes:
        assert 0.0 <= m.color.r <= 1.0 and 0.0 <= m.color.g <= 1.0 and 0.0 <= m.color.b <= 1.0


def test_clear_markers_is_delete_all():
    assert [m.action for m in _tracker().clear_markers()] == [MarkerAction.DELETEALL]