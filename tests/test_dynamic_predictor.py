import pytest

from obstacle_predict.dynamic_predictor import DynamicObstaclePredictor
from obstacle_predict.geometry import (
    Header,
    Marker,
    MarkerAction,
    MarkerType,
    Pose,
    Vector3,
)


def cube(marker_id, x, y, z=0.0, marker_type=MarkerType.CUBE):
    return Marker(
        header=Header(frame_id="map", stamp=0.0),
        ns="cluster",
        id=marker_id,
        type=marker_type,
        pose=Pose(Vector3(x, y, z)),
        scale=Vector3(1.0, 2.0, 0.5),
    )


def test_empty_gives_clear_marker_only():
    pred = DynamicObstaclePredictor()
    out = pred.predictions(3.0)
    assert len(out) == 1
    assert out[0].action == MarkerAction.DELETEALL
    assert out[0].ns == "predicted"
    assert out[0].header.frame_id == "map"
    assert out[0].header.stamp == 3.0


def test_non_cube_markers_ignored():
    pred = DynamicObstaclePredictor()
    pred.on_markers([cube(1, 0.0, 0.0, marker_type=MarkerType.SPHERE)], 0.0)
    assert len(pred.predictions(0.0)) == 1


def test_prediction_keeps_marker_fields():
    pred = DynamicObstaclePredictor()
    pred.on_markers([cube(4, 1.0, 2.0, z=0.7)], 1.0)
    out = pred.predictions(1.5)
    assert len(out) == 2
    m = out[1]
    assert m.id == 4
    assert m.ns == "predicted"
    assert m.header.stamp == 1.5
    assert m.scale == Vector3(1.0, 2.0, 0.5)
    assert m.pose.position.z == 0.7


def test_stationary_obstacle_stays_put():
    pred = DynamicObstaclePredictor()
    for step in range(10):
        pred.on_markers([cube(1, 3.0, -2.0)], 0.1 * step)
    m = pred.predictions(1.0)[1]
    assert m.pose.position.x == pytest.approx(3.0, abs=1e-6)
    assert m.pose.position.y == pytest.approx(-2.0, abs=1e-6)


def test_moving_obstacle_predicted_ahead():
    pred = DynamicObstaclePredictor(measurement_noise=0.01, process_noise=0.01)
    last_x = 0.0
    for step in range(30):
        last_x = 0.1 * step
        pred.on_markers([cube(1, last_x, 0.0)], 0.1 * step)
    m = pred.predictions(3.0)[1]
    assert m.pose.position.x > last_x + 0.25


def test_missing_track_is_dropped():
    pred = DynamicObstaclePredictor()
    pred.on_markers([cube(1, 0.0, 0.0), cube(2, 5.0, 5.0)], 0.0)
    pred.on_markers([cube(2, 5.0, 5.0)], 0.1)
    ids = [m.id for m in pred.predictions(0.2)[1:]]
    assert ids == [2]


def test_reappearing_id_starts_fresh():
    pred = DynamicObstaclePredictor()
    pred.on_markers([cube(1, 0.0, 0.0)], 0.0)
    pred.on_markers([], 0.1)
    pred.on_markers([cube(1, 10.0, 10.0)], 0.2)
    m = pred.predictions(0.3)[1]
    assert m.pose.position.x == pytest.approx(10.0, abs=1e-6)