# obstacle_predict

A library for turning 3D point clouds into tracked obstacles and for predicting
where those obstacles will be a short time ahead.

You pass in points, markers, poses, transforms and timestamps in seconds. The
library returns markers, coloured points and predictions.

## Installation

```
pip install .
```

To install the test dependencies and run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `obstacle_predict.geometry`

This module holds the data types that the rest of the package uses:

- `Vector3` and `Quaternion`.
  - `Quaternion.normalized()` raises `ValueError` for a zero quaternion.
  - `Quaternion.rotate(vector)` rotates a vector.
- `Pose`, `Color` and `Header`. The `Header` stamp is in seconds.
- `Marker`, with the enums `MarkerType` and `MarkerAction`.
- `Transform`, a rigid transform made of a rotation and a translation.
  - `apply(point)` maps a point through the transform.
  - `compose(other)` returns the transform that applies `other` first and then this one.
  - `yaw()` returns the yaw angle of the rotation.
- `Box`, a planar box obstacle with a position, a size, a yaw and a velocity.
- `quaternion_from_yaw(yaw)` returns the quaternion for a rotation about the z axis.
- `rpy_from_quaternion(q)` returns `(roll, pitch, yaw)`.

### `obstacle_predict.kalman`

- `KF2D(mx, my, meas_noise, proc_noise, stamp)` is a constant-velocity filter
  over `[x, y, vx, vy]` that measures position only.
- `VehicleKF(meas_pos, meas_yaw, meas_vel, proc_pos, proc_yaw, proc_vel)` is a
  six-state filter over `[x, y, yaw, vx, vy, yaw_rate]`.
  - It does nothing useful until `init(px, py, yaw, stamp)` has been called.
  - `update` wraps the yaw innovation and keeps the yaw state in (-pi, pi].
- Both filters have `predict(dt)`, `update(z)` and `copy()`. `update` raises
  `ValueError` when the measurement has the wrong number of components.
- `normalize_angle(angle)` maps an angle into (-pi, pi].
- `shortest_angular_distance(source, target)` returns the signed smallest
  rotation from `source` to `target`.

### `obstacle_predict.dynamic_predictor`

`DynamicObstaclePredictor(measurement_noise=1.0, process_noise=0.1, prediction_dt=0.5)`
keeps one `KF2D` for each cube marker id.

- `on_markers(markers, now)`:
  - ignores markers that are not cubes;
  - drops the tracks whose ids are missing from the batch;
  - creates filters for new ids;
  - updates every track with its measured x and y.
- `predictions(now)` returns the following markers:
  - first, a `DELETEALL` marker in the `predicted` namespace, in frame `map`;
  - then one copy of each tracked marker, moved to its position predicted
    `prediction_dt` seconds ahead, in the `predicted` namespace.

### `obstacle_predict.fov_predictor`

`FOVObstaclePredictor(prediction_dt=0.5, text_size_scale=0.2)` tracks the
vehicle's own pose with a `VehicleKF`.

- `on_pose(pose, stamp)`:
  - the first pose initialises the filter;
  - a later pose whose stamp is not more than 1e-6 s after the filter's last
    stamp is ignored;
  - any other pose updates the filter, using velocities derived from the
    previous pose.
- `on_markers(markers)` replaces the stored obstacle markers.
- `predictions(now)` returns an empty list until a pose and some markers have
  been received. After that, for each stored marker it returns two markers:
  - the marker, re-projected by the vehicle's predicted motion into frame `map`;
  - a white `TEXT_VIEW_FACING` label in the `fov_obs_labels` namespace, with
    the text `ID:<id>(fov)`.

### `obstacle_predict.marker_cloud`

- `ColoredPoint` is a point with 8-bit RGBA colour.
- `sample_cube(marker, xy_scale, z_scale, transform)` samples the six faces of
  a cube marker on a grid and maps the samples through `transform`. It raises
  `ValueError` if either step is not positive.
- `MarkerToPointCloud(target_frame="lidar_link", xy_scale=0.1, z_scale=0.1)`
  samples the added cube markers of a batch. `on_markers(markers, transform)`
  returns the new cloud. It returns `None` and keeps the previous cloud in any
  of these cases:
  - the batch is empty;
  - `transform` is `None`;
  - no points were produced.

  `last_cloud` and `has_cloud` expose the most recent cloud.

### `obstacle_predict.cluster`

- `voxel_downsample(points, leaf_size)` replaces the points in each voxel by
  their centroid. Non-finite points are dropped.
- `euclidean_clusters(points, tolerance, min_size, max_size)` returns lists of
  point indices.
  - Clusters are formed by hops no longer than `tolerance`.
  - Clusters smaller than `min_size` or larger than `max_size` are dropped.
  - The largest cluster comes first.
- `merge_nested_clusters(points, clusters)` merges clusters whose axis-aligned
  bounds lie inside one another.
- `oriented_bounding_box(points)` returns `(min_point, max_point, center, rotation)`
  for the principal-axis box of the points.
- `Track` is a tracked cluster with an id, a centre, a colour and a missed-frame count.
- `PointCloudClusterTracker` takes these options:
  - `xy_cluster_tolerance`
  - `z_cluster_tolerance`
  - `min_cluster_size`
  - `max_cluster_size`
  - `leaf_size`
  - `max_missed_frames`
  - `xy_padding_range`
  - `text_size_scale`
  - `rng`

  Its `process(points, transform, stamp)` method does the following:
  1. It downsamples the cloud and scales z for clustering.
  2. It clusters the points and merges nested clusters.
  3. It matches each cluster to the nearest track within 1.5 times the xy
     tolerance, or starts a new track.
  4. For each cluster it returns a `cluster` cube marker and a
     `cluster_labels` text marker, both in frame `map`.
  5. Tracks that stay unseen for more than `max_missed_frames` frames are
     removed and get `DELETE` markers in both namespaces.

  Some inputs get special handling:
  - With `transform=None`, nothing changes and an empty list is returned.
  - An empty cloud ages the tracks and returns the batch from `clear_markers()`.

## Example: predicting obstacle motion

```python
from obstacle_predict.geometry import Marker, MarkerType, Pose, Vector3
from obstacle_predict.dynamic_predictor import DynamicObstaclePredictor

predictor = DynamicObstaclePredictor()

for t, x in [(0.0, 0.0), (0.1, 0.1), (0.2, 0.2)]:
    cube = Marker(id=7, type=MarkerType.CUBE, pose=Pose(position=Vector3(x, 0.0, 0.0)))
    predictor.on_markers([cube], now=t)

for marker in predictor.predictions(now=0.2):
    print(marker.ns, marker.id, marker.action, marker.pose.position)
```

## Example: clustering a point cloud

```python
import numpy as np
from obstacle_predict.cluster import PointCloudClusterTracker
from obstacle_predict.geometry import Transform

tracker = PointCloudClusterTracker()
points = np.random.default_rng(0).normal(scale=0.1, size=(200, 3))
markers = tracker.process(points, Transform(), stamp=0.0)
for marker in markers:
    print(marker.ns, marker.id, marker.text)
```

## What the package does not do

The package is a library only. It has none of the following:

- commands to run;
- message transport;
- publishers or timers;
- transform lookup.

The caller does these jobs instead:

- obtain the transforms and pass them in;
- call `predictions` or `process` at whatever rate it wants;
- send the returned markers and points wherever they need to go.

Point clouds are plain arrays of points or lists of `ColoredPoint`. They are
not serialised into any wire format.