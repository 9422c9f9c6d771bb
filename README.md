# deformslam

Building blocks for monocular SLAM in scenes that deform, written in plain
Python on top of NumPy.

## What is inside

- `deformslam.landmark_status`: the `LandmarkStatus` enum (`TRACKED_WITH_3D`,
  `TRACKED`, `JUST_TRIANGULATED`, `BAD`, `OUT_IMAGE_BOUNDARIES`,
  `BAD_FEATURE`) and `is_usable(status)`. The function is true for the first
  three.
- `deformslam.statistics_toolbox`: `mean`, `median` (the element at
  `len // 2` of the sorted data), `sigma` (population standard deviation) and
  `chi_squared(degrees_of_freedom, alpha)`. The last one looks up a tabulated
  critical value for rows 0 to 29 and the significance levels 0.995, 0.99,
  0.975, 0.95, 0.9, 0.1, 0.05, 0.025, 0.01 and 0.005.
- `deformslam.types_conversions`: `RigidTransform`, an immutable rotation plus
  translation. It has `identity()`, `inverse()`, `apply(point)` for one point
  or an `(N, 3)` array, `compose(other)` (also available as `a @ b`) and
  `matrix()` for the homogeneous 4x4 form. The helpers
  `rigid_transform_from_matrix` (which re-orthonormalises the rotation block),
  `rotation_from_matrix` and `vector_from_matrix` build these values from
  plain arrays.
- `deformslam.geometry_toolbox`: `interpolation_weight`,
  `squared_reprojection_error`, `rays_parallax_cosine`, `rays_parallax`,
  `triangulate_midpoint` (inverse-depth weighted midpoint, which raises
  `ValueError` on degenerate geometry), `interpolate` (bilinear interpolation
  on a 2-D grid) and `has_inf`.
- `deformslam.time_profiler`: `TimeProfiler`. It runs named `tic`/`toc`
  timers, whose samples are whole milliseconds, and `measure(identifier,
  function)` times a callable and returns its result. Samples can be read back
  with `samples`. `print_statistics` logs them, and `save_statistics_to_file`
  writes the mean, the deviation and every sample. The clock can be injected.
- `deformslam.dbscan`: a general `dbscan(data, epsilon, min_points)`, which
  labels noise as `-1`, and three fixed-parameter variants:
  - `dbscan_2d` clusters flow vectors by direction and relative magnitude.
  - `dbscan_3d` renumbers clusters from largest to smallest, and the noise
    group takes part in that renumbering.
  - `dbscan_nd` uses a radius that grows with the dimension.
- `deformslam.frame_evaluator`: `FrameEvaluator` with `EvaluatorOptions`. It
  computes a trimmed depth RMSE against ground truth, with or without first
  estimating an aligning scale. `evaluate_reconstruction` records the RMSE and
  returns the ground truth moved into the world frame. `save_results_to_file`
  writes every recorded RMSE. Two helpers go with it:
  - `transform_point_cloud` maps a cloud through a transform.
  - `ground_truth_from_depth_map` reads 3-D points from a dense depth map.
- `deformslam.essential_matrix`: `EssentialMatrixInitialization` recovers the
  relative pose of two views and triangulates the landmarks. It fits an
  Essential matrix by eight-point RANSAC, drawing its samples from k-means
  clusters of the reference keypoints. It then picks the rotation and the sign
  of the translation and triangulates every inlier. Rejected keypoints keep a
  reason string.
  - `initialize` returns an `InitializationResult`.
  - It raises `InitializationError` when there are too few matches, when fewer
    than 100 landmarks are triangulated, or when too many inliers have low
    parallax. The partial result is attached when one exists.
  - The camera is any object that follows the `CameraModel` protocol
    (`unproject(x, y)` and `project(point)`).
  - The module also exposes `compute_max_tries`, `compute_essential`,
    `decompose_essential_matrix` and `kmeans_labels`.
- `deformslam.color_factory`: `ColorFactory`, a fixed palette of 100 colours
  served by `unique_colors(n)`, and `heat_map_color(min_value, max_value,
  value)`, which returns a blue-to-red colour as a (blue, green, red) triple.

## What it does not do

This is a library of parts, not a running SLAM system. It has no command-line
program, and it does not read images or video. It does no feature detection or
optical-flow tracking, which means the keypoints and their statuses must come
from your own code. It does no stereo matching, no map or keyframe storage, no
deformation optimisation, and it opens no windows for drawing or 3-D viewing.
You also supply the camera model.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example

```python
import numpy as np

from deformslam.geometry_toolbox import rays_parallax, triangulate_midpoint
from deformslam.types_conversions import RigidTransform

identity = RigidTransform()
moved = RigidTransform(np.eye(3), np.array([-1.0, 0.0, 0.0]))

ray_1 = np.array([0.1, 0.0, 1.0])
ray_2 = np.array([-0.1, 0.0, 1.0])

point = triangulate_midpoint(ray_1, ray_2, identity, moved)
print(point, rays_parallax(ray_1, ray_2))
```

```python
from deformslam.statistics_toolbox import chi_squared, median

print(chi_squared(1, 0.05))      # 5.991
print(median([3.0, 1.0, 2.0]))   # 2.0
```