import numpy as np
import pytest

from deformslam.essential_matrix import (
    EssentialMatrixInitialization,
    EssentialMatrixOptions,
    InitializationError,
    compute_essential,
    compute_max_tries,
    decompose_essential_matrix,
    kmeans_labels,
)
from deformslam.landmark_status import LandmarkStatus


class PinholeCamera:
    def __init__(self, fx=500.0, fy=500.0, cx=320.0, cy=240.0):
        self.fx, self.fy, self.cx, self.cy = fx, fy, cx, cy

    def unproject(self, x, y):
        return np.array([(x - self.cx) / self.fx, (y - self.cy) / self.fy, 1.0])

    def project(self, point):
        p = np.asarray(point, dtype=float)
        return (self.fx * p[0] / p[2] + self.cx, self.fy * p[1] / p[2] + self.cy)


def rotation_y(angle):
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def skew(v):
    return np.array([[0.0, -v[2], v[1]], [v[2], 0.0, -v[0]], [-v[1], v[0], 0.0]])


TRUE_ROTATION = rotation_y(0.05)
TRUE_TRANSLATION = np.array([-0.5, 0.0, 0.0])


def make_scene(n_points, seed=0):
    rng = np.random.default_rng(seed)
    points = np.column_stack(
        [rng.uniform(-2, 2, n_points), rng.uniform(-2, 2, n_points), rng.uniform(4, 8, n_points)]
    )
    camera = PinholeCamera()
    reference = [camera.project(p) for p in points]
    current = [camera.project(TRUE_ROTATION @ p + TRUE_TRANSLATION) for p in points]
    return camera, points, reference, current


def make_initializer(camera, **kwargs):
    options = EssentialMatrixOptions(radians_per_pixel=0.001)
    return EssentialMatrixInitialization(options, camera, **kwargs)


def test_compute_max_tries_default_ransac():
    assert compute_max_tries(0.8, 0.95, 8) == 16


def test_compute_max_tries_grows_with_likelihood():
    assert compute_max_tries(0.8, 0.99, 8) > compute_max_tries(0.8, 0.95, 8)


@pytest.mark.parametrize("fraction,likelihood", [(0.0, 0.95), (1.0, 0.95), (0.8, 1.0)])
def test_compute_max_tries_rejects_bad_values(fraction, likelihood):
    with pytest.raises(ValueError):
        compute_max_tries(fraction, likelihood, 8)


def test_compute_essential_satisfies_epipolar_constraint():
    _, points, _, _ = make_scene(20)
    reference = points / np.linalg.norm(points, axis=1, keepdims=True)
    moved = points @ TRUE_ROTATION.T + TRUE_TRANSLATION
    current = moved / np.linalg.norm(moved, axis=1, keepdims=True)
    essential = compute_essential(reference, current)
    residuals = np.einsum("ij,jk,ik->i", current, essential, reference)
    assert np.allclose(residuals, 0.0, atol=1e-9)
    assert np.allclose(np.linalg.svd(essential, compute_uv=False), [1.0, 1.0, 0.0], atol=1e-9)


def test_compute_essential_needs_eight_pairs():
    rays = np.ones((7, 3))
    with pytest.raises(ValueError):
        compute_essential(rays, rays)


def test_decompose_recovers_rotation_and_direction():
    essential = skew(TRUE_TRANSLATION) @ TRUE_ROTATION
    rotation_1, rotation_2, translation = decompose_essential_matrix(essential)
    assert np.isclose(np.linalg.det(rotation_1), 1.0)
    assert np.isclose(np.linalg.det(rotation_2), 1.0)
    assert np.allclose(rotation_1, TRUE_ROTATION) or np.allclose(rotation_2, TRUE_ROTATION)
    direction = TRUE_TRANSLATION / np.linalg.norm(TRUE_TRANSLATION)
    assert np.isclose(abs(translation @ direction), 1.0)


def test_decompose_rejects_wrong_shape():
    with pytest.raises(ValueError):
        decompose_essential_matrix(np.eye(2))


def test_kmeans_separates_two_blobs():
    rng = np.random.default_rng(1)
    blob_a = rng.normal(0.0, 1.0, (20, 2))
    blob_b = rng.normal(100.0, 1.0, (20, 2))
    labels = kmeans_labels(np.vstack([blob_a, blob_b]), 2, 3, np.random.default_rng(2))
    assert len(set(labels[:20])) == 1
    assert len(set(labels[20:])) == 1
    assert labels[0] != labels[20]


def test_kmeans_leaves_no_cluster_empty():
    rng = np.random.default_rng(3)
    points = rng.uniform(0, 10, (10, 2))
    labels = kmeans_labels(points, 8, 3, np.random.default_rng(4))
    assert set(labels) == set(range(8))


def test_kmeans_rejects_too_many_clusters():
    with pytest.raises(ValueError):
        kmeans_labels([[0.0, 0.0], [1.0, 1.0]], 3, 1, np.random.default_rng(0))


def test_options_require_minimal_sample():
    with pytest.raises(ValueError):
        EssentialMatrixOptions(radians_per_pixel=0.001, min_sample_set_size=7)


def test_initialize_recovers_pose_and_landmarks():
    camera, points, reference, current = make_scene(300)
    initializer = make_initializer(camera)
    initializer.change_reference(reference)
    statuses = [LandmarkStatus.TRACKED] * len(current)
    result = initializer.initialize(current, statuses, len(current))

    transform = result.camera_transform_world
    assert np.allclose(transform.rotation, TRUE_ROTATION, atol=1e-6)
    scale = np.linalg.norm(TRUE_TRANSLATION)
    assert np.allclose(transform.translation, TRUE_TRANSLATION / scale, atol=1e-6)
    assert result.triangulated_indices == list(range(300))
    assert result.n_inliers == 300
    recovered = np.array(result.landmarks)
    assert np.allclose(recovered, points / scale, atol=1e-4)


def test_initialize_skips_keypoints_that_are_not_tracked():
    camera, _, reference, current = make_scene(300)
    initializer = make_initializer(camera)
    initializer.change_reference(reference)
    statuses = [LandmarkStatus.TRACKED] * len(current)
    for idx in (0, 5, 17):
        statuses[idx] = LandmarkStatus.BAD
    result = initializer.initialize(current, statuses, len(current) - 3)
    for idx in (0, 5, 17):
        assert result.landmarks[idx] is None
        assert result.rejection_reasons[idx] == "Not triangulated"
    assert len(result.triangulated_indices) == 297


def test_initialize_is_deterministic():
    camera, _, reference, current = make_scene(200, seed=7)
    statuses = [LandmarkStatus.TRACKED] * len(current)
    first = make_initializer(camera)
    first.change_reference(reference)
    second = make_initializer(camera)
    second.change_reference(reference)
    a = first.initialize(current, statuses, len(current))
    b = second.initialize(current, statuses, len(current))
    assert np.array_equal(a.camera_transform_world.matrix(), b.camera_transform_world.matrix())


def test_initialize_requires_eight_matches():
    camera, _, reference, current = make_scene(50)
    initializer = make_initializer(camera)
    initializer.change_reference(reference)
    with pytest.raises(InitializationError) as caught:
        initializer.initialize(current, [LandmarkStatus.TRACKED] * 50, 7)
    assert str(caught.value) == "Not enough matches"
    assert caught.value.result is None


def test_initialize_with_few_points_reports_partial_result():
    camera, _, reference, current = make_scene(50)
    initializer = make_initializer(camera)
    initializer.change_reference(reference)
    with pytest.raises(InitializationError) as caught:
        initializer.initialize(current, [LandmarkStatus.TRACKED] * 50, 50)
    assert str(caught.value) == "Not enough triangulated landmarks"
    partial = caught.value.result
    assert partial is not None
    assert np.allclose(partial.camera_transform_world.rotation, TRUE_ROTATION, atol=1e-6)


def test_initialize_reports_result_to_callback():
    camera, _, reference, current = make_scene(300)
    seen = []
    initializer = make_initializer(
        camera, draw_features=lambda keypoints, result: seen.append((len(keypoints), result))
    )
    initializer.change_reference(reference)
    result = initializer.initialize(current, [LandmarkStatus.TRACKED] * 300, 300)
    assert len(seen) == 1
    assert seen[0][0] == 300
    assert seen[0][1] is result


def test_initialize_rejects_mismatched_statuses():
    camera, _, reference, current = make_scene(50)
    initializer = make_initializer(camera)
    initializer.change_reference(reference)
    with pytest.raises(ValueError):
        initializer.initialize(current, [LandmarkStatus.TRACKED] * 10, 50)


def test_initialize_without_reference_fails():
    camera, _, _, current = make_scene(50)
    initializer = make_initializer(camera)
    with pytest.raises(ValueError):
        initializer.initialize(current, [LandmarkStatus.TRACKED] * 50, 50)