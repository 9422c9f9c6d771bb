"""Two-view map initialisation from an Essential matrix estimated with RANSAC."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np

from deformslam.geometry_toolbox import (
    rays_parallax,
    squared_reprojection_error,
    triangulate_midpoint,
)
from deformslam.landmark_status import LandmarkStatus
from deformslam.types_conversions import RigidTransform

__all__ = [
    "CameraModel",
    "EssentialMatrixOptions",
    "InitializationError",
    "InitializationResult",
    "EssentialMatrixInitialization",
    "compute_max_tries",
    "compute_essential",
    "decompose_essential_matrix",
    "kmeans_labels",
]

NOT_TRIANGULATED = "Not triangulated"
TRIANGULATION_ERROR = "Internal triangulation error."
LOW_PARALLAX = "Low parallax error."
NEGATIVE_DEPTH_FIRST = "Negative depth at first camera."
HIGH_REPROJECTION_FIRST = "High reprojection error at first camera."
NEGATIVE_DEPTH_SECOND = "Negative depth at second camera."
HIGH_REPROJECTION_SECOND = "High reprojection error at second camera."

_MIN_MATCHES = 8
_MIN_TRIANGULATED = 100
_MAX_LOW_PARALLAX_FRACTION = 0.25
_REPROJECTION_THRESHOLD = 5.991
_RANSAC_INLIER_FRACTION = 0.8
_RANSAC_SUCCESS_LIKELIHOOD = 0.95
_KMEANS_ATTEMPTS = 3
_KMEANS_EPSILON = 1.0
_KMEANS_MAX_ITERATIONS = 100


@runtime_checkable
class CameraModel(Protocol):
    """Maps pixels to bearing rays and camera-frame points back to pixels."""

    def unproject(self, x: float, y: float) -> np.ndarray:
        """Bearing ray through the pixel (x, y)."""
        ...

    def project(self, point) -> tuple[float, float]:
        """Pixel coordinates of a camera-frame 3-D point."""
        ...


@dataclass
class EssentialMatrixOptions:
    """Thresholds for the two-view initialisation."""

    radians_per_pixel: float
    max_features: int = 4000
    min_sample_set_size: int = 8
    min_parallax: float = 0.999
    epipolar_threshold: float = 0.005

    def __post_init__(self) -> None:
        if self.min_sample_set_size < _MIN_MATCHES:
            raise ValueError(
                f"min_sample_set_size must be at least {_MIN_MATCHES}, "
                f"got {self.min_sample_set_size}"
            )
        if self.epipolar_threshold <= 0:
            raise ValueError("epipolar_threshold must be positive")


@dataclass
class InitializationResult:
    """Camera pose of the current view and landmarks triangulated per keypoint."""

    camera_transform_world: RigidTransform
    landmarks: list[np.ndarray | None]
    rejection_reasons: list[str | None]
    n_inliers: int = 0

    @property
    def triangulated_indices(self) -> list[int]:
        """Keypoint indices that received a landmark."""
        return [idx for idx, point in enumerate(self.landmarks) if point is not None]


class InitializationError(Exception):
    """Raised when the two views cannot initialise a map.

    ``result`` holds the partial reconstruction when one was reached.
    """

    def __init__(self, message: str, result: InitializationResult | None = None) -> None:
        super().__init__(message)
        self.result = result


def compute_max_tries(inlier_fraction: float, success_likelihood: float, sample_size: int) -> int:
    """Number of RANSAC iterations for the wanted likelihood of an all-inlier sample."""
    if not 0.0 < inlier_fraction < 1.0:
        raise ValueError(f"inlier_fraction must lie in (0, 1), got {inlier_fraction}")
    if not 0.0 <= success_likelihood < 1.0:
        raise ValueError(f"success_likelihood must lie in [0, 1), got {success_likelihood}")
    if sample_size < 1:
        raise ValueError(f"sample_size must be positive, got {sample_size}")
    return int(
        math.log(1.0 - success_likelihood) / math.log(1.0 - inlier_fraction**sample_size)
    )


def compute_essential(reference_rays, current_rays) -> np.ndarray:
    """Essential matrix with singular values (1, 1, 0) from at least eight ray pairs.

    The rays satisfy ``current^T E reference = 0`` up to noise.
    """
    reference = np.asarray(reference_rays, dtype=float)
    current = np.asarray(current_rays, dtype=float)
    if reference.ndim != 2 or reference.shape[1] != 3 or reference.shape != current.shape:
        raise ValueError("rays must be two (N, 3) arrays of the same shape")
    if reference.shape[0] < _MIN_MATCHES:
        raise ValueError(f"at least {_MIN_MATCHES} ray pairs are needed, got {reference.shape[0]}")

    system = np.hstack(
        [reference * current[:, 0:1], reference * current[:, 1:2], reference * current[:, 2:3]]
    )
    _, _, vt = np.linalg.svd(system, full_matrices=True)
    essential = vt[-1].reshape(3, 3)

    u, _, vt = np.linalg.svd(essential)
    forced = u @ np.diag([1.0, 1.0, 0.0]) @ vt
    return -forced


def decompose_essential_matrix(essential) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """The two rotation hypotheses and the unit translation of an Essential matrix."""
    matrix = np.asarray(essential, dtype=float)
    if matrix.shape != (3, 3):
        raise ValueError(f"essential matrix must be 3x3, got shape {matrix.shape}")
    u, _, vt = np.linalg.svd(matrix)
    w = np.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])

    rotation_1 = u @ w.T @ vt
    if np.linalg.det(rotation_1) < 0:
        rotation_1 = -rotation_1
    rotation_2 = u @ w @ vt
    if np.linalg.det(rotation_2) < 0:
        rotation_2 = -rotation_2

    translation = u[:, 2] / np.linalg.norm(u[:, 2])
    return rotation_1, rotation_2, translation


def _fill_empty_clusters(data: np.ndarray, labels: np.ndarray, centers: np.ndarray) -> None:
    n_clusters = centers.shape[0]
    counts = np.bincount(labels, minlength=n_clusters)
    for cluster in np.flatnonzero(counts == 0):
        distances = np.sum((data - centers[labels]) ** 2, axis=1)
        distances[counts[labels] <= 1] = -1.0
        donor = int(np.argmax(distances))
        counts[labels[donor]] -= 1
        labels[donor] = cluster
        counts[cluster] = 1
        centers[cluster] = data[donor]


def _kmeans_plus_plus(data: np.ndarray, n_clusters: int, rng: np.random.Generator) -> np.ndarray:
    count = data.shape[0]
    centers = [data[rng.integers(count)]]
    for _ in range(1, n_clusters):
        stacked = np.array(centers)
        distances = np.min(
            np.sum((data[:, None, :] - stacked[None, :, :]) ** 2, axis=2), axis=1
        )
        total = distances.sum()
        if total == 0.0:
            chosen = rng.integers(count)
        else:
            chosen = rng.choice(count, p=distances / total)
        centers.append(data[chosen])
    return np.array(centers, dtype=float)


def kmeans_labels(points, n_clusters: int, attempts: int = 3, rng=None) -> list[int]:
    """Cluster labels of 2-D points by k-means with k-means++ seeding.

    The attempt with the smallest compactness wins; every cluster ends non-empty.
    """
    data = np.asarray(points, dtype=float)
    if data.ndim != 2 or data.shape[0] == 0:
        raise ValueError(f"points must form a non-empty (N, D) array, got shape {data.shape}")
    if not 1 <= n_clusters <= data.shape[0]:
        raise ValueError(
            f"n_clusters must lie in [1, {data.shape[0]}], got {n_clusters}"
        )
    if attempts < 1:
        raise ValueError(f"attempts must be positive, got {attempts}")
    generator = rng if rng is not None else np.random.default_rng()

    best_labels: np.ndarray | None = None
    best_compactness = math.inf
    for _ in range(attempts):
        centers = _kmeans_plus_plus(data, n_clusters, generator)
        labels = np.zeros(data.shape[0], dtype=int)
        for _ in range(_KMEANS_MAX_ITERATIONS):
            distances = np.sum((data[:, None, :] - centers[None, :, :]) ** 2, axis=2)
            labels = np.argmin(distances, axis=1)
            _fill_empty_clusters(data, labels, centers)
            new_centers = np.array([data[labels == c].mean(axis=0) for c in range(n_clusters)])
            shift = np.max(np.sum((new_centers - centers) ** 2, axis=1))
            centers = new_centers
            if shift < _KMEANS_EPSILON * _KMEANS_EPSILON:
                break
        distances = np.sum((data[:, None, :] - centers[None, :, :]) ** 2, axis=2)
        labels = np.argmin(distances, axis=1)
        _fill_empty_clusters(data, labels, centers)
        compactness = float(np.sum((data - centers[labels]) ** 2))
        if compactness < best_compactness:
            best_compactness = compactness
            best_labels = labels.copy()
    assert best_labels is not None
    return [int(label) for label in best_labels]


def _as_keypoints(keypoints) -> np.ndarray:
    array = np.asarray(keypoints, dtype=float)
    if array.size == 0:
        return array.reshape(0, 2)
    if array.ndim != 2 or array.shape[1] != 2:
        raise ValueError(f"keypoints must be (x, y) pairs, got shape {array.shape}")
    return array


def _epipolar_inliers(essential: np.ndarray, reference: np.ndarray, current: np.ndarray,
                      threshold: float) -> np.ndarray:
    with np.errstate(invalid="ignore", divide="ignore"):
        transformed = reference @ essential.T
        transformed = transformed / np.linalg.norm(transformed, axis=1, keepdims=True)
        current_unit = current / np.linalg.norm(current, axis=1, keepdims=True)
        cosines = np.clip(np.sum(transformed * current_unit, axis=1), -1.0, 1.0)
        angles = np.arccos(cosines)
        return np.abs(np.pi / 2 - angles) < threshold


def _diagonal_sum(matrix: np.ndarray) -> float:
    return float(np.sum(np.diagonal(matrix)))


def _select_camera(essential: np.ndarray, rays_1: np.ndarray, rays_2: np.ndarray) -> RigidTransform:
    rotation_1, rotation_2, translation = decompose_essential_matrix(essential)
    rotation = rotation_2 if _diagonal_sum(rotation_2) > _diagonal_sum(rotation_1) else rotation_1
    difference = rays_1 @ rotation.T - rays_2
    offset = rays_2 - translation
    away = float(np.sum(np.sign(np.sum(difference * offset, axis=1))))
    if np.signbit(away):
        translation = -translation
    return RigidTransform(rotation, translation)


class EssentialMatrixInitialization:
    """Recovers the relative pose of two views and triangulates their matches."""

    def __init__(
        self,
        options: EssentialMatrixOptions,
        calibration: CameraModel,
        draw_features: Callable[[np.ndarray, InitializationResult], None] | None = None,
        seed: int = 4,
    ) -> None:
        self.options = options
        self.calibration = calibration
        self._draw_features = draw_features
        self._seed = seed
        self._reference: np.ndarray | None = None

    def change_reference(self, keypoints) -> None:
        """Set the keypoints of the reference view."""
        self._reference = _as_keypoints(keypoints).copy()

    def _ray(self, point) -> np.ndarray:
        ray = np.asarray(self.calibration.unproject(float(point[0]), float(point[1])), dtype=float)
        return ray / np.linalg.norm(ray)

    def _rays(self, points: np.ndarray) -> np.ndarray:
        return np.array([self._ray(point) for point in points], dtype=float).reshape(-1, 3)

    def initialize(self, current_keypoints, keypoint_statuses: Sequence[LandmarkStatus],
                   n_matches: int) -> InitializationResult:
        """Estimate the current camera pose and landmarks for the tracked keypoints.

        Raises InitializationError when the views do not support a map.
        """
        if n_matches < _MIN_MATCHES:
            raise InitializationError("Not enough matches")
        if self._reference is None:
            raise ValueError("no reference keypoints set")
        current = _as_keypoints(current_keypoints)
        statuses = list(keypoint_statuses)
        if len(statuses) != len(current):
            raise ValueError("keypoints and statuses differ in length")
        if len(self._reference) < len(current):
            raise ValueError("reference has fewer keypoints than the current view")

        tracked = [idx for idx, status in enumerate(statuses) if status is LandmarkStatus.TRACKED]
        if len(tracked) < self.options.min_sample_set_size:
            raise InitializationError("Not enough matches")

        reference_rays = self._rays(self._reference[tracked])
        current_rays = self._rays(current[tracked])

        essential, inliers = self._find_essential(
            self._reference[tracked], reference_rays, current_rays
        )
        inlier_indices = [tracked[i] for i in np.flatnonzero(inliers)]
        transform = _select_camera(essential, reference_rays[inliers], current_rays[inliers])

        landmarks: list[np.ndarray | None] = [None] * len(current)
        reasons: list[str | None] = [NOT_TRIANGULATED] * len(current)
        n_triangulated, n_parallax = self._reconstruct_points(
            transform, current, inlier_indices, landmarks, reasons
        )
        result = InitializationResult(transform, landmarks, reasons, len(inlier_indices))

        if self._draw_features is not None:
            self._draw_features(current, result)

        if n_triangulated < _MIN_TRIANGULATED:
            raise InitializationError("Not enough triangulated landmarks", result)
        if n_parallax > len(inlier_indices) * _MAX_LOW_PARALLAX_FRACTION:
            raise InitializationError("Not enough triangulated landmarks", result)
        return result

    def _find_essential(self, reference_points: np.ndarray, reference_rays: np.ndarray,
                        current_rays: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        rng = np.random.default_rng(self._seed)
        n_clusters = self.options.min_sample_set_size
        labels = np.asarray(kmeans_labels(reference_points, n_clusters, _KMEANS_ATTEMPTS, rng))
        clusters = [np.flatnonzero(labels == cluster) for cluster in range(n_clusters)]

        iterations = compute_max_tries(
            _RANSAC_INLIER_FRACTION, _RANSAC_SUCCESS_LIKELIHOOD, n_clusters
        )
        best_score = 0
        best_essential: np.ndarray | None = None
        for _ in range(iterations):
            sample = np.array([rng.choice(members) for members in clusters])
            essential = compute_essential(reference_rays[sample], current_rays[sample])
            mask = _epipolar_inliers(
                essential, reference_rays, current_rays, self.options.epipolar_threshold
            )
            score = int(mask.sum())
            if score > best_score:
                best_score = score
                best_essential = essential

        if best_essential is None:
            raise InitializationError("No Essential matrix found")
        inliers = _epipolar_inliers(
            best_essential, reference_rays, current_rays, self.options.epipolar_threshold
        )
        return best_essential, inliers

    def _reconstruct_points(self, transform: RigidTransform, current: np.ndarray,
                            inlier_indices: list[int], landmarks: list, reasons: list
                            ) -> tuple[int, int]:
        assert self._reference is not None
        world_t_camera = transform.inverse().translation
        identity = RigidTransform()
        parallax_threshold = self.options.radians_per_pixel * 5.0
        n_triangulated = 0
        n_parallax = 0

        for idx in inlier_indices:
            reference_point = self._reference[idx]
            current_point = current[idx]
            try:
                landmark = triangulate_midpoint(
                    self._ray(reference_point), self._ray(current_point), identity, transform
                )
            except ValueError:
                reasons[idx] = TRIANGULATION_ERROR
                continue

            parallax = rays_parallax(landmark, landmark - world_t_camera)
            if parallax < parallax_threshold:
                reasons[idx] = LOW_PARALLAX
                n_parallax += 1
                continue

            if landmark[2] < 0.0:
                reasons[idx] = NEGATIVE_DEPTH_FIRST
                continue

            projected_1 = self.calibration.project(landmark)
            if squared_reprojection_error(reference_point, projected_1) > _REPROJECTION_THRESHOLD:
                reasons[idx] = HIGH_REPROJECTION_FIRST
                continue

            landmark_camera_2 = transform.apply(landmark)
            if landmark_camera_2[2] < 0.0:
                reasons[idx] = NEGATIVE_DEPTH_SECOND
                continue

            projected_2 = self.calibration.project(landmark_camera_2)
            if squared_reprojection_error(current_point, projected_2) > _REPROJECTION_THRESHOLD:
                reasons[idx] = HIGH_REPROJECTION_SECOND
                continue

            landmarks[idx] = landmark
            reasons[idx] = None
            n_triangulated += 1

        return n_triangulated, n_parallax