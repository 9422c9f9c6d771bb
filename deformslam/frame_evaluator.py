"""Evaluation of reconstructed depths against ground truth."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from deformslam.geometry_toolbox import has_inf, interpolate
from deformslam.types_conversions import RigidTransform

__all__ = [
    "EvaluatorOptions",
    "FrameEvaluator",
    "transform_point_cloud",
    "ground_truth_from_depth_map",
]


@dataclass
class EvaluatorOptions:
    """Where to write results and whether the ground truth is a dense depth map."""

    results_file_path: str | Path = "rmse.txt"
    precomputed_depth: bool = False


def transform_point_cloud(point_cloud, camera_transform_world: RigidTransform) -> list[np.ndarray]:
    """Map every point of the cloud through the transform."""
    return [camera_transform_world.apply(point) for point in point_cloud]


def ground_truth_from_depth_map(keypoints, depth_map, calibration) -> list[np.ndarray]:
    """Ground-truth 3-D points read from a dense depth map at keypoint positions.

    ``calibration`` must offer ``unproject(x, y)`` returning a bearing ray.
    """
    points = []
    for x, y in keypoints:
        depth = interpolate(x, y, depth_map)
        ray = np.asarray(calibration.unproject(x, y), dtype=float)
        if ray[2] == 0.0:
            raise ValueError(f"ray through ({x}, {y}) has no depth component")
        points.append(ray / ray[2] * depth)
    return points


def _interquartile_inliers(estimated: np.ndarray, ground_truth: np.ndarray, keep_all: bool):
    if estimated.size == 0:
        raise ValueError("no depths to evaluate")
    if estimated.shape != ground_truth.shape:
        raise ValueError("estimated and ground-truth depths differ in length")
    errors = np.abs(estimated - ground_truth)
    sorted_errors = np.sort(errors)
    q1 = sorted_errors[int(sorted_errors.size * 0.25)]
    q3 = sorted_errors[int(sorted_errors.size * 0.75)]
    threshold = 1.5 * (q3 - q1)
    mask = np.ones_like(errors, dtype=bool) if keep_all else errors <= q3 + threshold
    return estimated[mask], ground_truth[mask]


class FrameEvaluator:
    """Computes per-frame depth RMSE and keeps the history of results."""

    def __init__(self, options: EvaluatorOptions | None = None) -> None:
        self.options = options if options is not None else EvaluatorOptions()
        self._computed_rmse: list[float] = []

    @property
    def computed_rmse(self) -> list[float]:
        """RMSE values recorded so far, one per evaluated frame."""
        return list(self._computed_rmse)

    def compute_reconstruction_rmse(
        self,
        reconstruction_landmarks,
        ground_truth_landmarks: Sequence,
        align_scales: bool,
    ) -> tuple[float, float]:
        """RMSE of depths and the scale used; ground-truth entries of None are skipped."""
        estimated, truth = [], []
        for landmark, reference in zip(reconstruction_landmarks, ground_truth_landmarks):
            if reference is None:
                continue
            estimated.append(float(landmark[2]))
            truth.append(float(reference[2]))
        if align_scales:
            return self.rmse_with_scale_alignment(estimated, truth)
        return self.rmse_without_scale_alignment(estimated, truth)

    def rmse_without_scale_alignment(self, estimated_depths, ground_truth_depths) -> tuple[float, float]:
        """Trimmed RMSE of raw depth differences; the scale is always 1."""
        estimated, truth = _interquartile_inliers(
            np.asarray(estimated_depths, dtype=float),
            np.asarray(ground_truth_depths, dtype=float),
            keep_all=False,
        )
        n_inliers = int(estimated.size * 0.9)
        if n_inliers == 0:
            raise ValueError("too few depths to compute a trimmed RMSE")
        residuals = truth - estimated
        squared = residuals * residuals
        threshold = np.sort(squared)[n_inliers]
        kept = residuals[squared < threshold][:n_inliers]
        return math.sqrt(float(kept @ kept) / n_inliers), 1.0

    def rmse_with_scale_alignment(self, estimated_depths, ground_truth_depths) -> tuple[float, float]:
        """Trimmed RMSE after estimating the scale that best aligns the depths."""
        precomputed = self.options.precomputed_depth
        estimated, truth = _interquartile_inliers(
            np.asarray(estimated_depths, dtype=float),
            np.asarray(ground_truth_depths, dtype=float),
            keep_all=precomputed,
        )
        if np.isnan(estimated).any() or np.isnan(truth).any():
            raise ValueError("depths contain NaN")
        if has_inf(estimated) or has_inf(truth):
            raise ValueError("depths contain infinite values")

        inlier_fraction = 0.95 if precomputed else 0.9
        n_inliers = int(estimated.size * inlier_fraction)
        if n_inliers == 0:
            raise ValueError("too few depths to compute a trimmed RMSE")

        scale = 1.0
        rmse = math.nan
        for _ in range(10):
            residuals = truth - scale * estimated
            squared = residuals * residuals
            threshold = np.sort(squared)[n_inliers - 1]
            mask = np.flatnonzero(squared <= threshold)[:n_inliers]
            inlier_depths = estimated[mask]
            inlier_truth = truth[mask]
            hessian = float(inlier_depths @ inlier_depths)
            if hessian == 0.0:
                raise ValueError("estimated depths are all zero; scale is undefined")
            gradient = float(np.sum(-residuals[mask] * inlier_depths))
            scale += -gradient / hessian
            aligned = inlier_truth - scale * inlier_depths
            rmse = math.sqrt(float(aligned @ aligned) / n_inliers)

        if math.isinf(rmse):
            raise ValueError("RMSE is infinite")
        return rmse, scale

    def evaluate_reconstruction(
        self,
        landmark_positions,
        camera_transform_world: RigidTransform,
        ground_truth: Sequence,
    ) -> tuple[float, float, list[np.ndarray | None]]:
        """Evaluate world landmarks against camera-frame ground truth.

        Records the RMSE and returns it together with the aligned scale and the
        ground truth brought into the world frame at the estimated scale.
        """
        camera_landmarks = transform_point_cloud(landmark_positions, camera_transform_world)
        rmse, scale = self.compute_reconstruction_rmse(camera_landmarks, ground_truth, True)
        self._computed_rmse.append(rmse)

        world_transform_camera = camera_transform_world.inverse()
        world_ground_truth = [
            None if point is None
            else world_transform_camera.apply(np.asarray(point, dtype=float) / scale)
            for point in ground_truth
        ]
        return rmse, scale, world_ground_truth

    def save_results_to_file(self) -> None:
        """Write every recorded RMSE on its own line."""
        with open(self.options.results_file_path, "w", encoding="utf-8") as handle:
            for error in self._computed_rmse:
                handle.write(f"{format(error, 'g')}\n")