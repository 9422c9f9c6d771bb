"""Geometric helpers: parallax, reprojection error, triangulation, interpolation."""

from __future__ import annotations

import math

import numpy as np

from deformslam.types_conversions import RigidTransform

__all__ = [
    "interpolation_weight",
    "squared_reprojection_error",
    "rays_parallax_cosine",
    "rays_parallax",
    "triangulate_midpoint",
    "interpolate",
    "has_inf",
]


def interpolation_weight(distance: float, sigma: float) -> float:
    """Gaussian weight of a distance for a given spread."""
    return math.exp(-(distance * distance) / (2.0 * sigma * sigma))


def squared_reprojection_error(point_1, point_2) -> float:
    """Squared Euclidean distance between two image points."""
    err_x = point_1[0] - point_2[0]
    err_y = point_1[1] - point_2[1]
    return float(err_x * err_x + err_y * err_y)


def rays_parallax_cosine(ray_1, ray_2) -> float:
    """Cosine of the angle between two rays."""
    a = np.asarray(ray_1, dtype=float)
    b = np.asarray(ray_2, dtype=float)
    return float(a @ b / (np.linalg.norm(a) * np.linalg.norm(b)))


def rays_parallax(ray_1, ray_2) -> float:
    """Angle in radians between two rays."""
    cosine = min(max(rays_parallax_cosine(ray_1, ray_2), -1.0), 1.0)
    return math.acos(cosine)


def triangulate_midpoint(
    ray_1,
    ray_2,
    camera1_transform_world: RigidTransform,
    camera2_transform_world: RigidTransform,
) -> np.ndarray:
    """Triangulate a world point from two bearing rays by inverse-depth weighted midpoint.

    Raises ValueError when the geometry is degenerate (parallel rays or no baseline).
    """
    f0 = np.asarray(ray_1, dtype=float)
    f1 = np.asarray(ray_2, dtype=float)
    f0_hat = f0 / np.linalg.norm(f0)
    f1_hat = f1 / np.linalg.norm(f1)

    relative = camera2_transform_world.compose(camera1_transform_world.inverse())
    t = relative.translation
    rotated_f0 = relative.rotation @ f0_hat

    p_norm = float(np.linalg.norm(np.cross(rotated_f0, f1_hat)))
    q_norm = float(np.linalg.norm(np.cross(rotated_f0, t)))
    r_norm = float(np.linalg.norm(np.cross(f1_hat, t)))

    if p_norm == 0.0 or q_norm + r_norm == 0.0:
        raise ValueError("degenerate triangulation geometry")

    x1 = q_norm / (q_norm + r_norm) * (t + r_norm / p_norm * (rotated_f0 + f1_hat))
    point = camera2_transform_world.inverse().apply(x1)
    if not np.all(np.isfinite(point)):
        raise ValueError("triangulation produced a non-finite point")
    return point


def interpolate(x: float, y: float, grid) -> float:
    """Bilinear interpolation of a 2-D grid at column ``x`` and row ``y``."""
    values = np.asarray(grid, dtype=float)
    if values.ndim != 2:
        raise ValueError(f"grid must be two-dimensional, got {values.ndim} dimensions")
    if x < 0 or y < 0:
        raise IndexError(f"position ({x}, {y}) lies outside the grid")
    frac_x, whole_x = math.modf(x)
    frac_y, whole_y = math.modf(y)
    col, row = int(whole_x), int(whole_y)
    if row + 1 >= values.shape[0] or col + 1 >= values.shape[1]:
        raise IndexError(f"position ({x}, {y}) lies outside the grid")

    w00 = (1.0 - frac_x) * (1.0 - frac_y)
    w01 = (1.0 - frac_x) * frac_y
    w10 = frac_x * (1.0 - frac_y)
    w11 = 1.0 - w00 - w01 - w10

    return float(
        values[row, col] * w00
        + values[row, col + 1] * w10
        + values[row + 1, col] * w01
        + values[row + 1, col + 1] * w11
    )


def has_inf(values) -> bool:
    """True when the sum of the values is infinite or NaN."""
    total = float(np.sum(np.asarray(values, dtype=float)))
    return math.isinf(total) or math.isnan(total)