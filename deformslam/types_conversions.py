"""Rigid-body transforms and conversions from plain matrices."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

__all__ = [
    "RigidTransform",
    "rigid_transform_from_matrix",
    "rotation_from_matrix",
    "vector_from_matrix",
]


def _readonly(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class RigidTransform:
    """A rotation followed by a translation in three dimensions."""

    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        rotation = np.array(self.rotation, dtype=float)
        translation = np.array(self.translation, dtype=float).reshape(-1)
        if rotation.shape != (3, 3):
            raise ValueError(f"rotation must be 3x3, got shape {rotation.shape}")
        if translation.shape != (3,):
            raise ValueError(f"translation must have 3 elements, got {translation.size}")
        object.__setattr__(self, "rotation", _readonly(rotation))
        object.__setattr__(self, "translation", _readonly(translation))

    @classmethod
    def identity(cls) -> RigidTransform:
        """The transform that leaves every point in place."""
        return cls()

    def inverse(self) -> RigidTransform:
        """The transform that undoes this one."""
        rotation_t = self.rotation.T
        return RigidTransform(rotation_t, -rotation_t @ self.translation)

    def apply(self, point) -> np.ndarray:
        """Transform a point of shape (3,) or an array of points of shape (N, 3)."""
        points = np.asarray(point, dtype=float)
        if points.ndim == 1:
            if points.shape != (3,):
                raise ValueError(f"point must have 3 elements, got {points.size}")
            return self.rotation @ points + self.translation
        if points.ndim == 2 and points.shape[1] == 3:
            return points @ self.rotation.T + self.translation
        raise ValueError(f"points must have shape (3,) or (N, 3), got {points.shape}")

    def compose(self, other: RigidTransform) -> RigidTransform:
        """The transform applying ``other`` first and then this one."""
        return RigidTransform(
            self.rotation @ other.rotation,
            self.rotation @ other.translation + self.translation,
        )

    def __matmul__(self, other: RigidTransform) -> RigidTransform:
        return self.compose(other)

    def matrix(self) -> np.ndarray:
        """Homogeneous 4x4 matrix of the transform."""
        result = np.eye(4)
        result[:3, :3] = self.rotation
        result[:3, 3] = self.translation
        return result


def _quaternion_from_rotation(m: np.ndarray) -> np.ndarray:
    trace = m[0, 0] + m[1, 1] + m[2, 2]
    if trace > 0.0:
        s = math.sqrt(trace + 1.0)
        w = 0.5 * s
        s = 0.5 / s
        xyz = [
            (m[2, 1] - m[1, 2]) * s,
            (m[0, 2] - m[2, 0]) * s,
            (m[1, 0] - m[0, 1]) * s,
        ]
    else:
        i = 0
        if m[1, 1] > m[0, 0]:
            i = 1
        if m[2, 2] > m[i, i]:
            i = 2
        j = (i + 1) % 3
        k = (j + 1) % 3
        s = math.sqrt(max(m[i, i] - m[j, j] - m[k, k] + 1.0, 0.0))
        if s == 0.0:
            raise ValueError("matrix does not describe a rotation")
        xyz = [0.0, 0.0, 0.0]
        xyz[i] = 0.5 * s
        s = 0.5 / s
        w = (m[k, j] - m[j, k]) * s
        xyz[j] = (m[j, i] + m[i, j]) * s
        xyz[k] = (m[k, i] + m[i, k]) * s
    quaternion = np.array([w, *xyz])
    norm = np.linalg.norm(quaternion)
    if norm == 0.0 or not math.isfinite(norm):
        raise ValueError("matrix does not describe a rotation")
    return quaternion / norm


def _rotation_from_quaternion(quaternion: np.ndarray) -> np.ndarray:
    w, x, y, z = quaternion
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
        ]
    )


def rotation_from_matrix(matrix) -> np.ndarray:
    """The top-left 3x3 block of a matrix."""
    values = np.asarray(matrix, dtype=float)
    if values.ndim != 2 or values.shape[0] < 3 or values.shape[1] < 3:
        raise ValueError(f"matrix must be at least 3x3, got shape {values.shape}")
    return values[:3, :3].copy()


def vector_from_matrix(matrix) -> np.ndarray:
    """The first three elements of a row or column vector."""
    values = np.asarray(matrix, dtype=float).reshape(-1)
    if values.size < 3:
        raise ValueError(f"vector must have at least 3 elements, got {values.size}")
    return values[:3].copy()


def rigid_transform_from_matrix(matrix) -> RigidTransform:
    """Build a transform from a 3x4 or 4x4 matrix, normalising its rotation block."""
    values = np.asarray(matrix, dtype=float)
    if values.ndim != 2 or values.shape[0] < 3 or values.shape[1] < 4:
        raise ValueError(f"matrix must be at least 3x4, got shape {values.shape}")
    quaternion = _quaternion_from_rotation(rotation_from_matrix(values))
    translation = vector_from_matrix(values[:3, 3])
    return RigidTransform(_rotation_from_quaternion(quaternion), translation)