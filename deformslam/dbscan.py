"""Density-based clustering of points, optical-flow tracks and landmarks."""

from __future__ import annotations

from collections import Counter, deque

import numpy as np

__all__ = ["dbscan", "dbscan_2d", "dbscan_3d", "dbscan_nd"]

NOISE = -1


def _as_point_matrix(points, dimension: int | None = None) -> np.ndarray:
    data = np.asarray(points, dtype=float)
    if data.size == 0:
        raise ValueError("cannot cluster an empty set of points")
    if data.ndim != 2:
        raise ValueError(f"points must form an (N, D) array, got shape {data.shape}")
    if dimension is not None and data.shape[1] != dimension:
        raise ValueError(f"points must have {dimension} coordinates, got {data.shape[1]}")
    return data


def dbscan(data, epsilon: float, min_points: int) -> list[int]:
    """Cluster the rows of ``data``; noise points get the label -1.

    A point is a core point when at least ``min_points`` points, itself
    included, lie within ``epsilon`` of it. Clusters are numbered in the order
    in which their first point appears.
    """
    if epsilon < 0:
        raise ValueError(f"epsilon must not be negative, got {epsilon}")
    if min_points < 1:
        raise ValueError(f"min_points must be positive, got {min_points}")
    points = np.asarray(data, dtype=float)
    if points.size == 0:
        return []
    if points.ndim != 2:
        raise ValueError(f"data must form an (N, D) array, got shape {points.shape}")

    count = points.shape[0]

    def region(index: int) -> np.ndarray:
        distances = np.linalg.norm(points - points[index], axis=1)
        return np.flatnonzero(distances <= epsilon)

    labels = [NOISE] * count
    visited = [False] * count
    cluster = 0
    for index in range(count):
        if visited[index]:
            continue
        visited[index] = True
        neighbours = region(index)
        if len(neighbours) < min_points:
            continue
        labels[index] = cluster
        queue = deque(int(n) for n in neighbours)
        while queue:
            other = queue.popleft()
            if labels[other] == NOISE:
                labels[other] = cluster
            if visited[other]:
                continue
            visited[other] = True
            other_neighbours = region(other)
            if len(other_neighbours) >= min_points:
                queue.extend(int(n) for n in other_neighbours)
        cluster += 1
    return labels


def dbscan_2d(points) -> list[int]:
    """Cluster 2-D vectors by direction and relative magnitude."""
    data = _as_point_matrix(points, 2)
    norms = np.linalg.norm(data, axis=1)
    if np.any(norms == 0.0):
        raise ValueError("points with zero norm cannot be normalised")
    max_norm = norms.max()
    min_norm = norms.min()
    if max_norm == min_norm:
        raise ValueError("all points have the same norm; normalisation is undefined")
    normalised = (norms - min_norm) / (max_norm - min_norm)
    scaled = data / norms[:, None] * (normalised + 0.1)[:, None]
    return dbscan(scaled, 0.2, 3)


def dbscan_3d(points) -> list[int]:
    """Cluster 3-D points and renumber clusters from the largest to the smallest.

    The noise group takes part in the renumbering like any other cluster, so
    every returned label is non-negative.
    """
    data = _as_point_matrix(points, 3)
    labels = dbscan(data, 2.5, 5)
    sizes = Counter(labels)
    ordered = sorted(sizes.items(), key=lambda item: (-item[1], item[0]))
    translation = {label: rank for rank, (label, _) in enumerate(ordered)}
    return [translation[label] for label in labels]


def dbscan_nd(points) -> list[int]:
    """Cluster N-dimensional vectors with a radius growing with the dimension."""
    data = _as_point_matrix(points)
    epsilon = 0.1 * data.shape[1]
    return dbscan(data, epsilon, 10)