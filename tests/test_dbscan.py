import numpy as np
import pytest

from deformslam.dbscan import dbscan, dbscan_2d, dbscan_3d, dbscan_nd


def _blob(center, count, spread=0.1):
    rng = np.random.default_rng(7)
    return np.asarray(center, dtype=float) + rng.uniform(-spread, spread, (count, len(center)))


def test_dbscan_separates_two_groups_and_noise():
    group_a = _blob([0.0, 0.0], 5)
    group_b = _blob([10.0, 10.0], 5)
    outlier = np.array([[50.0, -50.0]])
    labels = dbscan(np.vstack([group_a, group_b, outlier]), 1.0, 3)
    assert labels[:5] == [0] * 5
    assert labels[5:10] == [1] * 5
    assert labels[10] == -1


def test_dbscan_all_noise_when_too_few_neighbours():
    data = np.array([[0.0, 0.0], [5.0, 5.0], [10.0, 10.0]])
    assert dbscan(data, 1.0, 2) == [-1, -1, -1]


def test_dbscan_empty_input_gives_empty_labels():
    assert dbscan(np.empty((0, 3)), 1.0, 2) == []


def test_dbscan_rejects_bad_parameters():
    with pytest.raises(ValueError):
        dbscan([[0.0, 0.0]], -1.0, 2)
    with pytest.raises(ValueError):
        dbscan([[0.0, 0.0]], 1.0, 0)


def test_dbscan_border_point_joins_cluster():
    core = np.array([[0.0, 0.0], [0.1, 0.0], [0.0, 0.1]])
    border = np.array([[0.9, 0.0]])
    labels = dbscan(np.vstack([core, border]), 1.0, 3)
    assert labels == [0, 0, 0, 0]


def test_dbscan_3d_orders_clusters_by_size():
    small = _blob([0.0, 0.0, 0.0], 6)
    large = _blob([100.0, 0.0, 0.0], 10)
    outlier = np.array([[-500.0, 0.0, 0.0]])
    labels = dbscan_3d(np.vstack([small, large, outlier]))
    assert labels[6:16] == [0] * 10
    assert labels[:6] == [1] * 6
    assert labels[16] == 2
    assert min(labels) >= 0


def test_dbscan_3d_rejects_wrong_dimension():
    with pytest.raises(ValueError):
        dbscan_3d([[0.0, 1.0]])


def test_dbscan_nd_groups_similar_tracks():
    tracks = _blob([1.0, 0.0, 1.0, 0.0], 12, spread=0.05)
    labels = dbscan_nd(tracks)
    assert labels == [0] * 12


def test_dbscan_nd_too_few_tracks_are_noise():
    tracks = _blob([1.0, 0.0, 1.0, 0.0], 5, spread=0.05)
    assert dbscan_nd(tracks) == [-1] * 5


def test_dbscan_nd_empty_raises():
    with pytest.raises(ValueError):
        dbscan_nd([])


def test_dbscan_2d_separates_directions():
    along_x = [[2.0 + 0.1 * k, 0.0] for k in range(10)]
    along_y = [[0.0, 1.0 + 0.1 * k] for k in range(10)]
    labels = dbscan_2d(along_x + along_y)
    assert -1 not in labels
    assert len(set(labels[:10])) == 1
    assert len(set(labels[10:])) == 1
    assert labels[0] != labels[10]


def test_dbscan_2d_zero_norm_raises():
    with pytest.raises(ValueError):
        dbscan_2d([[0.0, 0.0], [1.0, 0.0]])