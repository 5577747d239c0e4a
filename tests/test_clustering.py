import numpy as np

from collision_ttc.gateway.data_types import RangePoint
from collision_ttc.perception.clustering import cluster_labels, remove_cluster_outliers


def line(x0, n, spacing=0.01):
    return np.array([[x0 + i * spacing, 0.0, 0.0] for i in range(n)])


def test_empty_input_gives_empty_output():
    out = remove_cluster_outliers(np.zeros((0, 3)), 0.05, 1, 10)
    assert out.shape == (0, 3)
    assert remove_cluster_outliers([], 0.05, 1, 10).shape == (0, 3)


def test_chain_connected_points_share_a_cluster():
    # Neighbors 0.04 apart chain together even though the ends are far apart
    labels = cluster_labels(line(0.0, 10, spacing=0.04), 0.05)
    assert len(set(labels)) == 1


def test_small_clusters_removed():
    points = np.vstack([line(10.0, 40), line(5.0, 3)])
    out = remove_cluster_outliers(points, 0.05, 30, 25000)
    assert len(out) == 40
    assert out[:, 0].min() >= 10.0


def test_large_clusters_removed():
    points = np.vstack([line(10.0, 40), line(5.0, 5)])
    out = remove_cluster_outliers(points, 0.05, 1, 20)
    assert len(out) == 5
    assert out[:, 0].max() < 6.0


def test_nothing_survives_size_bounds():
    out = remove_cluster_outliers(line(0.0, 5), 0.05, 30, 25000)
    assert out.shape == (0, 3)


def test_accepts_range_point_sequence():
    points = [RangePoint(10.0 + 0.01 * i, 0.0, 0.0) for i in range(35)]
    assert len(remove_cluster_outliers(points, 0.05, 30, 25000)) == 35
