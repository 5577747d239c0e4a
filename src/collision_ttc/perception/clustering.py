"""
Euclidean clustering of range points for outlier removal.

Points are grouped into density-connected clusters (chains of neighbors each
within the tolerance distance); clusters whose size falls outside the given
bounds are discarded as noise speckle or as too large for one object.
"""

import logging
from typing import Sequence, Union
import numpy as np

# Import sklearn DBSCAN for clustering
from sklearn.cluster import DBSCAN

from collision_ttc.gateway.data_types import RangePoint, range_points_to_array

logger = logging.getLogger(__name__)


def cluster_labels(points: np.ndarray, tolerance: float) -> np.ndarray:
    """
    Label connected components of the tolerance-neighborhood graph.

    DBSCAN with min_samples=1 makes every point a core point, so each label is
    exactly one chain-connected cluster and no point is marked as noise.

    Args:
        points: (N, 3) XYZ points
        tolerance: Neighbor distance in meters

    Returns:
        (N,) integer cluster labels
    """
    if len(points) == 0:
        return np.zeros((0,), dtype=int)
    return DBSCAN(eps=tolerance, min_samples=1).fit(points).labels_


def remove_cluster_outliers(
    points: Union[np.ndarray, Sequence[RangePoint]],
    tolerance: float,
    min_size: int,
    max_size: int
) -> np.ndarray:
    """
    Keep only points belonging to clusters of size in [min_size, max_size].

    Args:
        points: (N, 3) XYZ array or sequence of RangePoint
        tolerance: Cluster tolerance in meters
        min_size: Minimum cluster size (inclusive)
        max_size: Maximum cluster size (inclusive)

    Returns:
        (M, 3) surviving points, flattened across clusters in input order.
        Empty when nothing survives, which callers must treat as "no valid range data".
    """
    points_np = points if isinstance(points, np.ndarray) else range_points_to_array(points)

    if len(points_np) == 0:
        return np.zeros((0, 3), dtype=float)

    labels = cluster_labels(points_np, tolerance)
    unique_labels, counts = np.unique(labels, return_counts=True)
    keep_labels = unique_labels[(counts >= min_size) & (counts <= max_size)]
    mask = np.isin(labels, keep_labels)

    logger.debug(f"[CLUSTERING] {len(unique_labels)} clusters, {len(keep_labels)} kept, "
                 f"{int(mask.sum())}/{len(points_np)} points survive (tol={tolerance}m, size=[{min_size}, {max_size}])")

    return points_np[mask]
