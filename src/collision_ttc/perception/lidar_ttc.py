"""
Range TTC Estimator - Time-to-collision from closest in-lane range distance.

Both frames' range points are cleaned by euclidean clustering, restricted to
the ego lane, and reduced to the closest forward distance. Under a constant
relative velocity model TTC = d1 / ((d0 - d1) / dT).
"""

import logging
import math
from typing import Sequence, Union
import numpy as np

from collision_ttc.gateway.ttc_estimator import ITTCEstimator
from collision_ttc.gateway.data_types import DetectionRegion, Frame, RangePoint
from collision_ttc.perception.clustering import remove_cluster_outliers
from collision_ttc.perception.geometry_utils import closest_in_lane_distance

logger = logging.getLogger(__name__)

PointsLike = Union[np.ndarray, Sequence[RangePoint]]


def compute_ttc_lidar(
    prev_points: PointsLike,
    curr_points: PointsLike,
    frame_rate: float,
    lane_width: float = 4.0,
    cluster_tolerance: float = 0.05,
    min_cluster_size: int = 30,
    max_cluster_size: int = 25000
) -> float:
    """
    Compute range-based TTC for one object.

    Args:
        prev_points: Object's range points in the previous frame
        curr_points: Object's range points in the current frame
        frame_rate: Frame rate in Hz
        lane_width: Assumed ego lane width in meters
        cluster_tolerance: Euclidean cluster tolerance in meters
        min_cluster_size: Minimum points per kept cluster
        max_cluster_size: Maximum points per kept cluster

    Returns:
        TTC in seconds; NaN if either frame has no in-lane point after
        clustering, +inf if the closest distance did not change.
        Negative values mean the object is moving away.
    """
    prev_clean = remove_cluster_outliers(prev_points, cluster_tolerance, min_cluster_size, max_cluster_size)
    curr_clean = remove_cluster_outliers(curr_points, cluster_tolerance, min_cluster_size, max_cluster_size)

    min_x_prev = closest_in_lane_distance(prev_clean, lane_width)
    min_x_curr = closest_in_lane_distance(curr_clean, lane_width)

    if min_x_prev is None or min_x_curr is None:
        logger.debug(f"[LIDAR TTC] No in-lane points (prev={len(prev_clean)}, curr={len(curr_clean)} after clustering)")
        return math.nan

    dt = 1.0 / frame_rate
    closing_distance = min_x_prev - min_x_curr
    if closing_distance == 0.0:
        return math.inf

    ttc = min_x_curr / (closing_distance / dt)
    logger.debug(f"[LIDAR TTC] minXPrev={min_x_prev:.3f}m, minXCurr={min_x_curr:.3f}m, TTC={ttc:.2f}s")
    return ttc


class LidarTTCEstimator(ITTCEstimator):
    """TTC from the range points assigned to each frame's region."""

    modality = "lidar"

    def __init__(
        self,
        lane_width: float = 4.0,
        cluster_tolerance: float = 0.05,
        min_cluster_size: int = 30,
        max_cluster_size: int = 25000
    ):
        """
        Initialize range TTC estimator.

        Args:
            lane_width: Assumed ego lane width in meters
            cluster_tolerance: Euclidean cluster tolerance in meters
            min_cluster_size: Minimum points per kept cluster
            max_cluster_size: Maximum points per kept cluster
        """
        self.lane_width = lane_width
        self.cluster_tolerance = cluster_tolerance
        self.min_cluster_size = min_cluster_size
        self.max_cluster_size = max_cluster_size

    def estimate_ttc(
        self,
        prev_frame: Frame,
        curr_frame: Frame,
        prev_region: DetectionRegion,
        curr_region: DetectionRegion,
        frame_rate: float
    ) -> float:
        return compute_ttc_lidar(
            prev_region.range_points,
            curr_region.range_points,
            frame_rate,
            lane_width=self.lane_width,
            cluster_tolerance=self.cluster_tolerance,
            min_cluster_size=self.min_cluster_size,
            max_cluster_size=self.max_cluster_size
        )
