import math

import numpy as np
import pytest

from collision_ttc.gateway.data_types import RangePoint
from collision_ttc.perception.lidar_ttc import LidarTTCEstimator, compute_ttc_lidar

from conftest import make_block


def pts(xs, y=0.0):
    return [RangePoint(x, y, 0.0) for x in xs]


def test_constant_velocity_example():
    prev = pts([10.0, 10.2, 10.1])
    curr = pts([9.0, 9.1, 9.05])
    ttc = compute_ttc_lidar(prev, curr, 10.0, cluster_tolerance=0.5, min_cluster_size=1)
    assert ttc == pytest.approx(0.9)


def test_speckle_outlier_ignored_with_default_clustering():
    prev = make_block(10.0) + [RangePoint(5.0, 0.0, 0.0)]
    curr = make_block(9.5) + [RangePoint(4.0, 0.0, 0.0)]
    assert compute_ttc_lidar(prev, curr, 10.0) == pytest.approx(9.5 / (0.5 / 0.1))


def test_out_of_lane_points_ignored():
    prev = pts([10.0]) + pts([3.0], y=2.5)
    curr = pts([9.0]) + pts([2.0], y=-2.5)
    ttc = compute_ttc_lidar(prev, curr, 10.0, cluster_tolerance=0.5, min_cluster_size=1)
    assert ttc == pytest.approx(0.9)


def test_no_in_lane_points_is_nan():
    prev = pts([10.0], y=3.0)
    curr = pts([9.0])
    assert math.isnan(compute_ttc_lidar(prev, curr, 10.0, min_cluster_size=1))


def test_everything_clustered_away_is_nan():
    # Three isolated points never reach the default minimum cluster size
    assert math.isnan(compute_ttc_lidar(pts([10.0, 10.2, 10.1]), pts([9.0, 9.1, 9.05]), 10.0))


def test_empty_input_is_nan():
    assert math.isnan(compute_ttc_lidar([], [], 10.0))


def test_unchanged_distance_is_infinite():
    assert compute_ttc_lidar(pts([10.0]), pts([10.0]), 10.0, min_cluster_size=1) == math.inf


def test_receding_object_gives_negative_ttc():
    assert compute_ttc_lidar(pts([9.0]), pts([10.0]), 10.0, min_cluster_size=1) < 0


def test_accepts_arrays():
    prev = np.array([[10.0, 0.0, 0.0]])
    curr = np.array([[9.0, 0.0, 0.0]])
    assert compute_ttc_lidar(prev, curr, 10.0, min_cluster_size=1) == pytest.approx(0.9)


def test_estimator_reads_region_points(frame_pair):
    prev_frame, curr_frame = frame_pair
    prev_region, curr_region = prev_frame.regions[0], curr_frame.regions[0]
    prev_region.range_points = list(prev_frame.range_points)
    curr_region.range_points = list(curr_frame.range_points)
    ttc = LidarTTCEstimator().estimate_ttc(prev_frame, curr_frame, prev_region, curr_region, 10.0)
    assert ttc == pytest.approx(1.9)
