"""Shared fixtures for the fusion core tests."""

import numpy as np
import pytest

from collision_ttc.gateway.data_types import (
    BoundingBox, CalibrationTriple, DetectionRegion, Frame, Keypoint, KeypointMatch, RangePoint
)

FOCAL = 100.0
CX = 500.0
CY = 200.0


@pytest.fixture
def calibration():
    """
    Pinhole camera looking along the sensor's +x axis.

    Sensor (x fwd, y left, z up) maps to camera (-y, -z, x), so a point
    (x, y, z) projects to u = CX - FOCAL * y / x, v = CY - FOCAL * z / x.
    """
    p_rect = np.array([
        [FOCAL, 0.0, CX, 0.0],
        [0.0, FOCAL, CY, 0.0],
        [0.0, 0.0, 1.0, 0.0],
    ])
    rt = np.array([
        [0.0, -1.0, 0.0, 0.0],
        [0.0, 0.0, -1.0, 0.0],
        [1.0, 0.0, 0.0, 0.0],
    ])
    return CalibrationTriple(p_rect=p_rect, r_rect=np.eye(3), rt=rt)


def make_block(x, half_extent=0.3, steps=31):
    """Dense planar block of range points at forward distance x."""
    grid = np.linspace(-half_extent, half_extent, steps)
    return [RangePoint(x=x, y=float(y), z=float(z), r=0.5) for y in grid for z in grid]


def make_region(region_id, x, y, width, height):
    return DetectionRegion(region_id=region_id, roi=BoundingBox(x, y, width, height))


PREV_KEYPOINTS = [(400.0, 100.0), (600.0, 100.0), (400.0, 300.0), (600.0, 300.0), (500.0, 200.0)]


def scale_about(points, center, factor):
    return [(center[0] + (u - center[0]) * factor, center[1] + (v - center[1]) * factor) for u, v in points]


@pytest.fixture
def frame_pair():
    """
    One object approaching: range block from 10.0m to 9.5m, keypoints growing by 5%.

    Expected: lidar TTC = 9.5 / (0.5 / 0.1) = 1.9s, camera TTC = -0.1 / (1 - 1.05) = 2.0s.
    """
    curr_kpts = scale_about(PREV_KEYPOINTS, (500.0, 200.0), 1.05)

    prev_frame = Frame(
        keypoints=[Keypoint(u, v) for u, v in PREV_KEYPOINTS],
        regions=[make_region(0, 300, 0, 400, 400), make_region(1, 900, 0, 50, 50)],
        range_points=make_block(10.0),
        frame_index=0,
    )
    curr_frame = Frame(
        keypoints=[Keypoint(u, v) for u, v in curr_kpts],
        regions=[make_region(3, 300, 0, 400, 400), make_region(4, 900, 0, 50, 50)],
        range_points=make_block(9.5),
        kpt_matches=[KeypointMatch(i, i) for i in range(len(PREV_KEYPOINTS))],
        frame_index=1,
    )
    return prev_frame, curr_frame
