"""
Geometric utility functions for the fusion core.

This module provides shared geometric calculations used across association
and estimation, including range-to-pixel projection, shrunk-region membership
and ego-lane filtering of range points.
"""

from typing import List, Optional, Sequence, Tuple
import numpy as np

from collision_ttc.gateway.data_types import BoundingBox, CalibrationTriple, RangePoint


def project_range_point(point: RangePoint, calibration: CalibrationTriple) -> Tuple[float, float]:
    """
    Project one range point into pixel coordinates.

    Y = P_rect @ R_rect @ RT @ [x, y, z, 1]^T, then divide rows 0 and 1 by
    the homogeneous depth row 2.

    Args:
        point: Range point in sensor frame
        calibration: Projection chain

    Returns:
        (u, v) pixel coordinates; inf/nan for zero-depth points
    """
    uv = project_range_points(np.array([[point.x, point.y, point.z]], dtype=float), calibration)
    return float(uv[0, 0]), float(uv[0, 1])


def project_range_points(points: np.ndarray, calibration: CalibrationTriple) -> np.ndarray:
    """
    Project (N, 3) range points into pixel coordinates.

    Args:
        points: (N, 3) XYZ in sensor frame
        calibration: Projection chain

    Returns:
        (N, 2) pixel coordinates [u, v]
    """
    if len(points) == 0:
        return np.zeros((0, 2), dtype=float)

    points_homogeneous = np.hstack([points, np.ones((len(points), 1))]).T  # (4, N)
    projected = calibration.matrix @ points_homogeneous  # (3, N)

    depths = projected[2, :]
    with np.errstate(divide='ignore', invalid='ignore'):
        u = projected[0, :] / depths
        v = projected[1, :] / depths
    return np.stack([u, v], axis=1)


def region_contains(u: float, v: float, roi: BoundingBox, shrink_factor: float = 0.0) -> bool:
    """
    Check whether a pixel falls inside a (shrunk) detection rectangle.

    Args:
        u: Pixel column
        v: Pixel row
        roi: Detection rectangle
        shrink_factor: Fraction of each extent removed, half on each side, in [0, 1)

    Returns:
        True if the pixel lies inside the shrunk rectangle (half-open)
    """
    if shrink_factor == 0.0:
        return roi.contains(u, v)
    return roi.shrink(shrink_factor).contains(u, v)


def region_contains_many(uv: np.ndarray, roi: BoundingBox, shrink_factor: float = 0.0) -> np.ndarray:
    """
    Vectorized form of region_contains.

    Args:
        uv: (N, 2) pixel coordinates
        roi: Detection rectangle
        shrink_factor: Shrink factor in [0, 1)

    Returns:
        (N,) boolean mask; NaN pixels are never inside
    """
    box = roi.shrink(shrink_factor) if shrink_factor else roi
    u = uv[:, 0]
    v = uv[:, 1]
    return (
        (u >= box.x) & (u < box.x + box.width) &
        (v >= box.y) & (v < box.y + box.height)
    )


def crop_range_points(
    points: Sequence[RangePoint],
    min_x: float,
    max_x: float,
    max_y: float,
    min_z: float,
    max_z: float,
    min_reflectivity: float
) -> List[RangePoint]:
    """
    Keep only range points inside a forward box with enough reflectivity.

    Args:
        points: Range points in sensor frame
        min_x: Minimum forward distance (meters)
        max_x: Maximum forward distance (meters)
        max_y: Maximum absolute lateral offset (meters)
        min_z: Minimum height (meters)
        max_z: Maximum height (meters)
        min_reflectivity: Minimum reflectivity

    Returns:
        Filtered list, original order preserved
    """
    return [
        p for p in points
        if min_x <= p.x <= max_x
        and abs(p.y) <= max_y
        and min_z <= p.z <= max_z
        and p.r >= min_reflectivity
    ]


def filter_ego_lane(points: np.ndarray, lane_width: float) -> np.ndarray:
    """
    Keep points strictly within half the lane width of the centerline.

    Args:
        points: (N, 3) XYZ in sensor frame
        lane_width: Assumed ego lane width in meters

    Returns:
        (M, 3) in-lane points
    """
    if len(points) == 0:
        return points
    return points[np.abs(points[:, 1]) < lane_width / 2.0]


def closest_in_lane_distance(points: np.ndarray, lane_width: float) -> Optional[float]:
    """
    Minimum forward distance among in-lane points.

    Args:
        points: (N, 3) XYZ in sensor frame
        lane_width: Assumed ego lane width in meters

    Returns:
        Closest forward distance in meters, or None if no point is in lane
    """
    in_lane = filter_ego_lane(points, lane_width)
    if len(in_lane) == 0:
        return None
    return float(np.min(in_lane[:, 0]))
