"""
Data structures for the Sensor Gateway module.

These are the types exchanged between the external collaborators (object
detector, feature matcher, range sensor) and the fusion core.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import numpy as np


@dataclass(frozen=True)
class RangePoint:
    """Single 3D range measurement in sensor frame."""
    x: float                # Forward distance in meters
    y: float                # Lateral offset in meters (positive = left)
    z: float                # Height in meters (positive = up)
    r: float = 0.0          # Reflectivity


@dataclass(frozen=True)
class Keypoint:
    """2D feature location in image coordinates."""
    x: float
    y: float
    size: float = 0.0       # Keypoint diameter reported by the detector


@dataclass(frozen=True)
class KeypointMatch:
    """Correspondence between a previous-frame and a current-frame keypoint."""
    prev_idx: int           # Index into previous frame keypoints
    curr_idx: int           # Index into current frame keypoints
    distance: float = 0.0   # Descriptor distance from the matcher


@dataclass
class BoundingBox:
    """2D axis-aligned rectangle in image coordinates."""
    x: float                # Top-left x coordinate
    y: float                # Top-left y coordinate
    width: float            # Box width in pixels
    height: float           # Box height in pixels

    def contains(self, u: float, v: float) -> bool:
        """
        Half-open containment test: x <= u < x + width, y <= v < y + height.

        Args:
            u: Pixel column
            v: Pixel row

        Returns:
            True if the pixel lies inside the rectangle
        """
        return self.x <= u < self.x + self.width and self.y <= v < self.y + self.height

    def shrink(self, factor: float) -> 'BoundingBox':
        """
        Inset every side by factor/2 of its extent, keeping the center fixed.

        Args:
            factor: Shrink factor in [0, 1)

        Returns:
            New, smaller bounding box
        """
        return BoundingBox(
            x=self.x + factor * self.width / 2.0,
            y=self.y + factor * self.height / 2.0,
            width=self.width * (1.0 - factor),
            height=self.height * (1.0 - factor),
        )


@dataclass
class DetectionRegion:
    """Detected object with the range points and keypoint matches assigned to it."""
    region_id: int                      # Unique within one frame
    roi: BoundingBox                    # Detection rectangle
    class_id: int = -1                  # Detector class ID (-1 = unknown)
    confidence: float = 0.0             # Detector confidence (0-1)
    range_points: List[RangePoint] = field(default_factory=list)
    kpt_matches: List[KeypointMatch] = field(default_factory=list)

    def clear(self) -> None:
        """Drop all associated range points and keypoint matches."""
        self.range_points = []
        self.kpt_matches = []


@dataclass
class Frame:
    """Everything the fusion core needs from one time step."""
    keypoints: List[Keypoint]
    regions: List[DetectionRegion]
    range_points: List[RangePoint]
    kpt_matches: List[KeypointMatch] = field(default_factory=list)  # Matches against the previous frame
    frame_index: int = 0

    def region_by_id(self, region_id: int) -> Optional[DetectionRegion]:
        """Look up a detection region by ID, or None if absent."""
        for region in self.regions:
            if region.region_id == region_id:
                return region
        return None


@dataclass
class CalibrationTriple:
    """Projection chain from range sensor space to pixel space."""
    p_rect: np.ndarray      # (3, 4) intrinsic + rectification projection
    r_rect: np.ndarray      # (4, 4) rectifying rotation (homogeneous)
    rt: np.ndarray          # (4, 4) sensor-to-camera rigid transform (homogeneous)

    def __post_init__(self):
        self.p_rect = np.asarray(self.p_rect, dtype=float).reshape(3, 4)
        self.r_rect = _to_homogeneous(self.r_rect)
        self.rt = _to_homogeneous(self.rt)

    @property
    def matrix(self) -> np.ndarray:
        """Combined (3, 4) projection P_rect @ R_rect @ RT."""
        return self.p_rect @ self.r_rect @ self.rt

    @classmethod
    def from_config(cls, config: Dict) -> 'CalibrationTriple':
        """
        Build from a config mapping with keys 'p_rect', 'r_rect' and 'rt'.

        R_rect may be given as 3x3 and RT as 3x4; both are padded to 4x4.
        """
        return cls(
            p_rect=np.array(config['p_rect'], dtype=float),
            r_rect=np.array(config['r_rect'], dtype=float),
            rt=np.array(config['rt'], dtype=float),
        )


@dataclass
class RegionTTC:
    """TTC estimates for one previous/current region pair."""
    prev_region_id: int
    curr_region_id: int
    ttc_lidar: float        # Seconds; NaN = no data, inf = not closing
    ttc_camera: float       # Seconds; NaN = no data, inf = no scale change
    num_range_points: int = 0
    num_kpt_matches: int = 0

    @property
    def has_lidar(self) -> bool:
        return not math.isnan(self.ttc_lidar)

    @property
    def has_camera(self) -> bool:
        return not math.isnan(self.ttc_camera)


def _to_homogeneous(matrix) -> np.ndarray:
    """Pad a 3x3 rotation or 3x4 transform into a 4x4 homogeneous matrix."""
    matrix = np.asarray(matrix, dtype=float)
    if matrix.shape == (4, 4):
        return matrix
    if matrix.shape not in ((3, 3), (3, 4)):
        raise ValueError(f"Expected 3x3, 3x4 or 4x4 matrix, got {matrix.shape}")
    out = np.eye(4)
    out[:3, :matrix.shape[1]] = matrix
    return out


def range_points_to_array(points: Sequence[RangePoint]) -> np.ndarray:
    """
    Stack range points into an (N, 3) XYZ array.

    Args:
        points: Sequence of range points

    Returns:
        (N, 3) float array, (0, 3) when empty
    """
    if len(points) == 0:
        return np.zeros((0, 3), dtype=float)
    return np.array([(p.x, p.y, p.z) for p in points], dtype=float)


def keypoints_to_array(keypoints: Sequence[Keypoint]) -> np.ndarray:
    """Stack keypoints into an (N, 2) pixel array."""
    if len(keypoints) == 0:
        return np.zeros((0, 2), dtype=float)
    return np.array([(k.x, k.y) for k in keypoints], dtype=float)
