"""
Gateway module for the TTC fusion core.

Holds the data types exchanged with the external detector, matcher and
range sensor, the estimator interface, and boundary validation.
"""

from .ttc_estimator import ITTCEstimator
from .validation import FrameValidationError, validate_frame, validate_frame_pair
from .data_types import (
    RangePoint, Keypoint, KeypointMatch, BoundingBox, DetectionRegion,
    Frame, CalibrationTriple, RegionTTC,
    range_points_to_array, keypoints_to_array
)

__all__ = [
    # Estimator interface
    'ITTCEstimator',
    # Validation
    'FrameValidationError', 'validate_frame', 'validate_frame_pair',
    # Data types
    'RangePoint', 'Keypoint', 'KeypointMatch', 'BoundingBox', 'DetectionRegion',
    'Frame', 'CalibrationTriple', 'RegionTTC',
    'range_points_to_array', 'keypoints_to_array'
]
