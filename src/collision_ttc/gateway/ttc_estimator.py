"""
TTC Estimator - Interface for per-object time-to-collision estimation.

This module defines the abstract interface that every single-modality TTC
estimator (camera keypoints, range points) implements.
"""

from abc import ABC, abstractmethod
from .data_types import DetectionRegion, Frame


class ITTCEstimator(ABC):
    """Abstract interface for TTC estimation from one matched region pair."""

    modality: str = "unknown"

    @abstractmethod
    def estimate_ttc(
        self,
        prev_frame: Frame,
        curr_frame: Frame,
        prev_region: DetectionRegion,
        curr_region: DetectionRegion,
        frame_rate: float
    ) -> float:
        """
        Estimate time-to-collision for one object seen in two consecutive frames.

        Args:
            prev_frame: Previous frame (keypoints, regions, range points)
            curr_frame: Current frame
            prev_region: Object's detection region in the previous frame
            curr_region: Object's detection region in the current frame
            frame_rate: Sensor frame rate in Hz

        Returns:
            TTC in seconds; NaN when the estimator has no usable data,
            +inf when no closing motion is observed
        """
        pass
