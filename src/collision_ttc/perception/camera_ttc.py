"""
Camera TTC Estimator - Time-to-collision from keypoint scale change.

For every pair of matched keypoints on an object, the ratio of their pixel
separation in the current frame to that in the previous frame measures the
object's apparent scale change. With a constant closing velocity the median
ratio h yields TTC = -dT / (1 - h).
"""

import logging
import math
from typing import Sequence
import numpy as np
from scipy.spatial.distance import pdist

from collision_ttc.gateway.ttc_estimator import ITTCEstimator
from collision_ttc.gateway.data_types import (
    DetectionRegion, Frame, Keypoint, KeypointMatch, keypoints_to_array
)

logger = logging.getLogger(__name__)

# Pairs closer than this in the previous frame would divide by ~zero
MIN_PREV_DISTANCE = np.finfo(float).eps


def compute_distance_ratios(
    prev_keypoints: Sequence[Keypoint],
    curr_keypoints: Sequence[Keypoint],
    kpt_matches: Sequence[KeypointMatch],
    min_pair_distance: float = 100.0
) -> np.ndarray:
    """
    Distance ratios distCurr / distPrev over all unordered match pairs.

    Pairs are skipped when distPrev is below machine epsilon or when distCurr
    is below min_pair_distance (nearly coincident points are dominated by
    pixel quantization noise).

    Args:
        prev_keypoints: Keypoints of the previous frame
        curr_keypoints: Keypoints of the current frame
        kpt_matches: Matches belonging to one object
        min_pair_distance: Minimum current-frame pair separation in pixels

    Returns:
        (K,) array of ratios, possibly empty
    """
    if len(kpt_matches) < 2:
        return np.zeros((0,), dtype=float)

    prev_pts = keypoints_to_array(prev_keypoints)[[m.prev_idx for m in kpt_matches]]
    curr_pts = keypoints_to_array(curr_keypoints)[[m.curr_idx for m in kpt_matches]]

    dist_prev = pdist(prev_pts)
    dist_curr = pdist(curr_pts)

    valid = (dist_prev > MIN_PREV_DISTANCE) & (dist_curr >= min_pair_distance)
    return dist_curr[valid] / dist_prev[valid]


def compute_ttc_camera(
    prev_keypoints: Sequence[Keypoint],
    curr_keypoints: Sequence[Keypoint],
    kpt_matches: Sequence[KeypointMatch],
    frame_rate: float,
    min_pair_distance: float = 100.0
) -> float:
    """
    Compute camera-based TTC from the median keypoint distance ratio.

    Args:
        prev_keypoints: Keypoints of the previous frame
        curr_keypoints: Keypoints of the current frame
        kpt_matches: Filtered matches belonging to one object
        frame_rate: Frame rate in Hz
        min_pair_distance: Minimum current-frame pair separation in pixels

    Returns:
        TTC in seconds; NaN if no pair qualifies, +inf if the median ratio is exactly 1
    """
    ratios = compute_distance_ratios(prev_keypoints, curr_keypoints, kpt_matches, min_pair_distance)

    if len(ratios) == 0:
        logger.debug(f"[CAMERA TTC] No usable keypoint pairs among {len(kpt_matches)} matches")
        return math.nan

    median_ratio = float(np.median(ratios))
    dt = 1.0 / frame_rate

    if median_ratio == 1.0:
        return math.inf

    ttc = -dt / (1.0 - median_ratio)
    logger.debug(f"[CAMERA TTC] {len(ratios)} ratios, median={median_ratio:.4f}, TTC={ttc:.2f}s")
    return ttc


class CameraTTCEstimator(ITTCEstimator):
    """TTC from the keypoint matches assigned to the current-frame region."""

    modality = "camera"

    def __init__(self, min_pair_distance: float = 100.0):
        """
        Initialize camera TTC estimator.

        Args:
            min_pair_distance: Minimum current-frame keypoint pair separation in pixels
        """
        self.min_pair_distance = min_pair_distance

    def estimate_ttc(
        self,
        prev_frame: Frame,
        curr_frame: Frame,
        prev_region: DetectionRegion,
        curr_region: DetectionRegion,
        frame_rate: float
    ) -> float:
        return compute_ttc_camera(
            prev_frame.keypoints,
            curr_frame.keypoints,
            curr_region.kpt_matches,
            frame_rate,
            min_pair_distance=self.min_pair_distance
        )
