"""
Boundary validation for frames handed to the fusion core.

The association and estimation algorithms assume index-consistent input.
Malformed geometry is rejected here, before any region is touched.
"""

import logging
import math
from typing import Optional

from .data_types import Frame

logger = logging.getLogger(__name__)


class FrameValidationError(ValueError):
    """Raised when a frame or frame pair carries malformed geometry."""


def validate_frame(frame: Frame) -> None:
    """
    Check a single frame's regions for consistency.

    Args:
        frame: Frame to validate

    Raises:
        FrameValidationError: duplicate region IDs or negative/non-finite extents
    """
    seen = set()
    for region in frame.regions:
        if region.region_id in seen:
            raise FrameValidationError(
                f"Frame {frame.frame_index}: duplicate region ID {region.region_id}"
            )
        seen.add(region.region_id)

        roi = region.roi
        values = (roi.x, roi.y, roi.width, roi.height)
        if not all(math.isfinite(v) for v in values):
            raise FrameValidationError(
                f"Frame {frame.frame_index}: region {region.region_id} has non-finite ROI {values}"
            )
        if roi.width < 0 or roi.height < 0:
            raise FrameValidationError(
                f"Frame {frame.frame_index}: region {region.region_id} has negative extent "
                f"({roi.width} x {roi.height})"
            )


def validate_frame_pair(prev_frame: Frame, curr_frame: Frame, frame_rate: Optional[float] = None) -> None:
    """
    Validate two consecutive frames and the matches linking them.

    Matches are taken from curr_frame.kpt_matches: prev_idx indexes
    prev_frame.keypoints and curr_idx indexes curr_frame.keypoints.

    Args:
        prev_frame: Previous frame
        curr_frame: Current frame
        frame_rate: Optional frame rate in Hz to check as well

    Raises:
        FrameValidationError: on any out-of-range match index, matches against an
            empty keypoint list, bad regions, or a non-positive frame rate
    """
    validate_frame(prev_frame)
    validate_frame(curr_frame)

    if frame_rate is not None and not (math.isfinite(frame_rate) and frame_rate > 0):
        raise FrameValidationError(f"Frame rate must be a positive finite number, got {frame_rate}")

    matches = curr_frame.kpt_matches
    if not matches:
        return

    n_prev = len(prev_frame.keypoints)
    n_curr = len(curr_frame.keypoints)
    if n_prev == 0 or n_curr == 0:
        raise FrameValidationError(
            f"{len(matches)} keypoint matches reference an empty keypoint list "
            f"(prev={n_prev}, curr={n_curr})"
        )

    for i, match in enumerate(matches):
        if not 0 <= match.prev_idx < n_prev:
            raise FrameValidationError(
                f"Match {i}: prev_idx {match.prev_idx} out of range [0, {n_prev})"
            )
        if not 0 <= match.curr_idx < n_curr:
            raise FrameValidationError(
                f"Match {i}: curr_idx {match.curr_idx} out of range [0, {n_curr})"
            )

    logger.debug(f"Validated frame pair {prev_frame.frame_index} -> {curr_frame.frame_index}: "
                 f"{len(matches)} matches, {len(prev_frame.regions)}/{len(curr_frame.regions)} regions")
