"""
Data association for the fusion core.

Assigns range points and keypoint matches to detection regions, and links
detection regions of the previous frame to those of the current frame by
keypoint-match voting.
"""

import logging
from typing import Dict, List, Sequence
import numpy as np

from collision_ttc.gateway.data_types import (
    CalibrationTriple, DetectionRegion, Keypoint, KeypointMatch, RangePoint,
    keypoints_to_array, range_points_to_array
)
from collision_ttc.perception.geometry_utils import project_range_points, region_contains_many

logger = logging.getLogger(__name__)


def cluster_range_points_with_regions(
    regions: List[DetectionRegion],
    range_points: Sequence[RangePoint],
    shrink_factor: float,
    calibration: CalibrationTriple
) -> int:
    """
    Assign each range point to the single detection region enclosing its projection.

    Every point is projected into the image and tested against each region's
    shrunk rectangle. Points enclosed by exactly one region are appended to
    that region's range_points; points enclosed by none or by several are dropped.

    Args:
        regions: Detection regions of one frame (mutated)
        range_points: Range points of the same frame
        shrink_factor: Region shrink factor in [0, 1)
        calibration: Projection chain

    Returns:
        Number of points assigned
    """
    if not regions or len(range_points) == 0:
        return 0

    uv = project_range_points(range_points_to_array(range_points), calibration)

    # (N, R) membership of every point in every shrunk region
    membership = np.stack(
        [region_contains_many(uv, region.roi, shrink_factor) for region in regions],
        axis=1
    )
    enclosing_count = membership.sum(axis=1)
    unique = enclosing_count == 1

    for region_idx, region in enumerate(regions):
        point_indices = np.flatnonzero(unique & membership[:, region_idx])
        region.range_points.extend(range_points[i] for i in point_indices)

    num_assigned = int(unique.sum())
    num_ambiguous = int((enclosing_count > 1).sum())
    logger.debug(f"[ASSOCIATION] {num_assigned}/{len(range_points)} range points assigned to "
                 f"{len(regions)} regions, {num_ambiguous} ambiguous dropped")
    return num_assigned


def match_regions(
    kpt_matches: Sequence[KeypointMatch],
    prev_keypoints: Sequence[Keypoint],
    curr_keypoints: Sequence[Keypoint],
    prev_regions: Sequence[DetectionRegion],
    curr_regions: Sequence[DetectionRegion]
) -> Dict[int, int]:
    """
    Link previous-frame regions to current-frame regions by keypoint-match voting.

    A match votes for a pair (P, C) when its previous keypoint lies in P's
    rectangle and its current keypoint lies in C's rectangle. Each match votes
    only for the first current region (list order) containing its current keypoint.
    For every P the C with most votes wins; ties go to the C listed first.
    Previous regions without any vote get no entry.

    Args:
        kpt_matches: Matches between the two frames
        prev_keypoints: Keypoints of the previous frame
        curr_keypoints: Keypoints of the current frame
        prev_regions: Detection regions of the previous frame
        curr_regions: Detection regions of the current frame

    Returns:
        Mapping previous region ID -> current region ID
    """
    best_matches: Dict[int, int] = {}
    if len(kpt_matches) == 0 or not prev_regions or not curr_regions:
        return best_matches

    prev_pts = keypoints_to_array(prev_keypoints)[[m.prev_idx for m in kpt_matches]]
    curr_pts = keypoints_to_array(curr_keypoints)[[m.curr_idx for m in kpt_matches]]

    # Index of the first current region containing each match's current keypoint (-1 = none)
    curr_membership = np.stack(
        [region_contains_many(curr_pts, region.roi) for region in curr_regions],
        axis=1
    )
    first_curr = np.where(curr_membership.any(axis=1), curr_membership.argmax(axis=1), -1)

    for prev_region in prev_regions:
        in_prev = region_contains_many(prev_pts, prev_region.roi)
        voters = first_curr[in_prev & (first_curr >= 0)]
        if len(voters) == 0:
            logger.debug(f"[REGION MATCH] Region {prev_region.region_id}: no votes, no correspondence")
            continue

        votes = np.bincount(voters, minlength=len(curr_regions))
        best_idx = int(np.argmax(votes))  # first maximum wins
        best_matches[prev_region.region_id] = curr_regions[best_idx].region_id
        logger.debug(f"[REGION MATCH] {prev_region.region_id} => {curr_regions[best_idx].region_id} "
                     f"({votes[best_idx]}/{len(voters)} votes)")

    return best_matches


def cluster_kpt_matches_with_region(
    region: DetectionRegion,
    prev_keypoints: Sequence[Keypoint],
    curr_keypoints: Sequence[Keypoint],
    kpt_matches: Sequence[KeypointMatch],
    outlier_ratio: float = 1.5
) -> int:
    """
    Assign keypoint matches to a region and reject displacement outliers.

    Matches whose current keypoint lies in the region's rectangle are appended
    to region.kpt_matches. Then every match whose pixel displacement between
    frames is >= outlier_ratio times the mean displacement is removed.

    Args:
        region: Current-frame detection region (mutated)
        prev_keypoints: Keypoints of the previous frame
        curr_keypoints: Keypoints of the current frame
        kpt_matches: All matches between the two frames
        outlier_ratio: Multiple of the mean displacement at which a match is rejected

    Returns:
        Number of matches kept in the region
    """
    for match in kpt_matches:
        kp = curr_keypoints[match.curr_idx]
        if region.roi.contains(kp.x, kp.y):
            region.kpt_matches.append(match)

    if not region.kpt_matches:
        logger.debug(f"[KPT FILTER] Region {region.region_id}: no matches inside ROI")
        return 0

    displacements = np.array([
        np.hypot(curr_keypoints[m.curr_idx].x - prev_keypoints[m.prev_idx].x,
                 curr_keypoints[m.curr_idx].y - prev_keypoints[m.prev_idx].y)
        for m in region.kpt_matches
    ])
    mean = float(displacements.mean())

    # A zero mean rejects every match, including zero displacements
    keep = displacements < mean * outlier_ratio
    num_before = len(region.kpt_matches)
    region.kpt_matches = [m for m, k in zip(region.kpt_matches, keep) if k]

    logger.debug(f"[KPT FILTER] Region {region.region_id}: kept {len(region.kpt_matches)}/{num_before} "
                 f"matches (mean displacement {mean:.2f}px, threshold {mean * outlier_ratio:.2f}px)")
    return len(region.kpt_matches)
