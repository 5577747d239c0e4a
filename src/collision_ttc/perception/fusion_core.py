"""
Fusion Pipeline - Per-frame-pair association and TTC estimation.

This module orchestrates the fusion core using dependency injection.
For each pair of consecutive frames it assigns range points to detection
regions, links regions across frames, filters keypoint matches per region
and runs the camera and range TTC estimators on every linked region pair.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

from collision_ttc.config.fusion_config import FusionConfig
from collision_ttc.gateway.ttc_estimator import ITTCEstimator
from collision_ttc.gateway.data_types import CalibrationTriple, DetectionRegion, Frame, RegionTTC
from collision_ttc.gateway.validation import validate_frame, validate_frame_pair
from collision_ttc.perception.association import (
    cluster_kpt_matches_with_region, cluster_range_points_with_regions, match_regions
)
from collision_ttc.perception.camera_ttc import CameraTTCEstimator
from collision_ttc.perception.frame_buffer import FrameBuffer
from collision_ttc.perception.geometry_utils import crop_range_points
from collision_ttc.perception.lidar_ttc import LidarTTCEstimator

logger = logging.getLogger(__name__)


class FusionPipeline:
    """
    Orchestrates the fusion core for a stream of frames.

    Responsibilities:
    - Validate frame pairs at the boundary
    - Populate detection regions with range points and keypoint matches
    - Resolve region correspondences between consecutive frames
    - Run the injected TTC estimators per linked region pair

    Regions are cleared before association, so reprocessing a pair gives the
    same result. With max_workers > 1 the per-region work runs on a thread pool;
    each task owns exactly one current-frame region.
    """

    def __init__(
        self,
        calibration: CalibrationTriple,
        config: Optional[FusionConfig] = None,
        camera_estimator: Optional[ITTCEstimator] = None,
        lidar_estimator: Optional[ITTCEstimator] = None
    ):
        """
        Initialize fusion pipeline with dependency injection.

        Args:
            calibration: Range-sensor-to-image projection chain
            config: Fusion configuration (defaults to FusionConfig())
            camera_estimator: Camera TTC estimator (defaults to CameraTTCEstimator from config)
            lidar_estimator: Range TTC estimator (defaults to LidarTTCEstimator from config)
        """
        self.calibration = calibration
        self.config = (config or FusionConfig()).validate()

        self.camera_estimator = camera_estimator or CameraTTCEstimator(
            min_pair_distance=self.config.min_kpt_pair_distance
        )
        self.lidar_estimator = lidar_estimator or LidarTTCEstimator(
            lane_width=self.config.lane_width,
            cluster_tolerance=self.config.cluster_tolerance,
            min_cluster_size=self.config.min_cluster_size,
            max_cluster_size=self.config.max_cluster_size
        )

        self.frame_buffer = FrameBuffer(capacity=2)

        self.executor = None
        if self.config.max_workers > 1:
            self.executor = ThreadPoolExecutor(max_workers=self.config.max_workers, thread_name_prefix="RegionProcessor")
            logger.info(f"Initialized ThreadPoolExecutor with {self.config.max_workers} workers")

    def close(self):
        """Shut down the thread pool, if any."""
        if self.executor is not None:
            self.executor.shutdown(wait=True)
            self.executor = None
            logger.info("ThreadPoolExecutor shut down")

    def __del__(self):
        if hasattr(self, 'executor'):
            self.close()

    def __enter__(self) -> 'FusionPipeline':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def process(self, frame: Frame) -> List[RegionTTC]:
        """
        Push a new frame and estimate TTCs against the previous one.

        Args:
            frame: Newest frame; frame.kpt_matches link it to the previous frame

        Returns:
            One RegionTTC per linked region pair, empty for the first frame

        Raises:
            FrameValidationError: if the frame is malformed; it is not buffered
        """
        if self.frame_buffer.current is None:
            validate_frame(frame)
        else:
            validate_frame_pair(self.frame_buffer.current, frame, self.config.frame_rate)
        self.frame_buffer.push(frame)
        if not self.frame_buffer.is_ready():
            logger.debug(f"Frame {frame.frame_index}: waiting for a second frame")
            return []
        return self.process_pair(self.frame_buffer.previous, self.frame_buffer.current)

    def process_pair(self, prev_frame: Frame, curr_frame: Frame) -> List[RegionTTC]:
        """
        Run association and both TTC estimators on one frame pair.

        Keypoint matches are filtered into every current-frame region, linked
        or not, so all regions are populated for downstream consumers.

        Args:
            prev_frame: Previous frame
            curr_frame: Current frame; curr_frame.kpt_matches link it to prev_frame

        Returns:
            One RegionTTC per entry of the region correspondence map

        Raises:
            FrameValidationError: if the frames carry malformed geometry
        """
        t0 = time.perf_counter()
        frame_rate = self.config.frame_rate
        validate_frame_pair(prev_frame, curr_frame, frame_rate)

        self.associate_range_points(prev_frame)
        self.associate_range_points(curr_frame)

        bb_matches = match_regions(
            curr_frame.kpt_matches,
            prev_frame.keypoints,
            curr_frame.keypoints,
            prev_frame.regions,
            curr_frame.regions
        )

        pairs = self._resolve_region_pairs(bb_matches, prev_frame, curr_frame)

        # Keypoint filtering mutates current regions; each task owns one region
        self._map(lambda region: cluster_kpt_matches_with_region(
            region,
            prev_frame.keypoints,
            curr_frame.keypoints,
            curr_frame.kpt_matches,
            outlier_ratio=self.config.kpt_outlier_ratio
        ), curr_frame.regions)

        results = self._map(
            lambda pair: self._estimate_pair(prev_frame, curr_frame, pair[0], pair[1]),
            pairs
        )

        elapsed_ms = (time.perf_counter() - t0) * 1000
        logger.info(f"Frame {prev_frame.frame_index} -> {curr_frame.frame_index}: "
                    f"{len(results)} region pairs (dT={self.config.dt:.3f}s) in {elapsed_ms:.1f}ms")
        return results

    def associate_range_points(self, frame: Frame) -> int:
        """
        Clear the frame's regions and assign its range points to them.

        Args:
            frame: Frame whose regions are repopulated

        Returns:
            Number of range points assigned
        """
        for region in frame.regions:
            region.clear()

        points = frame.range_points
        if self.config.crop_enabled:
            points = crop_range_points(
                points,
                min_x=self.config.crop_min_x,
                max_x=self.config.crop_max_x,
                max_y=self.config.crop_max_y,
                min_z=self.config.crop_min_z,
                max_z=self.config.crop_max_z,
                min_reflectivity=self.config.crop_min_reflectivity
            )
            logger.debug(f"Frame {frame.frame_index}: cropped range points {len(frame.range_points)} -> {len(points)}")

        return cluster_range_points_with_regions(
            frame.regions, points, self.config.shrink_factor, self.calibration
        )

    def _resolve_region_pairs(
        self,
        bb_matches: Dict[int, int],
        prev_frame: Frame,
        curr_frame: Frame
    ) -> List[Tuple[DetectionRegion, DetectionRegion]]:
        pairs = []
        for prev_id, curr_id in bb_matches.items():
            prev_region = prev_frame.region_by_id(prev_id)
            curr_region = curr_frame.region_by_id(curr_id)
            if prev_region is None or curr_region is None:
                continue
            pairs.append((prev_region, curr_region))
        return pairs

    def _estimate_pair(
        self,
        prev_frame: Frame,
        curr_frame: Frame,
        prev_region: DetectionRegion,
        curr_region: DetectionRegion
    ) -> RegionTTC:
        frame_rate = self.config.frame_rate
        ttc_lidar = self.lidar_estimator.estimate_ttc(prev_frame, curr_frame, prev_region, curr_region, frame_rate)
        ttc_camera = self.camera_estimator.estimate_ttc(prev_frame, curr_frame, prev_region, curr_region, frame_rate)

        result = RegionTTC(
            prev_region_id=prev_region.region_id,
            curr_region_id=curr_region.region_id,
            ttc_lidar=ttc_lidar,
            ttc_camera=ttc_camera,
            num_range_points=len(curr_region.range_points),
            num_kpt_matches=len(curr_region.kpt_matches)
        )
        if not result.has_lidar or not result.has_camera:
            logger.debug(f"Region {prev_region.region_id} -> {curr_region.region_id}: "
                         f"missing estimate ({self.lidar_estimator.modality}={ttc_lidar}, "
                         f"{self.camera_estimator.modality}={ttc_camera})")
        return result

    def _map(self, func, items: list) -> list:
        """Apply func to every item, on the thread pool when configured."""
        if self.executor is None or len(items) < 2:
            return [func(item) for item in items]
        return list(self.executor.map(func, items))
