"""
Perception module for per-object TTC estimation.
"""

from .association import cluster_range_points_with_regions, match_regions, cluster_kpt_matches_with_region
from .clustering import remove_cluster_outliers
from .camera_ttc import CameraTTCEstimator, compute_ttc_camera
from .lidar_ttc import LidarTTCEstimator, compute_ttc_lidar
from .frame_buffer import FrameBuffer
from .fusion_core import FusionPipeline

__all__ = [
    'cluster_range_points_with_regions', 'match_regions', 'cluster_kpt_matches_with_region',
    'remove_cluster_outliers',
    'CameraTTCEstimator', 'compute_ttc_camera',
    'LidarTTCEstimator', 'compute_ttc_lidar',
    'FrameBuffer', 'FusionPipeline'
]
