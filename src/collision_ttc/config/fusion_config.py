"""
Configuration dataclass for the fusion core.

This module centralizes all fusion-related configuration parameters
to provide a single source of truth for tuning association and TTC estimation.
"""

import logging
import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Tuple, Union

import yaml

from collision_ttc.gateway.data_types import CalibrationTriple

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a configuration value is out of its valid range."""


@dataclass
class FusionConfig:
    """Configuration for the fusion core."""

    # Sensor timing
    frame_rate: float = 10.0

    # Range-to-region association
    shrink_factor: float = 0.10

    # Keypoint match filtering
    kpt_outlier_ratio: float = 1.5

    # Camera TTC
    min_kpt_pair_distance: float = 100.0

    # Range clustering (euclidean, meters)
    cluster_tolerance: float = 0.05
    min_cluster_size: int = 30
    max_cluster_size: int = 25000

    # Range TTC
    lane_width: float = 4.0

    # Range point cropping (applied before association when enabled)
    crop_enabled: bool = False
    crop_min_x: float = 2.0
    crop_max_x: float = 20.0
    crop_max_y: float = 2.0
    crop_min_z: float = -1.5
    crop_max_z: float = -0.9
    crop_min_reflectivity: float = 0.1

    # Parallel processing (1 = sequential)
    max_workers: int = 1

    def validate(self) -> 'FusionConfig':
        """
        Check parameter ranges.

        Returns:
            self, to allow chaining

        Raises:
            ConfigError: if any parameter is out of range
        """
        if not 0.0 <= self.shrink_factor < 1.0:
            raise ConfigError(f"shrink_factor must be in [0, 1), got {self.shrink_factor}")
        if not (math.isfinite(self.frame_rate) and self.frame_rate > 0):
            raise ConfigError(f"frame_rate must be positive, got {self.frame_rate}")
        if self.kpt_outlier_ratio <= 0:
            raise ConfigError(f"kpt_outlier_ratio must be positive, got {self.kpt_outlier_ratio}")
        if self.min_kpt_pair_distance < 0:
            raise ConfigError(f"min_kpt_pair_distance must be >= 0, got {self.min_kpt_pair_distance}")
        if self.cluster_tolerance <= 0:
            raise ConfigError(f"cluster_tolerance must be positive, got {self.cluster_tolerance}")
        if self.min_cluster_size < 1 or self.max_cluster_size < self.min_cluster_size:
            raise ConfigError(
                f"cluster size bounds invalid: [{self.min_cluster_size}, {self.max_cluster_size}]"
            )
        if self.lane_width <= 0:
            raise ConfigError(f"lane_width must be positive, got {self.lane_width}")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be >= 1, got {self.max_workers}")
        return self

    @property
    def dt(self) -> float:
        """Time between two frames in seconds."""
        return 1.0 / self.frame_rate


def load_fusion_config(
    config_path: Union[str, Path, None] = None
) -> Tuple[FusionConfig, Optional[CalibrationTriple]]:
    """
    Load fusion configuration (and optional calibration) from YAML.

    Expected layout:

        fusion:
          frame_rate: 10.0
          shrink_factor: 0.1
        calibration:
          p_rect: [[...], [...], [...]]
          r_rect: [[...], [...], [...]]
          rt: [[...], [...], [...]]

    Args:
        config_path: Path to YAML file (defaults to config/fusion_config.yaml at repo root)

    Returns:
        Tuple of (FusionConfig, CalibrationTriple or None)
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent.parent / "config" / "fusion_config.yaml"

    try:
        with open(config_path, 'r') as f:
            raw = yaml.safe_load(f) or {}
        logger.info(f"Loaded fusion config from {config_path}")
    except FileNotFoundError:
        logger.warning(f"Config not found at {config_path}, using defaults")
        raw = {}

    section = raw.get('fusion', {}) or {}
    known = {f.name for f in fields(FusionConfig)}
    unknown = set(section) - known
    if unknown:
        logger.warning(f"Ignoring unknown fusion config keys: {sorted(unknown)}")
    config = FusionConfig(**{k: v for k, v in section.items() if k in known}).validate()

    calibration = None
    if raw.get('calibration'):
        calibration = CalibrationTriple.from_config(raw['calibration'])

    return config, calibration
