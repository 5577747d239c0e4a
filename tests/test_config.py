import logging
from pathlib import Path

import numpy as np
import pytest

from collision_ttc.config.fusion_config import ConfigError, FusionConfig, load_fusion_config

REPO_CONFIG = Path(__file__).parent.parent / "config" / "fusion_config.yaml"


def test_defaults_are_valid():
    config = FusionConfig().validate()
    assert config.shrink_factor == pytest.approx(0.10)
    assert config.min_cluster_size == 30
    assert config.max_cluster_size == 25000
    assert config.dt == pytest.approx(0.1)


@pytest.mark.parametrize("overrides", [
    {'shrink_factor': 1.0},
    {'shrink_factor': -0.1},
    {'frame_rate': 0.0},
    {'kpt_outlier_ratio': 0.0},
    {'cluster_tolerance': 0.0},
    {'min_cluster_size': 50, 'max_cluster_size': 10},
    {'lane_width': -1.0},
    {'max_workers': 0},
])
def test_invalid_values_rejected(overrides):
    with pytest.raises(ConfigError):
        FusionConfig(**overrides).validate()


def test_load_from_yaml(tmp_path):
    path = tmp_path / "fusion.yaml"
    path.write_text(
        "fusion:\n"
        "  frame_rate: 20.0\n"
        "  shrink_factor: 0.2\n"
        "calibration:\n"
        "  p_rect: [[1, 0, 0, 0], [0, 1, 0, 0], [0, 0, 1, 0]]\n"
        "  r_rect: [[1, 0, 0], [0, 1, 0], [0, 0, 1]]\n"
        "  rt: [[1, 0, 0, 0], [0, 1, 0, 0], [0, 0, 1, 0]]\n"
    )
    config, calibration = load_fusion_config(path)
    assert config.frame_rate == 20.0
    assert config.shrink_factor == 0.2
    assert config.lane_width == 4.0
    assert np.allclose(calibration.matrix, np.hstack([np.eye(3), np.zeros((3, 1))]))


def test_missing_file_falls_back_to_defaults(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        config, calibration = load_fusion_config(tmp_path / "missing.yaml")
    assert config == FusionConfig()
    assert calibration is None
    assert "using defaults" in caplog.text


def test_unknown_keys_warned(tmp_path, caplog):
    path = tmp_path / "fusion.yaml"
    path.write_text("fusion:\n  frame_rate: 5.0\n  bogus: 1\n")
    with caplog.at_level(logging.WARNING):
        config, _ = load_fusion_config(path)
    assert config.frame_rate == 5.0
    assert "bogus" in caplog.text


def test_invalid_yaml_value_rejected(tmp_path):
    path = tmp_path / "fusion.yaml"
    path.write_text("fusion:\n  shrink_factor: 1.5\n")
    with pytest.raises(ConfigError):
        load_fusion_config(path)


def test_repository_config_loads():
    config, calibration = load_fusion_config(REPO_CONFIG)
    assert config.crop_enabled
    assert calibration.matrix.shape == (3, 4)
