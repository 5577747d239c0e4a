"""
Configuration for the fusion core.
"""

from .fusion_config import FusionConfig, ConfigError, load_fusion_config

__all__ = ['FusionConfig', 'ConfigError', 'load_fusion_config']
