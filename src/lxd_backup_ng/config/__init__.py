"""Configuration system for lxd-backup-ng.

This module provides TOML-based configuration loading, validation,
and schema definitions for the backup pipeline.
"""

from .loader import ConfigError, find_config_file, load_config, validate_config
from .schema import Config, GlobalConfig, StorageConfig

__all__ = [
    "GlobalConfig",
    "StorageConfig",
    "Config",
    "load_config",
    "find_config_file",
    "ConfigError",
    "validate_config",
]
