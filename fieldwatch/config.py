"""
Configuration management for FieldWatch.

This module provides functions for loading and managing configuration settings,
layering built-in defaults, JSON or YAML configuration files and environment
variables.
"""

import copy
import os
import logging
from typing import Dict, Any
from pathlib import Path

from fieldwatch.utils.config import ConfigError, get_env_config, load_config_file, merge_configs

logger = logging.getLogger(__name__)

# Default configuration
_DEFAULT_CONFIG = {
    "database": {
        "db_type": "sqlite",
        "db_path": str(Path.home() / ".fieldwatch" / "fieldwatch.db"),
        "echo": False
    },
    "detection": {
        "enabled": True,
        "window_days": 7,
        "parallel": False,
        "max_workers": 4,
        "gps_spoof_threshold_meters": 500.0,
        "gps_spoof_high_severity_meters": 1000.0,
        "gps_spoof_confidence_base": 0.5,
        "gps_spoof_confidence_divisor_meters": 2000.0,
        "gps_spoof_confidence_cap": 0.9,
        "max_travel_speed_kmh": 60.0,
        "travel_flag_ratio": 0.5,
        "travel_high_severity_ratio": 0.25,
        "travel_min_distance_meters": 2000.0,
        "travel_confidence": 0.75,
        "default_expected_minutes": 60.0,
        "default_bedrooms": 2,
        "default_bathrooms": 1,
        "minutes_per_bedroom": 15.0,
        "minutes_per_bathroom": 20.0,
        "time_flag_ratio": 0.3,
        "time_high_severity_ratio": 0.15,
        "time_max_actual_minutes": 20.0,
        "time_confidence": 0.7,
        "work_completion_ratio": 0.5,
        "work_confidence": 0.6
    },
    "auth": {
        "cron_secret": None,
        "admin_user_ids": []
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "max_size": 10485760,  # 10 MB
        "backup_count": 5
    }
}

# Global configuration dictionary
_CONFIG = None


def _load_config_file(config_path: str) -> Dict[str, Any]:
    """Load configuration from a JSON or YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Configuration dictionary (empty if the file cannot be loaded)
    """
    try:
        return load_config_file(config_path)
    except ConfigError as e:
        logger.warning(f"Could not load config file {config_path}: {e}")
        return {}


def get_config() -> Dict[str, Any]:
    """Get the current configuration.

    Returns:
        Configuration dictionary
    """
    global _CONFIG

    if _CONFIG is None:
        config = copy.deepcopy(_DEFAULT_CONFIG)

        # Look for configuration files in standard locations
        config_paths = [
            os.path.join(os.getcwd(), "fieldwatch.json"),
            os.path.join(os.getcwd(), "fieldwatch.yaml"),
            os.path.join(str(Path.home()), ".fieldwatch", "config.json"),
            os.environ.get("FIELDWATCH_CONFIG", "")
        ]

        for path in config_paths:
            if path and os.path.exists(path):
                config = merge_configs(config, _load_config_file(path))

        # FIELDWATCH_CONFIG names a file, not a setting
        env_config = get_env_config("FIELDWATCH")
        env_config.pop("config", None)
        _CONFIG = merge_configs(config, env_config)

    return _CONFIG


def get_section(name: str) -> Dict[str, Any]:
    """Get a single configuration section.

    Args:
        name: Section name (e.g. 'detection')

    Returns:
        Section dictionary (empty if the section does not exist)
    """
    return get_config().get(name, {}) or {}


def set_config(new_config: Dict[str, Any]) -> None:
    """Set a new configuration on top of the defaults.

    Args:
        new_config: New configuration dictionary
    """
    global _CONFIG
    _CONFIG = merge_configs(copy.deepcopy(_DEFAULT_CONFIG), new_config)


def reset_config() -> None:
    """Reset configuration to default."""
    global _CONFIG
    _CONFIG = None
