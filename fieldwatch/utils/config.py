"""
Configuration utilities for FieldWatch.

This module provides utilities for managing configuration across different
components of the system, with support for hierarchical configurations,
environment variable integration, and conversion to typed dataclasses.
"""

import os
import json
import logging
from typing import Dict, Any, Type, TypeVar, Union, get_type_hints
from pathlib import Path
from dataclasses import dataclass, is_dataclass, asdict

import yaml

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ConfigError(Exception):
    """Exception raised for configuration errors."""
    pass


def load_config_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from a file (JSON or YAML).

    Args:
        file_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If file cannot be loaded
    """
    if isinstance(file_path, str):
        file_path = Path(file_path)

    if not file_path.exists():
        raise ConfigError(f"Configuration file not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix not in ('.yml', '.yaml', '.json'):
        raise ConfigError(f"Unsupported config file format: {file_path.suffix}")

    try:
        with open(file_path, 'r') as f:
            if suffix == '.json':
                return json.load(f) or {}
            return yaml.safe_load(f) or {}
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading configuration: {str(e)}")


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two configuration dictionaries.

    Args:
        base: Base configuration
        override: Override configuration (takes precedence)

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, value in override.items():
        # If both values are dictionaries, merge them recursively
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def get_env_config(prefix: str) -> Dict[str, Any]:
    """
    Get configuration from environment variables with a given prefix.

    ``FIELDWATCH_DETECTION__WINDOW_DAYS=3`` becomes
    ``{"detection": {"window_days": 3}}``.

    Args:
        prefix: Environment variable prefix

    Returns:
        Configuration dictionary from environment variables
    """
    result = {}
    prefix_upper = prefix.upper() + "_"

    for key, value in os.environ.items():
        if not key.startswith(prefix_upper):
            continue

        config_key = key[len(prefix_upper):].lower()
        parts = config_key.split("__")
        current = result

        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = parse_config_value(value)

    return result


def parse_config_value(value: str) -> Any:
    """
    Parse a configuration value from string to appropriate type.

    Args:
        value: String value to parse

    Returns:
        Parsed value
    """
    lowered = value.strip().lower()

    if lowered in ('true', 'yes', 'on'):
        return True
    if lowered in ('false', 'no', 'off'):
        return False

    if lowered in ('none', 'null'):
        return None

    try:
        if '.' in value:
            return float(value)
        return int(value)
    except ValueError:
        pass

    # Comma-separated lists
    if ',' in value:
        return [parse_config_value(v.strip()) for v in value.split(',') if v.strip()]

    return value


def config_as_dataclass(config: Dict[str, Any], dataclass_type: Type[T]) -> T:
    """
    Convert a configuration dictionary to a dataclass instance.

    Keys that are not fields of the dataclass are ignored.

    Args:
        config: Configuration dictionary
        dataclass_type: Dataclass type

    Returns:
        Dataclass instance

    Raises:
        ConfigError: If conversion fails
    """
    if not is_dataclass(dataclass_type):
        raise ConfigError(f"Type {dataclass_type} is not a dataclass")

    type_hints = get_type_hints(dataclass_type)
    valid_fields = {k: v for k, v in (config or {}).items() if k in type_hints}

    try:
        return dataclass_type(**valid_fields)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Error creating dataclass from config: {str(e)}")


@dataclass
class ComponentConfig:
    """Base class for component configuration."""

    enabled: bool = True

    @classmethod
    def from_dict(cls: Type[T], config: Dict[str, Any]) -> T:
        """Create a component config from a dictionary."""
        return config_as_dataclass(config, cls)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary."""
        return asdict(self)
