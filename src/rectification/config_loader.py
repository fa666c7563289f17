"""
Configuration loader for the Rectification module.

Loads configuration from config.yaml and validates it with the Pydantic
models in src.rectification.types.
"""

import logging
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from src.rectification.types import RectificationConfig

logger = logging.getLogger(__name__)

# Default configuration path (relative to this file)
DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> RectificationConfig:
    """
    Load rectification configuration from YAML file.

    Args:
        config_path: Path to the configuration YAML file.

    Returns:
        Validated RectificationConfig object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config is invalid or missing required fields.

    Example:
        >>> config = load_config()
        >>> print(config.max_dimension)
        1600
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.debug(f"Loading rectification config from {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid configuration file: {e}") from e

    try:
        config = _parse_config(raw_config)
        logger.info("Successfully loaded rectification configuration")
        return config
    except (KeyError, TypeError, ValidationError) as e:
        raise ValueError(f"Invalid configuration file: {e}") from e


def _parse_config(raw: Dict[str, Any]) -> RectificationConfig:
    """Parse raw dictionary into the structured config object."""
    if not isinstance(raw, dict):
        raise TypeError(f"Expected a mapping at top level, got {type(raw).__name__}")

    section = raw.get("rectification", raw)
    return RectificationConfig(**section)


def get_default_config() -> RectificationConfig:
    """
    Get default configuration from the bundled config.yaml file.

    Falls back to the model defaults if the bundled file is missing.
    """
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)

    logger.warning(
        f"Bundled config not found at {DEFAULT_CONFIG_PATH}, using built-in defaults"
    )
    return RectificationConfig()
