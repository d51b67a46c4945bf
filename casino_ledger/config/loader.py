"""YAML configuration loader."""
from pathlib import Path

import yaml
from pydantic import ValidationError

from .schemas import CasinoConfig


def load_config(config_path: str | Path | None = None) -> CasinoConfig:
    """
    Load and validate the casino configuration from a YAML file.

    Args:
        config_path: Path to YAML configuration file; None yields the defaults

    Returns:
        Validated CasinoConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
        yaml.YAMLError: If YAML parsing fails
    """
    if config_path is None:
        return CasinoConfig()

    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        return CasinoConfig()

    if not isinstance(config_dict, dict):
        raise ValueError(f"Configuration must be a mapping: {config_path}")

    try:
        return CasinoConfig.from_dict(config_dict)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
