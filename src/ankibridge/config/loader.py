"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from ankibridge.config.models import BridgeConfig
from ankibridge.config.paths import get_config_path

LOG_LEVEL_ENV = "ANKIBRIDGE_LOG_LEVEL"


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("ankibridge.toml"),  # Current directory
        get_config_path(),  # ~/.ankibridge/config.toml (or ANKIBRIDGE_HOME)
    ]


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment overrides on top of file values."""
    if level := os.environ.get(LOG_LEVEL_ENV):
        section = config.setdefault("logging", {})
        section["level"] = level.strip().upper()
    return config


def load_config(path: Path | None = None) -> BridgeConfig:
    """Load configuration from TOML file.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        Validated BridgeConfig instance.

    Raises:
        FileNotFoundError: If no config file is found.
        ValueError: If config file is invalid.
    """
    config_path: Path | None = None

    default_paths = _get_default_config_paths()

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in default_paths:
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    if config_path is None:
        raise FileNotFoundError(
            f"No config file found. Searched: {', '.join(str(p) for p in default_paths)}"
        )

    with config_path.open("rb") as f:
        raw_config = tomllib.load(f)

    raw_config = _apply_env_overrides(raw_config)

    return BridgeConfig.model_validate(raw_config)


def get_default_config() -> BridgeConfig:
    """Get a default configuration, honoring environment overrides."""
    return BridgeConfig.model_validate(_apply_env_overrides({}))
