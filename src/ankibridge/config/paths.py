"""Centralized path management for ankibridge.

All state (config, logs, staged media) lives under a single base directory.
The base directory can be overridden with the ANKIBRIDGE_HOME environment
variable.

Default locations:
- Linux/macOS: ~/.ankibridge
- Windows: %USERPROFILE%\\.ankibridge
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "ANKIBRIDGE_HOME"


@lru_cache(maxsize=1)
def get_bridge_home() -> Path:
    """Get the base directory for all ankibridge data.

    Resolution order:
    1. ANKIBRIDGE_HOME environment variable (if set)
    2. Platform default (~/.ankibridge)
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".ankibridge"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_bridge_home() / "config.toml"


def get_logs_path() -> Path:
    """Get the JSONL log directory path."""
    return get_bridge_home() / "logs"


def get_media_staging_path() -> Path:
    """Get the directory where inbound media payloads are staged."""
    return get_bridge_home() / "media"


def get_socket_path() -> Path:
    """Get the default channel socket path."""
    return get_bridge_home() / "bridge.sock"
