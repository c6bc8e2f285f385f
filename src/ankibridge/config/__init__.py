"""Configuration module."""

from ankibridge.config.loader import get_default_config, load_config
from ankibridge.config.models import (
    BridgeConfig,
    ConfigError,
    LoggingConfig,
    MediaConfig,
    PermissionConfig,
    ServerConfig,
)
from ankibridge.config.paths import (
    get_bridge_home,
    get_config_path,
    get_logs_path,
    get_media_staging_path,
    get_socket_path,
)

__all__ = [
    "BridgeConfig",
    "ConfigError",
    "LoggingConfig",
    "MediaConfig",
    "PermissionConfig",
    "ServerConfig",
    "get_bridge_home",
    "get_config_path",
    "get_default_config",
    "get_logs_path",
    "get_media_staging_path",
    "get_socket_path",
    "load_config",
]
