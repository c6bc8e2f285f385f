"""Configuration models using Pydantic."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ankibridge.config.paths import get_media_staging_path, get_socket_path

DEFAULT_PERMISSION_NAME = "com.ichi2.anki.permission.READ_WRITE_DATABASE"
DEFAULT_PERMISSION_REQUEST_CODE = 4321
DEFAULT_HOST_PACKAGE = "com.ichi2.anki"


class PermissionConfig(BaseModel):
    """The single OS-level capability the bridge needs from the host."""

    name: str = DEFAULT_PERMISSION_NAME
    request_code: int = DEFAULT_PERMISSION_REQUEST_CODE

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("permission name must not be empty")
        return value


class MediaConfig(BaseModel):
    """Configuration for transient media staging.

    Staged files are handed to the host through a content URI built from
    ``authority``; ``host_package`` is the process granted read access.
    """

    staging_dir: Path = Field(default_factory=get_media_staging_path)
    authority: str = "ankibridge.fileprovider"
    host_package: str = DEFAULT_HOST_PACKAGE


class ServerConfig(BaseModel):
    """Configuration for the channel server."""

    socket_path: Path = Field(default_factory=get_socket_path)


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_to_file: bool = False
    retention_days: int = 7


class ConfigError(Exception):
    """Configuration error."""

    pass


class BridgeConfig(BaseModel):
    """Root configuration model."""

    permission: PermissionConfig = Field(default_factory=PermissionConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
