"""Tests for configuration loading, models and paths."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from ankibridge.config.loader import LOG_LEVEL_ENV, get_default_config, load_config
from ankibridge.config.models import (
    DEFAULT_PERMISSION_NAME,
    BridgeConfig,
    LoggingConfig,
    MediaConfig,
    PermissionConfig,
)
from ankibridge.config.paths import (
    ENV_VAR,
    get_bridge_home,
    get_config_path,
    get_media_staging_path,
    get_socket_path,
)


@pytest.fixture
def bridge_home(tmp_path, monkeypatch):
    monkeypatch.setenv(ENV_VAR, str(tmp_path / "home"))
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
    get_bridge_home.cache_clear()
    yield tmp_path / "home"
    get_bridge_home.cache_clear()


class TestPaths:
    def test_env_var_overrides_home(self, bridge_home):
        assert get_bridge_home() == bridge_home.resolve()

    def test_default_home(self, monkeypatch):
        monkeypatch.delenv(ENV_VAR, raising=False)
        get_bridge_home.cache_clear()
        try:
            assert get_bridge_home() == Path.home() / ".ankibridge"
        finally:
            get_bridge_home.cache_clear()

    def test_derived_paths(self, bridge_home):
        home = bridge_home.resolve()
        assert get_config_path() == home / "config.toml"
        assert get_media_staging_path() == home / "media"
        assert get_socket_path() == home / "bridge.sock"


class TestPermissionConfig:
    def test_defaults(self):
        config = PermissionConfig()
        assert config.name == DEFAULT_PERMISSION_NAME
        assert config.request_code == 4321

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="must not be empty"):
            PermissionConfig(name="   ")

    def test_name_is_stripped(self):
        assert PermissionConfig(name=" custom.PERM ").name == "custom.PERM"


class TestModels:
    def test_media_defaults(self, bridge_home):
        config = MediaConfig()
        assert config.staging_dir == bridge_home.resolve() / "media"
        assert config.host_package == "com.ichi2.anki"
        assert config.authority == "ankibridge.fileprovider"

    def test_logging_level_must_be_known(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")


class TestLoadConfig:
    def test_explicit_path(self, bridge_home, tmp_path):
        config_file = tmp_path / "config.toml"
        config_file.write_text(
            """
[permission]
request_code = 99

[media]
staging_dir = "/tmp/staged"
host_package = "org.example.host"

[logging]
level = "DEBUG"
log_to_file = true
"""
        )

        config = load_config(config_file)

        assert isinstance(config, BridgeConfig)
        assert config.permission.request_code == 99
        assert config.permission.name == DEFAULT_PERMISSION_NAME
        assert config.media.staging_dir == Path("/tmp/staged")
        assert config.media.host_package == "org.example.host"
        assert config.logging.level == "DEBUG"
        assert config.logging.log_to_file is True

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(tmp_path / "missing.toml")

    def test_searches_current_directory_first(self, bridge_home, tmp_path, monkeypatch):
        bridge_home.mkdir(parents=True)
        (bridge_home / "config.toml").write_text("[permission]\nrequest_code = 2\n")
        (tmp_path / "ankibridge.toml").write_text("[permission]\nrequest_code = 1\n")
        monkeypatch.chdir(tmp_path)

        assert load_config().permission.request_code == 1

    def test_falls_back_to_home_config(self, bridge_home, tmp_path, monkeypatch):
        bridge_home.mkdir(parents=True)
        (bridge_home / "config.toml").write_text("[permission]\nrequest_code = 2\n")
        monkeypatch.chdir(tmp_path)

        assert load_config().permission.request_code == 2

    def test_no_config_found(self, bridge_home, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(FileNotFoundError, match="No config file found"):
            load_config()

    def test_env_overrides_log_level(self, bridge_home, tmp_path, monkeypatch):
        config_file = tmp_path / "config.toml"
        config_file.write_text('[logging]\nlevel = "ERROR"\n')
        monkeypatch.setenv(LOG_LEVEL_ENV, "debug")

        assert load_config(config_file).logging.level == "DEBUG"

    def test_invalid_values_raise(self, tmp_path):
        config_file = tmp_path / "config.toml"
        config_file.write_text('[permission]\nname = ""\n')

        with pytest.raises(ValidationError):
            load_config(config_file)


def test_default_config(bridge_home, monkeypatch):
    monkeypatch.setenv(LOG_LEVEL_ENV, "warning")

    config = get_default_config()

    assert config.logging.level == "WARNING"
    assert config.server.socket_path == bridge_home.resolve() / "bridge.sock"
