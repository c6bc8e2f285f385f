"""Tests for assembling a dispatcher from a host environment."""

import pytest

from ankibridge.bridge import create_dispatcher, load_environment
from ankibridge.config import ConfigError
from ankibridge.dispatcher import BridgeState
from ankibridge.host import HostEnvironment
from tests.conftest import (
    FakeOsPermissions,
    RecordingGrants,
    SpyHostEngine,
    spy_environment,
)


class TestCreateDispatcher:
    async def test_attaches_engine_and_ui(self, bridge_config):
        environment = spy_environment()

        dispatcher = create_dispatcher(environment, bridge_config)

        assert dispatcher.state is BridgeState.ATTACHED_UI
        outcome = await dispatcher.dispatch("apiHostSpecVersion")
        assert outcome.value == 2
        assert environment.engine.call_names == ["api_host_spec_version"]

    def test_without_ui(self, bridge_config):
        environment = HostEnvironment(
            engine=SpyHostEngine(),
            permissions=FakeOsPermissions(),
            grants=RecordingGrants(),
        )

        dispatcher = create_dispatcher(environment, bridge_config)

        assert dispatcher.state is BridgeState.ATTACHED

    async def test_uses_configured_host_package(self, bridge_config):
        bridge_config.media.host_package = "org.example.host"
        environment = spy_environment()
        environment.engine.media_result = "a.png"
        dispatcher = create_dispatcher(environment, bridge_config)

        await dispatcher.dispatch(
            "addMedia",
            {"bytes": b"png", "preferredName": "a.png", "mimeType": "image"},
        )

        ((package, uri),) = environment.grants.grants
        assert package == "org.example.host"
        assert uri.startswith("content://ankibridge.fileprovider/")
        assert uri.endswith("/a.png")

    def test_default_config(self):
        dispatcher = create_dispatcher(spy_environment())
        assert dispatcher.gate.check_granted() is True


class TestLoadEnvironment:
    def test_loads_factory(self):
        environment = load_environment("tests.conftest:spy_environment")
        assert isinstance(environment, HostEnvironment)
        assert isinstance(environment.engine, SpyHostEngine)

    @pytest.mark.parametrize(
        "target", ["tests.conftest", ":spy_environment", "tests.conftest:"]
    )
    def test_malformed_target(self, target):
        with pytest.raises(ConfigError, match="module:factory"):
            load_environment(target)

    def test_missing_module(self):
        with pytest.raises(ConfigError, match="Cannot import"):
            load_environment("no_such_module_here:factory")

    def test_missing_attribute(self):
        with pytest.raises(ConfigError, match="not a callable factory"):
            load_environment("tests.conftest:missing_factory")

    def test_not_callable(self):
        with pytest.raises(ConfigError, match="not a callable factory"):
            load_environment("tests.conftest:PERMISSION_NAME")

    def test_wrong_return_type(self):
        with pytest.raises(ConfigError, match="expected HostEnvironment"):
            load_environment("tests.conftest:not_an_environment")
