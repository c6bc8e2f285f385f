"""Assemble a ready-to-serve Dispatcher from host collaborators."""

import importlib
import logging
from collections.abc import Callable

from ankibridge.config.models import BridgeConfig, ConfigError
from ankibridge.dispatcher import Dispatcher
from ankibridge.host import HostEnvironment
from ankibridge.permissions import PermissionGate
from ankibridge.staging import MediaStager

logger = logging.getLogger(__name__)


def create_dispatcher(
    environment: HostEnvironment, config: BridgeConfig | None = None
) -> Dispatcher:
    """Build a Dispatcher and attach it to the environment's host engine.

    The UI context, if the environment has one, is attached as well.
    """
    config = config or BridgeConfig()
    gate = PermissionGate(environment.permissions, config.permission)
    stager = MediaStager(environment.grants, config.media)

    dispatcher = Dispatcher(gate, stager)
    dispatcher.attach(environment.engine)
    if environment.ui is not None:
        dispatcher.attach_ui(environment.ui)
    return dispatcher


def load_environment(target: str) -> HostEnvironment:
    """Import ``module:attribute`` and call it to get a HostEnvironment.

    Raises:
        ConfigError: If the target cannot be imported or returns the wrong type.
    """
    module_path, sep, attribute = target.partition(":")
    if not sep or not module_path or not attribute:
        raise ConfigError(f"Engine target must look like 'module:factory': {target}")

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ConfigError(f"Cannot import engine module {module_path!r}: {e}") from e

    factory: Callable[[], HostEnvironment] | None = getattr(module, attribute, None)
    if factory is None or not callable(factory):
        raise ConfigError(f"{target} is not a callable factory")

    environment = factory()
    if not isinstance(environment, HostEnvironment):
        raise ConfigError(
            f"{target} returned {type(environment).__name__}, expected HostEnvironment"
        )

    logger.debug("host_environment_loaded", extra={"target": target})
    return environment
