"""Dispatcher: the single entry point for calls crossing the bridge."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from ankibridge.errors import (
    BridgeError,
    BridgeNotAttached,
    ContractViolation,
    PermissionDenied,
)
from ankibridge.host import HostEngine, UiContext
from ankibridge.outcome import Outcome
from ankibridge.permissions import PermissionGate
from ankibridge.registry import OPERATIONS, Operation, OperationContext
from ankibridge.staging import MediaStager

logger = logging.getLogger(__name__)

CHECK_PERMISSION = "checkPermission"
# The wire name carries a historical misspelling that callers depend on
REQUEST_PERMISSION = "requestPremission"
REQUEST_PERMISSION_ALIASES = frozenset({REQUEST_PERMISSION, "requestPermission"})


class BridgeState(str, Enum):
    UNATTACHED = "unattached"
    ATTACHED = "attached"
    ATTACHED_UI = "attached_ui"


class Dispatcher:
    """Routes named calls through the permission gate to host operations.

    A Dispatcher is attached to a host engine and may gain and lose a UI
    context over its lifetime. Every channel connection shares it, so calls
    from different connections can interleave; each addMedia call stages its
    payload in its own directory.
    """

    def __init__(
        self,
        gate: PermissionGate,
        stager: MediaStager,
        operations: Mapping[str, Operation] = OPERATIONS,
    ) -> None:
        self._gate = gate
        self._stager = stager
        self._operations = operations
        self._engine: HostEngine | None = None
        self._ui: UiContext | None = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def state(self) -> BridgeState:
        if self._engine is None:
            return BridgeState.UNATTACHED
        if self._ui is None:
            return BridgeState.ATTACHED
        return BridgeState.ATTACHED_UI

    @property
    def gate(self) -> PermissionGate:
        return self._gate

    def attach(self, engine: HostEngine) -> None:
        self._engine = engine
        logger.info("bridge_attached")

    def attach_ui(self, ui: UiContext) -> None:
        if self._engine is None:
            raise BridgeNotAttached("cannot attach a UI before a host engine")
        self._ui = ui
        logger.info("ui_attached", extra={"ui": ui.name})

    def detach_ui(self) -> None:
        """Drop the UI context; a pending permission request is abandoned."""
        self._ui = None
        self._gate.abandon_pending()
        logger.info("ui_detached")

    def detach(self) -> None:
        if self._ui is not None:
            self.detach_ui()
        self._engine = None
        leftovers = self._stager.cleanup()
        logger.info("bridge_detached", extra={"staged_leftovers": leftovers})

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def dispatch(self, name: str, args: Mapping[str, Any] | None = None) -> Outcome:
        """Handle one call.

        Returns:
            An Outcome: success, a typed error, or not-implemented.

        Raises:
            ContractViolation: If a known operation gets malformed arguments.
            BridgeNotAttached: If no host engine is attached.
        """
        if self._engine is None:
            raise BridgeNotAttached(f"cannot dispatch {name!r}: no host engine")

        if name == CHECK_PERMISSION:
            return Outcome.success(self._gate.check_granted())
        if name in REQUEST_PERMISSION_ALIASES:
            return Outcome.success(await self._gate.request_granted(self._ui))

        if not self._gate.check_granted():
            logger.info("call_denied", extra={"operation": name})
            return Outcome.from_error(PermissionDenied())

        operation = self._operations.get(name)
        if operation is None:
            logger.debug("operation_not_implemented", extra={"operation": name})
            return Outcome.not_implemented()

        context = OperationContext(engine=self._engine, stager=self._stager)
        try:
            value = await operation.run(context, args or {})
        except ContractViolation:
            raise
        except BridgeError as e:
            logger.warning(
                "operation_failed",
                extra={"operation": name, "code": e.code, "error": e.message},
            )
            return Outcome.from_error(e)

        logger.debug("operation_succeeded", extra={"operation": name})
        return Outcome.success(value)

    @property
    def operation_names(self) -> list[str]:
        return sorted(self._operations)
