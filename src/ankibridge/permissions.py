"""Permission gate for access to the host database.

Two independent sources drive the gate: the dispatch path (check and
request, always on the event loop) and the OS permission callback, which may
arrive on any thread. The only shared mutable state is the single pending
resolver held by PendingSlot.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Sequence

from ankibridge.config.models import PermissionConfig
from ankibridge.host import PERMISSION_GRANTED, OsPermissions, UiContext

logger = logging.getLogger(__name__)

Resolver = Callable[[bool], None]


class PendingSlot:
    """Single-slot cell owning at most one outstanding resolver.

    A resolver is taken out of the slot under the lock before it is invoked,
    so it runs at most once no matter how many callbacks race for it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._resolver: Resolver | None = None

    def arm(self, resolver: Resolver) -> bool:
        """Store ``resolver``. Returns False if a resolver is already armed."""
        with self._lock:
            if self._resolver is not None:
                return False
            self._resolver = resolver
            return True

    def resolve(self, value: bool) -> bool:
        """Invoke and clear the armed resolver. Returns False if none was armed."""
        with self._lock:
            resolver, self._resolver = self._resolver, None
        if resolver is None:
            return False
        resolver(value)
        return True

    def abandon(self) -> bool:
        """Drop the armed resolver without invoking it."""
        with self._lock:
            resolver, self._resolver = self._resolver, None
        return resolver is not None

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._resolver is not None


def _future_resolver(
    loop: asyncio.AbstractEventLoop, future: asyncio.Future[bool]
) -> Resolver:
    def _set(value: bool) -> None:
        if not future.done():
            future.set_result(value)

    def _resolve(value: bool) -> None:
        loop.call_soon_threadsafe(_set, value)

    return _resolve


class PermissionGate:
    """Tracks and negotiates the one OS capability the bridge requires."""

    def __init__(
        self,
        permissions: OsPermissions,
        config: PermissionConfig | None = None,
    ) -> None:
        config = config or PermissionConfig()
        self._permissions = permissions
        self.permission_name = config.name
        self.request_code = config.request_code
        self._pending = PendingSlot()

    def check_granted(self) -> bool:
        """Query the current OS grant state. No side effects."""
        status = self._permissions.check_self_permission(self.permission_name)
        return status == PERMISSION_GRANTED

    async def request_granted(self, ui: UiContext | None) -> bool:
        """Ask the OS for the permission, prompting the user if needed.

        Returns immediately when access is already granted, without arming
        the pending slot. Returns False when there is no UI to host the
        prompt or another request is still waiting for its answer.
        """
        if self.check_granted():
            return True

        if ui is None:
            logger.warning(
                "permission_request_without_ui",
                extra={"permission": self.permission_name},
            )
            return False

        loop = asyncio.get_running_loop()
        future: asyncio.Future[bool] = loop.create_future()
        if not self._pending.arm(_future_resolver(loop, future)):
            logger.warning(
                "permission_request_already_pending",
                extra={"permission": self.permission_name},
            )
            return False

        try:
            self._permissions.request_permissions(
                ui, [self.permission_name], self.request_code
            )
        except Exception:
            self._pending.abandon()
            raise

        logger.info(
            "permission_prompt_shown",
            extra={"permission": self.permission_name, "ui": ui.name},
        )
        return await future

    def on_os_callback(
        self,
        request_code: int,
        permissions: Sequence[str],
        grant_results: Sequence[int],
    ) -> bool:
        """Handle an OS permission result. Safe to call from any thread.

        Returns True when the callback belongs to this gate. Callbacks with a
        different request code, or that do not mention our permission, are
        left for other consumers sharing the same host context.
        """
        if request_code != self.request_code:
            return False
        if self.permission_name not in permissions:
            return False

        index = list(permissions).index(self.permission_name)
        granted = (
            index < len(grant_results) and grant_results[index] == PERMISSION_GRANTED
        )

        if self._pending.resolve(granted):
            logger.info(
                "permission_request_resolved",
                extra={"permission": self.permission_name, "granted": granted},
            )
        else:
            logger.debug("permission_callback_without_pending_request")
        return True

    def abandon_pending(self) -> bool:
        """Forget an outstanding request, e.g. when its UI goes away."""
        abandoned = self._pending.abandon()
        if abandoned:
            logger.info(
                "permission_request_abandoned",
                extra={"permission": self.permission_name},
            )
        return abandoned

    @property
    def has_pending_request(self) -> bool:
        return self._pending.armed
