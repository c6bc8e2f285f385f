"""Blocking client for the bridge channel."""

import itertools
import json
import os
import socket
import time
from pathlib import Path
from typing import Any

from ankibridge.config.paths import get_socket_path
from ankibridge.rpc.protocol import (
    ErrorCode,
    RPCRequest,
    RPCResponse,
    read_message_sync,
)

SOCKET_ENV = "ANKIBRIDGE_SOCKET"
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 0.5  # seconds


class ChannelError(Exception):
    """A call returned an error response."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data

    @property
    def bridge_code(self) -> str | None:
        """Stable bridge error code (e.g. "permission_denied"), if any."""
        if isinstance(self.data, dict):
            code = self.data.get("code")
            return code if isinstance(code, str) else None
        return None

    @property
    def not_implemented(self) -> bool:
        return self.code == ErrorCode.METHOD_NOT_FOUND


class BridgeClient:
    """Calls bridge operations over a Unix socket.

    Each call opens its own connection, so one client may be shared by
    sequential callers.
    """

    def __init__(
        self,
        socket_path: Path | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        if socket_path is None:
            env_path = os.environ.get(SOCKET_ENV)
            socket_path = Path(env_path) if env_path else get_socket_path()
        self._socket_path = socket_path
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._ids = itertools.count(1)

    def _connect(self) -> socket.socket:
        """Open a connection, retrying only while nothing has been sent."""
        last_error: OSError | None = None
        for attempt in range(self._max_retries + 1):
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.connect(str(self._socket_path))
            except OSError as e:
                sock.close()
                last_error = e
            else:
                return sock

            if attempt < self._max_retries:
                time.sleep(self._retry_delay)

        raise ConnectionError(
            f"Bridge connection failed after {self._max_retries + 1} attempts: {last_error}"
        )

    def call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Call ``method`` and return its result.

        A request is sent at most once. If the connection drops after sending,
        the bridge may or may not have run the call.

        Raises:
            ChannelError: If the bridge answered with an error.
            ConnectionError: If the bridge could not be reached after retries,
                or the connection dropped before a response arrived.
        """
        request = RPCRequest(method=method, params=dict(params or {}), id=next(self._ids))

        sock = self._connect()
        try:
            sock.sendall(request.to_bytes())
            data = read_message_sync(sock)
            if data is None:
                raise ConnectionError(f"Connection closed by bridge during {method}")
            response = RPCResponse.from_dict(json.loads(data))
        except json.JSONDecodeError as e:
            raise ConnectionError(f"Malformed response to {method}: {e}") from e
        except ConnectionError:
            raise
        except OSError as e:
            raise ConnectionError(f"Connection lost during {method}: {e}") from e
        finally:
            sock.close()

        if response.error:
            raise ChannelError(
                code=response.error.code,
                message=response.error.message,
                data=response.error.data,
            )
        return response.result

    def supports(self, method: str, params: dict[str, Any] | None = None) -> bool:
        """Probe whether the bridge implements ``method``.

        Any answer other than not-implemented counts as support.
        """
        try:
            self.call(method, params)
        except ChannelError as e:
            return not e.not_implemented
        return True
