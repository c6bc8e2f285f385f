"""JSON-RPC 2.0 framing and value codec for the bridge channel.

Messages are JSON objects prefixed with a 4-byte big-endian length. JSON has
no byte strings, so ``bytes`` values travel as ``{"__bytes__": "<base64>"}``
and are restored on decode.
"""

import asyncio
import base64
import json
import struct
from dataclasses import dataclass, field
from typing import Any

from ankibridge.errors import (
    CONTRACT_VIOLATION,
    HOST_CALL_FAILED,
    MEDIA_ADD_FAILED,
    PERMISSION_DENIED,
)

MAX_MESSAGE_SIZE = 64 * 1024 * 1024
BYTES_TAG = "__bytes__"


class ErrorCode:
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    # Application range
    PERMISSION_DENIED = -32001
    MEDIA_ADD_FAILED = -32002
    HOST_CALL_FAILED = -32003


# Bridge error code -> JSON-RPC error code
BRIDGE_ERROR_CODES: dict[str, int] = {
    PERMISSION_DENIED: ErrorCode.PERMISSION_DENIED,
    MEDIA_ADD_FAILED: ErrorCode.MEDIA_ADD_FAILED,
    HOST_CALL_FAILED: ErrorCode.HOST_CALL_FAILED,
    CONTRACT_VIOLATION: ErrorCode.INVALID_PARAMS,
}


def encode_value(value: Any) -> Any:
    """Make ``value`` JSON-safe, tagging byte strings."""
    if isinstance(value, bytes | bytearray):
        return {BYTES_TAG: base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, dict):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [encode_value(v) for v in value]
    if isinstance(value, set | frozenset):
        return [encode_value(v) for v in sorted(value)]
    return value


def decode_value(value: Any) -> Any:
    """Inverse of encode_value."""
    if isinstance(value, dict):
        if set(value) == {BYTES_TAG} and isinstance(value[BYTES_TAG], str):
            return base64.b64decode(value[BYTES_TAG], validate=True)
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


def _frame(payload: dict[str, Any]) -> bytes:
    data = json.dumps(payload).encode()
    return struct.pack("!I", len(data)) + data


@dataclass
class RPCRequest:
    """JSON-RPC 2.0 request."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)
    id: int | str = 1
    jsonrpc: str = "2.0"

    def to_dict(self) -> dict[str, Any]:
        return {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "params": encode_value(self.params),
            "id": self.id,
        }

    def to_bytes(self) -> bytes:
        return _frame(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RPCRequest":
        params = data.get("params")
        return cls(
            method=data.get("method", ""),
            params=decode_value(params) if params is not None else {},
            id=data.get("id", 1),
            jsonrpc=data.get("jsonrpc", "2.0"),
        )


@dataclass
class RPCError:
    """JSON-RPC 2.0 error."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        d = {"code": self.code, "message": self.message}
        if self.data is not None:
            d["data"] = self.data
        return d


@dataclass
class RPCResponse:
    """JSON-RPC 2.0 response."""

    id: int | str | None
    result: Any = None
    error: RPCError | None = None
    jsonrpc: str = "2.0"

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            d["error"] = self.error.to_dict()
        else:
            d["result"] = encode_value(self.result)
        return d

    def to_bytes(self) -> bytes:
        return _frame(self.to_dict())

    @classmethod
    def success(cls, id: int | str | None, result: Any) -> "RPCResponse":
        return cls(id=id, result=result)

    @classmethod
    def error_response(
        cls, id: int | str | None, code: int, message: str, data: Any = None
    ) -> "RPCResponse":
        return cls(id=id, error=RPCError(code=code, message=message, data=data))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RPCResponse":
        error = None
        if "error" in data:
            err = data["error"]
            error = RPCError(
                code=err.get("code", ErrorCode.INTERNAL_ERROR),
                message=err.get("message", "Unknown error"),
                data=err.get("data"),
            )
        return cls(
            id=data.get("id"),
            result=decode_value(data.get("result")),
            error=error,
            jsonrpc=data.get("jsonrpc", "2.0"),
        )


async def read_message(reader: asyncio.StreamReader) -> bytes | None:
    """Read a length-prefixed message from an async reader.

    Returns None if connection closed.
    """
    try:
        length_bytes = await reader.readexactly(4)
    except asyncio.IncompleteReadError:
        return None

    length = struct.unpack("!I", length_bytes)[0]
    if length > MAX_MESSAGE_SIZE:
        raise ValueError(f"Message too large: {length}")

    try:
        return await reader.readexactly(length)
    except asyncio.IncompleteReadError:
        return None


def _recv_exactly(sock, size: int) -> bytes | None:  # noqa: ANN001
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            return None
        data += chunk
    return data


def read_message_sync(sock) -> bytes | None:  # noqa: ANN001
    """Read a length-prefixed message from a blocking socket.

    Returns None if connection closed.
    """
    length_bytes = _recv_exactly(sock, 4)
    if length_bytes is None:
        return None

    length = struct.unpack("!I", length_bytes)[0]
    if length > MAX_MESSAGE_SIZE:
        raise ValueError(f"Message too large: {length}")

    return _recv_exactly(sock, length)
