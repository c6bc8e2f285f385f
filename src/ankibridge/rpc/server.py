"""Unix domain socket channel server."""

import asyncio
import json
import logging
from pathlib import Path

from ankibridge.dispatcher import Dispatcher
from ankibridge.errors import CONTRACT_VIOLATION, BridgeNotAttached, ContractViolation
from ankibridge.outcome import Outcome, OutcomeKind
from ankibridge.rpc.protocol import (
    BRIDGE_ERROR_CODES,
    ErrorCode,
    RPCRequest,
    RPCResponse,
    read_message,
)

logger = logging.getLogger(__name__)


def outcome_to_response(request_id: int | str | None, outcome: Outcome) -> RPCResponse:
    """Translate a dispatch outcome into a JSON-RPC response."""
    if outcome.kind is OutcomeKind.SUCCESS:
        return RPCResponse.success(request_id, outcome.value)
    if outcome.kind is OutcomeKind.NOT_IMPLEMENTED:
        return RPCResponse.error_response(
            request_id,
            ErrorCode.METHOD_NOT_FOUND,
            "Not implemented",
            {"code": "not_implemented"},
        )
    code = outcome.code or ""
    return RPCResponse.error_response(
        request_id,
        BRIDGE_ERROR_CODES.get(code, ErrorCode.INTERNAL_ERROR),
        outcome.message or code,
        {"code": code},
    )


class ChannelServer:
    """Serves a Dispatcher over a Unix socket using JSON-RPC 2.0.

    Requests on one connection are handled strictly in order; a connection
    is the caller's session.
    """

    def __init__(self, socket_path: Path, dispatcher: Dispatcher):
        self._socket_path = socket_path
        self._dispatcher = dispatcher
        self._server: asyncio.Server | None = None
        self._running = False

    async def start(self) -> None:
        self._socket_path.parent.mkdir(parents=True, exist_ok=True)

        # Remove stale socket
        self._socket_path.unlink(missing_ok=True)

        self._server = await asyncio.start_unix_server(
            self._handle_connection,
            path=str(self._socket_path),
        )

        # Owner only
        self._socket_path.chmod(0o600)

        self._running = True
        logger.info("channel_started", extra={"socket": str(self._socket_path)})

    async def stop(self) -> None:
        self._running = False

        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

        self._socket_path.unlink(missing_ok=True)

        logger.info("channel_stopped")

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        try:
            while self._running:
                data = await read_message(reader)
                if data is None:
                    break

                response = await self.process_request(data)

                writer.write(response.to_bytes())
                await writer.drain()

        except (ConnectionError, ValueError):
            logger.warning("channel_connection_dropped", exc_info=True)
        except Exception:
            logger.exception("Error handling channel connection")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass

    async def process_request(self, data: bytes) -> RPCResponse:
        """Process a single framed request payload."""
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            return RPCResponse.error_response(
                None, ErrorCode.PARSE_ERROR, f"Parse error: {e}"
            )

        if not isinstance(payload, dict):
            return RPCResponse.error_response(
                None, ErrorCode.INVALID_REQUEST, "Request must be an object"
            )

        try:
            request = RPCRequest.from_dict(payload)
        except ValueError as e:
            return RPCResponse.error_response(
                payload.get("id"), ErrorCode.PARSE_ERROR, f"Parse error: {e}"
            )
        request_id = request.id

        if request.jsonrpc != "2.0":
            return RPCResponse.error_response(
                request_id, ErrorCode.INVALID_REQUEST, "Invalid JSON-RPC version"
            )

        if not request.method:
            return RPCResponse.error_response(
                request_id, ErrorCode.INVALID_REQUEST, "Missing method"
            )

        if not isinstance(request.params, dict):
            return RPCResponse.error_response(
                request_id, ErrorCode.INVALID_PARAMS, "Params must be an object"
            )

        try:
            outcome = await self._dispatcher.dispatch(request.method, request.params)
        except ContractViolation as e:
            return RPCResponse.error_response(
                request_id,
                ErrorCode.INVALID_PARAMS,
                f"Invalid params: {e}",
                {"code": CONTRACT_VIOLATION},
            )
        except BridgeNotAttached as e:
            return RPCResponse.error_response(
                request_id, ErrorCode.INTERNAL_ERROR, str(e)
            )
        except Exception as e:
            logger.exception("channel_method_error", extra={"method": request.method})
            return RPCResponse.error_response(
                request_id, ErrorCode.INTERNAL_ERROR, str(e)
            )

        return outcome_to_response(request_id, outcome)

    @property
    def socket_path(self) -> Path:
        return self._socket_path

    @property
    def is_running(self) -> bool:
        return self._running
