"""Channel between the calling application and the bridge.

Public API:
- ChannelServer: Unix socket server wrapping a Dispatcher
- BridgeClient: blocking client for single calls

Protocol:
- RPCRequest, RPCResponse: JSON-RPC 2.0 message types
- read_message, read_message_sync: Length-prefixed message I/O
"""

from ankibridge.rpc.client import BridgeClient, ChannelError
from ankibridge.rpc.protocol import (
    ErrorCode,
    RPCError,
    RPCRequest,
    RPCResponse,
    decode_value,
    encode_value,
    read_message,
    read_message_sync,
)
from ankibridge.rpc.server import ChannelServer, outcome_to_response

__all__ = [
    # Server
    "ChannelServer",
    "outcome_to_response",
    # Client
    "BridgeClient",
    "ChannelError",
    # Protocol
    "ErrorCode",
    "RPCError",
    "RPCRequest",
    "RPCResponse",
    "decode_value",
    "encode_value",
    "read_message",
    "read_message_sync",
]
