"""Permission-gated bridge to the AnkiDroid content API.

Public API:
- Dispatcher: routes named calls through the permission gate
- create_dispatcher: build and attach a Dispatcher for a host environment
- PermissionGate, PendingSlot: permission negotiation
- OPERATIONS: the fixed operation table
- Outcome: result of one dispatched call
"""

from ankibridge.bridge import create_dispatcher, load_environment
from ankibridge.dispatcher import BridgeState, Dispatcher
from ankibridge.errors import (
    BridgeError,
    BridgeNotAttached,
    ContractViolation,
    HostCallFailed,
    MediaAddFailed,
    PermissionDenied,
)
from ankibridge.host import HostEngine, HostEngineError, HostEnvironment, NoteRecord
from ankibridge.outcome import Outcome, OutcomeKind
from ankibridge.permissions import PendingSlot, PermissionGate
from ankibridge.registry import OPERATIONS, Operation
from ankibridge.staging import MediaCapability, MediaStager

__all__ = [
    "OPERATIONS",
    "BridgeError",
    "BridgeNotAttached",
    "BridgeState",
    "ContractViolation",
    "Dispatcher",
    "HostCallFailed",
    "HostEngine",
    "HostEngineError",
    "HostEnvironment",
    "MediaAddFailed",
    "MediaCapability",
    "MediaStager",
    "NoteRecord",
    "Operation",
    "Outcome",
    "OutcomeKind",
    "PendingSlot",
    "PermissionDenied",
    "PermissionGate",
    "create_dispatcher",
    "load_environment",
]
