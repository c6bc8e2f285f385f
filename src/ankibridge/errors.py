"""Bridge error taxonomy.

Every error carries a stable string ``code`` that survives the channel
boundary, so callers can branch on it without parsing messages.
"""

PERMISSION_DENIED = "permission_denied"
MEDIA_ADD_FAILED = "media_add_failed"
HOST_CALL_FAILED = "host_call_failed"
CONTRACT_VIOLATION = "contract_violation"

PERMISSION_DENIED_MESSAGE = (
    "Permission to use and modify AnkiDroid database not granted!"
)


class BridgeError(ValueError):
    """Bridge operation error with stable error code."""

    code = HOST_CALL_FAILED

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class PermissionDenied(BridgeError):
    """Access to the host database has not been granted."""

    code = PERMISSION_DENIED

    def __init__(self, message: str = PERMISSION_DENIED_MESSAGE) -> None:
        super().__init__(message)


class MediaAddFailed(BridgeError):
    """The host rejected a media payload."""

    code = MEDIA_ADD_FAILED


class HostCallFailed(BridgeError):
    """The host engine returned a failure for a well-formed request."""

    code = HOST_CALL_FAILED


class ContractViolation(BridgeError):
    """A known operation was called with missing or malformed arguments."""

    code = CONTRACT_VIOLATION

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class BridgeNotAttached(RuntimeError):
    """The dispatcher was used before being attached to a host engine."""
