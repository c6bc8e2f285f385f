"""Typed result of a single dispatched call."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ankibridge.errors import BridgeError


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    NOT_IMPLEMENTED = "not_implemented"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Value, failure, or "not implemented" answer for one call.

    Mirrors the three ways a platform method channel can answer: ``success``
    with a value, ``error`` with a code and message, or ``not_implemented``
    for names this bridge does not know.
    """

    kind: OutcomeKind
    value: Any = None
    code: str | None = None
    message: str | None = None

    @classmethod
    def success(cls, value: Any) -> Outcome:
        return cls(kind=OutcomeKind.SUCCESS, value=value)

    @classmethod
    def error(cls, code: str, message: str) -> Outcome:
        return cls(kind=OutcomeKind.ERROR, code=code, message=message)

    @classmethod
    def from_error(cls, exc: BridgeError) -> Outcome:
        return cls.error(exc.code, exc.message)

    @classmethod
    def not_implemented(cls) -> Outcome:
        return cls(kind=OutcomeKind.NOT_IMPLEMENTED)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"kind": self.kind.value}
        if self.kind is OutcomeKind.SUCCESS:
            d["value"] = self.value
        elif self.kind is OutcomeKind.ERROR:
            d["code"] = self.code
            d["message"] = self.message
        return d
