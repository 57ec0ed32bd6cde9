"""
Service result types.

Services never raise for expected failures. They return an ``Outcome`` whose
``kind`` tells the caller what happened; the HTTP layer maps each kind to a
single status code through ``STATUS_CODES``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class OutcomeKind(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    EXTERNAL_FAILURE = "external_failure"


STATUS_CODES: Dict[OutcomeKind, int] = {
    OutcomeKind.OK: 200,
    OutcomeKind.INVALID: 400,
    OutcomeKind.NOT_FOUND: 404,
    OutcomeKind.EXTERNAL_FAILURE: 500,
}

ERROR_CODES: Dict[OutcomeKind, str] = {
    OutcomeKind.INVALID: "VALIDATION_ERROR",
    OutcomeKind.NOT_FOUND: "NOT_FOUND",
    OutcomeKind.EXTERNAL_FAILURE: "EXTERNAL_SERVICE_ERROR",
}


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a service operation: a value, or a kind plus a user-facing message."""
    kind: OutcomeKind
    value: Optional[T] = None
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    @property
    def is_ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]

    @classmethod
    def ok(cls, value: T) -> "Outcome[T]":
        return cls(OutcomeKind.OK, value=value)

    @classmethod
    def invalid(cls, message: str, details: Optional[Dict[str, Any]] = None) -> "Outcome[T]":
        return cls(OutcomeKind.INVALID, message=message, details=details)

    @classmethod
    def not_found(cls, message: str) -> "Outcome[T]":
        return cls(OutcomeKind.NOT_FOUND, message=message)

    @classmethod
    def external_failure(cls, message: str) -> "Outcome[T]":
        return cls(OutcomeKind.EXTERNAL_FAILURE, message=message)
