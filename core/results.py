"""Uniform result values returned by every core operation.

Expected, user-facing outcomes (bad code, repeat answer, no tokens, no prizes
left) come back as `Err`; only infrastructure faults are raised.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from pydantic import ValidationError

T = TypeVar("T")


class ErrorKind(str, Enum):
    INVALID_CODE = "invalid_code"
    ALREADY_ANSWERED = "already_answered"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    NO_REWARDS_AVAILABLE = "no_rewards_available"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"


class InsufficientBalanceError(ValueError):
    """Raised by the token ledger when a debit would take a balance below zero."""

    def __init__(self, balance: int, requested: int):
        super().__init__(
            f"Insufficient balance. Current: {balance}, Attempted: {requested}"
        )
        self.balance = balance
        self.requested = requested


def to_plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {k: to_plain(v) for k, v in dataclasses.asdict(value).items()}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_plain(v) for v in value]
    return value


@dataclass(frozen=True)
class Ok(Generic[T]):
    data: T = None
    success = True

    def to_dict(self) -> dict:
        return {"success": True, "data": to_plain(self.data)}


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    success = False

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, "kind": self.kind.value}


Result = Union[Ok[T], Err]


def not_found(what: str) -> Err:
    return Err(ErrorKind.NOT_FOUND, f"{what} not found")


def validation_error(exc: Union[ValidationError, str]) -> Err:
    """Short, participant-safe reason from a pydantic error or plain message."""
    if isinstance(exc, str):
        return Err(ErrorKind.VALIDATION_ERROR, exc)
    first = exc.errors()[0] if exc.errors() else {"loc": (), "msg": "Invalid input"}
    loc = ".".join(str(part) for part in first.get("loc", ()))
    msg = first.get("msg", "Invalid input")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return Err(ErrorKind.VALIDATION_ERROR, f"{loc}: {msg}" if loc else msg)
