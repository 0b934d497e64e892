"""
auth/result.py -- Explicit success/failure values for session operations.

Every SessionManager operation returns Ok(value) or Err(kind, message) instead
of raising. Rejections are ordinary outcomes of these operations (bad password,
reused refresh token), not exceptional conditions, so they travel by return
value. The route layer maps ErrorKind to HTTP status codes; nothing in auth/
knows about HTTP.

Messages are user-facing. They never include stack traces, hashes, tokens or
secret material.

Layer rule: no imports from api/, core/ or media/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Stable, machine-checkable rejection kinds."""

    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    WEAK_CREDENTIAL = "weak_credential"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    UPLOAD_FAILED = "upload_failed"
    INTERNAL = "internal"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
