"""Result<T> pattern — domain functions return this instead of raising exceptions for normal flow."""
from __future__ import annotations
from enum import Enum
from typing import TypeVar, Generic, Optional

T = TypeVar("T")


class ErrorCode(str, Enum):
    INVALID_ARGS = "invalid_args"
    NOT_FOUND = "not_found"
    FORBIDDEN_ACTOR = "forbidden_actor"
    FORBIDDEN = "forbidden"
    INVALID_TRANSITION = "invalid_transition"
    PUBLISHED_IMMUTABLE = "published_immutable"
    DUPLICATE_UPDATE = "duplicate_update"
    STORE_ERROR = "store_error"
    NOTIFICATION_ERROR = "notification_error"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"


class Result(Generic[T]):
    def __init__(
        self,
        is_success: bool,
        value: Optional[T] = None,
        error: Optional[str] = None,
        code: Optional[ErrorCode] = None,
    ):
        self.is_success = is_success
        self.value = value
        self.error = error
        self.code = code

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(is_success=True, value=value)

    @classmethod
    def fail(cls, code: ErrorCode, error: str) -> "Result[T]":
        return cls(is_success=False, error=error, code=code)

    @classmethod
    def from_failure(cls, other: "Result") -> "Result[T]":
        """Re-type a failed result so it can be returned from a caller with a different T."""
        return cls(is_success=False, error=other.error, code=other.code)

    def __repr__(self) -> str:
        if self.is_success:
            return f"Result.ok({self.value!r})"
        return f"Result.fail({self.code.value if self.code else None!r}, {self.error!r})"
