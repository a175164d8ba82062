"""
Result type - Success value or typed failure for domain operations.

Every domain operation returns ``Ok(value)`` or ``Err(failure)`` instead of
raising for expected conditions (not found, conflict, bad credentials,
denied visibility). The failure kind is drawn from the closed
``FailureKind`` enum so callers can match on it exhaustively.

Infrastructure faults (database unreachable, etc.) are NOT part of this
taxonomy; they propagate as exceptions for the calling layer to translate.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, NoReturn, TypeVar, Union

from .exceptions import UnwrapError

T = TypeVar("T")


class FailureKind(str, Enum):
    """Closed taxonomy of expected domain failures."""

    EMAIL_ALREADY_REGISTERED = "email_already_registered"
    INVALID_INPUT = "invalid_input"
    USER_NOT_FOUND = "user_not_found"
    EMAIL_NOT_VERIFIED = "email_not_verified"
    INVALID_PASSWORD = "invalid_password"
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"
    MISSING_TOKEN = "missing_token"
    CANNOT_FOLLOW_SELF = "cannot_follow_self"
    ALREADY_FOLLOWING = "already_following"
    NOT_FOLLOWING = "not_following"
    UNAUTHORIZED = "unauthorized"
    DELIVERY_FAILED = "delivery_failed"


_DEFAULT_DETAILS = {
    FailureKind.EMAIL_ALREADY_REGISTERED: "Email is already registered",
    FailureKind.INVALID_INPUT: "Invalid input",
    FailureKind.USER_NOT_FOUND: "User not found",
    FailureKind.EMAIL_NOT_VERIFIED: "Email has not been verified",
    FailureKind.INVALID_PASSWORD: "Invalid password",
    FailureKind.INVALID_OR_EXPIRED_TOKEN: "Token is invalid or expired",
    FailureKind.MISSING_TOKEN: "Token is missing",
    FailureKind.CANNOT_FOLLOW_SELF: "Cannot follow yourself",
    FailureKind.ALREADY_FOLLOWING: "Already following this user",
    FailureKind.NOT_FOLLOWING: "Not following this user",
    FailureKind.UNAUTHORIZED: "This account is private",
    FailureKind.DELIVERY_FAILED: "Message delivery failed",
}


@dataclass(frozen=True)
class Failure:
    """A typed failure with a human-readable detail."""

    kind: FailureKind
    detail: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.detail}"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result carrying a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed result carrying a typed failure."""

    failure: Failure

    @property
    def kind(self) -> FailureKind:
        return self.failure.kind

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise UnwrapError(self.failure)


Result = Union[Ok[T], Err]


def err(kind: FailureKind, detail: str | None = None) -> Err:
    """Build an ``Err`` with the default detail for ``kind`` unless one is given."""
    return Err(Failure(kind=kind, detail=detail or _DEFAULT_DETAILS[kind]))
