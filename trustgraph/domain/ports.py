"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols by structural
subtyping; none of them inherit from the Protocol classes.

Uniqueness (email, username, follow pair, one token per email) is the
storage layer's job. Implementations must enforce it with constraints or
an atomic check-and-set, never with a separate read before the write.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol

from .models import Account, FollowEdge, VerificationToken
from .result import Result

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class WriteOutcome(Enum):
    """Outcome of a constrained storage write."""

    APPLIED = "applied"
    CONFLICT = "conflict"
    MISSING = "missing"


class TokenCheck(Enum):
    """
    Outcome of an atomic token consumption attempt.

    - CONSUMED: token matched and was live; the row has been deleted
    - MISMATCH: a live token exists but the presented value differs
    - EXPIRED: the stored token was past its expiry; it has been purged
    - MISSING: no token stored for the email
    """

    CONSUMED = "consumed"
    MISMATCH = "mismatch"
    EXPIRED = "expired"
    MISSING = "missing"


class PasswordHasher(Protocol):
    """Port interface for the slow password hashing primitive."""

    def hash(self, raw: str) -> str: ...

    def verify(self, raw: str, hashed: str) -> bool: ...

    def needs_rehash(self, hashed: str) -> bool:
        """True when ``hashed`` was produced with a weaker work factor than configured."""
        ...


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def insert(self, account: Account, token: VerificationToken | None = None) -> bool:
        """
        Atomically insert an account, and its verification token if given.

        Both rows are written in a single transaction so no reader ever
        observes one without the other.

        Returns:
            True if inserted, False if the email is already registered
        """
        ...

    def get_by_id(self, account_id: str) -> Account | None: ...

    def get_by_email(self, email: str) -> Account | None: ...

    def get_by_username(self, username: str) -> Account | None: ...

    def mark_verified(self, account_id: str) -> Account | None:
        """Set verified=True (no-op when already set). None if not found."""
        ...

    def update_profile(
        self, account_id: str, changes: dict[str, str | None]
    ) -> tuple[WriteOutcome, Account | None]:
        """
        Apply profile field changes.

        Returns:
            (APPLIED, account), (MISSING, None) or (CONFLICT, None) when the
            new username is already taken
        """
        ...

    def set_privacy(self, account_id: str, private: bool) -> Account | None: ...

    def update_password_hash(self, account_id: str, password_hash: str) -> None: ...


class VerificationTokenRepository(Protocol):
    """Port interface for verification token persistence."""

    def upsert(self, token: VerificationToken) -> None:
        """Store a token, replacing any existing token for the same email."""
        ...

    def get(self, email: str) -> VerificationToken | None: ...

    def consume_and_verify(self, email: str, token_hash: str, now: datetime) -> TokenCheck:
        """
        Atomically check the token for ``email`` and verify its account.

        On a match the token is deleted and the owning account is marked
        verified in the same transaction; if either write fails, neither is
        applied. Expiry is decided against ``now`` from the stored
        ``expires_at``. A mismatch leaves the row untouched; an expired row
        is deleted.
        """
        ...

    def delete_expired(self, now: datetime) -> int:
        """Delete all tokens expired at ``now``. Returns number deleted."""
        ...


class FollowRepository(Protocol):
    """Port interface for follow edge persistence."""

    def insert(self, edge: FollowEdge) -> WriteOutcome:
        """
        Insert an edge.

        Returns:
            APPLIED, CONFLICT if the pair already exists (including a
            concurrent insert), or MISSING if either account does not exist
        """
        ...

    def delete(self, follower_id: str, following_id: str) -> bool: ...

    def exists(self, follower_id: str, following_id: str) -> bool:
        """Point lookup on the unique (follower, following) index."""
        ...

    def followers_of(self, account_id: str) -> list[str]: ...

    def following_of(self, account_id: str) -> list[str]: ...


class EmailSender(Protocol):
    """Port interface for message delivery."""

    def send(self, address: str, subject: str, body: str) -> Result[None]:
        """
        Deliver a message.

        Returns:
            Ok(None) or Err(DELIVERY_FAILED)
        """
        ...
