"""
Domain entities and projections.

``Account`` is the storage-level record and carries the password hash; it
never leaves the Credential Store. Everything handed to callers is a
``PublicProfile`` projection.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Account:
    """Stored account record (internal to the Credential Store)."""

    id: str
    email: str
    password_hash: str
    created_at: datetime
    display_name: str | None = None
    bio: str | None = None
    username: str | None = None
    avatar_ref: str | None = None
    verified: bool = False
    private: bool = False

    def to_public(self) -> "PublicProfile":
        return PublicProfile(
            id=self.id,
            email=self.email,
            display_name=self.display_name,
            bio=self.bio,
            username=self.username,
            avatar_ref=self.avatar_ref,
            verified=self.verified,
            private=self.private,
            created_at=self.created_at,
        )


@dataclass(frozen=True)
class PublicProfile:
    """Account projection without credentials."""

    id: str
    email: str
    display_name: str | None
    bio: str | None
    username: str | None
    avatar_ref: str | None
    verified: bool
    private: bool
    created_at: datetime


@dataclass(frozen=True)
class ProfileUpdate:
    """
    Partial profile change.

    Only fields that are not ``None`` are applied. Clearing a field is done
    by passing an empty string.
    """

    display_name: str | None = None
    bio: str | None = None
    username: str | None = None
    avatar_ref: str | None = None

    def supplied(self) -> dict[str, str]:
        """Return the fields that were actually supplied."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass(frozen=True)
class VerificationToken:
    """Stored verification token. Only the SHA-256 hash of the secret is kept."""

    email: str
    token_hash: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class IssuedToken:
    """A freshly minted token: the plain secret plus the record to store."""

    secret: str
    record: VerificationToken


@dataclass(frozen=True)
class FollowEdge:
    """Directed follow relation: ``follower_id`` follows ``following_id``."""

    follower_id: str
    following_id: str
    created_at: datetime


@dataclass(frozen=True)
class SessionClaims:
    """Validated claims from a session token."""

    subject: str
    purpose: str
    issued_at: datetime
    expires_at: datetime
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SignupReceipt:
    """Outcome of a successful signup."""

    account: PublicProfile
    expires_at: datetime
    delivered: bool


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login."""

    account: PublicProfile
    access_token: str
