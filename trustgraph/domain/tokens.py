"""
Verification Token Manager - Single-use, time-bounded proof of email ownership.

Token lifecycle:
    mint/issue  -> stored (replaces any earlier token for the same email)
    consume     -> deleted on success; account transitions to verified
    expiry      -> rejected at use time and purged lazily

Expiry is always decided by comparing the stored ``expires_at`` with the
current time when the token is used. ``sweep_expired`` only reclaims
storage; nothing depends on it running.

Only the SHA-256 digest of a token is stored. The plain secret is handed
back to the caller of ``mint``/``issue`` (for delivery) and never persisted.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from .credentials import normalize_email
from .models import IssuedToken, VerificationToken
from .ports import Clock, TokenCheck, VerificationTokenRepository, system_clock
from .result import FailureKind, Ok, Result, err

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(hours=24)

# 32 random bytes, url-safe base64 encoded (43 characters)
_TOKEN_BYTES = 32


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a plain token."""
    return hashlib.sha256(token.encode()).hexdigest()


@dataclass
class VerificationTokenManager:
    """Issues and consumes email verification tokens."""

    repository: VerificationTokenRepository
    ttl: timedelta = DEFAULT_TOKEN_TTL
    clock: Clock = system_clock

    def mint(self, email: str) -> IssuedToken:
        """
        Generate a token without storing it.

        Signup uses this so the token row can be written in the same
        transaction as the account row.
        """
        secret = secrets.token_urlsafe(_TOKEN_BYTES)
        issued_at = self.clock()
        record = VerificationToken(
            email=normalize_email(email),
            token_hash=hash_token(secret),
            issued_at=issued_at,
            expires_at=issued_at + self.ttl,
        )
        return IssuedToken(secret=secret, record=record)

    def issue(self, email: str) -> IssuedToken:
        """Generate and store a token, replacing any outstanding one for ``email``."""
        issued = self.mint(email)
        self.repository.upsert(issued.record)
        logger.info("Verification token issued for %s", issued.record.email)
        return issued

    def consume(self, email: str, presented_token: str) -> Result[None]:
        """
        Consume a token and mark the owning account verified.

        Both writes happen in one storage transaction, so a failure part way
        leaves the token in place. Wrong or missing tokens leave storage
        untouched. An expired token is purged. Every failure is reported as
        INVALID_OR_EXPIRED_TOKEN.
        """
        normalized_email = normalize_email(email)
        if not presented_token:
            return err(FailureKind.INVALID_OR_EXPIRED_TOKEN)

        check = self.repository.consume_and_verify(
            normalized_email, hash_token(presented_token), self.clock()
        )

        if check is TokenCheck.EXPIRED:
            logger.warning("Expired verification token purged for %s", normalized_email)
            return err(FailureKind.INVALID_OR_EXPIRED_TOKEN)
        if check is not TokenCheck.CONSUMED:
            return err(FailureKind.INVALID_OR_EXPIRED_TOKEN)

        logger.info("Email verified: %s", normalized_email)
        return Ok(None)

    def sweep_expired(self) -> int:
        """Delete every expired token. Storage reclamation only."""
        deleted = self.repository.delete_expired(self.clock())
        if deleted:
            logger.info("Swept %d expired verification token(s)", deleted)
        return deleted
