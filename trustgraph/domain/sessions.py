"""
Session Issuer - Signed, tamper-evident session tokens.

Tokens are JWTs carrying ``sub`` (account id), ``purpose``, ``iat``,
``exp``, ``iss`` and ``aud``. The purpose is part of the signed payload and
checked on every validation, so a token minted for any other purpose is
never accepted as a session.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from .exceptions import ConfigurationError
from .models import SessionClaims
from .ports import Clock, system_clock
from .result import FailureKind, Ok, Result, err

logger = logging.getLogger(__name__)

SESSION_PURPOSE = "session"

_RESERVED_CLAIMS = frozenset({"sub", "purpose", "iat", "exp", "iss", "aud", "nbf", "jti"})
_SYMMETRIC_PREFIX = "HS"
_MIN_SECRET_BYTES = 32


@dataclass
class SessionIssuer:
    """
    Mints and validates session tokens.

    ``signing_key`` is the HMAC secret for HS* algorithms, or the private
    key for asymmetric ones, in which case ``verify_key`` must hold the
    public key.
    """

    signing_key: str
    algorithm: str = "HS256"
    verify_key: str | None = None
    ttl: timedelta = timedelta(hours=1)
    issuer: str = "trustgraph"
    audience: str = "trustgraph"
    clock: Clock = system_clock

    def __post_init__(self) -> None:
        if not self.signing_key:
            raise ConfigurationError("Session signing key is not configured")
        if self.verify_key is None:
            if not self.algorithm.startswith(_SYMMETRIC_PREFIX):
                raise ConfigurationError(f"{self.algorithm} requires a separate verify key")
            self.verify_key = self.signing_key
        symmetric = self.algorithm.startswith(_SYMMETRIC_PREFIX)
        if symmetric and len(self.signing_key.encode()) < _MIN_SECRET_BYTES:
            raise ConfigurationError(f"Session secret must be at least {_MIN_SECRET_BYTES} bytes")

    def issue(self, account_id: str, claims: dict[str, Any] | None = None) -> str:
        """
        Create a signed session token for ``account_id``.

        Args:
            account_id: Subject of the token
            claims: Extra claims; reserved claim names are ignored

        Returns:
            Encoded JWT string
        """
        return self._encode(account_id, SESSION_PURPOSE, self.ttl, claims)

    def validate(self, presented_token: str | None) -> Result[SessionClaims]:
        """
        Verify signature, expiry, issuer, audience and purpose.

        Returns:
            Ok(claims), Err(MISSING_TOKEN) for an empty token, or
            Err(INVALID_OR_EXPIRED_TOKEN) for anything else that fails
        """
        if not presented_token:
            return err(FailureKind.MISSING_TOKEN)

        try:
            payload = jwt.decode(
                presented_token,
                self.verify_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "require": ["sub", "purpose", "iat", "exp"],
                    # Time claims are checked below against the issuer's clock
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError:
            logger.debug("Rejected session token with invalid signature or claims")
            return err(FailureKind.INVALID_OR_EXPIRED_TOKEN)

        issued_at, expires_at = payload["iat"], payload["exp"]
        if not all(isinstance(v, (int, float)) for v in (issued_at, expires_at)):
            return err(FailureKind.INVALID_OR_EXPIRED_TOKEN)
        now = self.clock().timestamp()
        if expires_at <= now:
            return err(FailureKind.INVALID_OR_EXPIRED_TOKEN, "Session has expired")
        if issued_at > now:
            return err(FailureKind.INVALID_OR_EXPIRED_TOKEN, "Session issued in the future")

        if payload["purpose"] != SESSION_PURPOSE:
            return err(FailureKind.INVALID_OR_EXPIRED_TOKEN, "Token was not issued as a session")

        return Ok(
            SessionClaims(
                subject=payload["sub"],
                purpose=payload["purpose"],
                issued_at=datetime.fromtimestamp(issued_at, UTC),
                expires_at=datetime.fromtimestamp(expires_at, UTC),
                extra={k: v for k, v in payload.items() if k not in _RESERVED_CLAIMS},
            )
        )

    def _encode(
        self,
        subject: str,
        purpose: str,
        ttl: timedelta,
        claims: dict[str, Any] | None,
    ) -> str:
        now = self.clock()
        payload = {k: v for k, v in (claims or {}).items() if k not in _RESERVED_CLAIMS}
        payload.update(
            {
                "sub": subject,
                "purpose": purpose,
                "iss": self.issuer,
                "aud": self.audience,
                "iat": now,
                "exp": now + ttl,
            }
        )
        return jwt.encode(payload, self.signing_key, algorithm=self.algorithm)
