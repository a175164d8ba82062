"""
Credential Store - Account identity and password verification.

Owns account records and is the only component that reads or writes
password hashes. Everything returned to callers is a ``PublicProfile``.

Login check order (deterministic error precedence):
    1. account exists           -> else USER_NOT_FOUND
    2. account is verified      -> else EMAIL_NOT_VERIFIED
    3. password matches hash    -> else INVALID_PASSWORD

No syntax validation runs before the existence check, so an unknown email
always yields USER_NOT_FOUND whatever the password looks like.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from functools import cached_property

import bcrypt
from email_validator import EmailNotValidError, validate_email

from .models import Account, ProfileUpdate, PublicProfile, VerificationToken
from .ports import AccountRepository, Clock, PasswordHasher, WriteOutcome, system_clock
from .result import FailureKind, Ok, Result, err

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of the password
BCRYPT_MAX_PASSWORD_BYTES = 72

_USERNAME_PATTERN = re.compile(r"^[a-z0-9_.]{3,30}$")
_MAX_FIELD_LENGTHS = {"display_name": 255, "avatar_ref": 255, "bio": 2000}


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


class BcryptPasswordHasher:
    """
    Implements PasswordHasher protocol via bcrypt.

    The work factor is configurable; hashes created with a lower cost
    are reported by ``needs_rehash`` so they can be upgraded on login.
    """

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds

    def hash(self, raw: str) -> str:
        return bcrypt.hashpw(raw.encode(), bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, raw: str, hashed: str) -> bool:
        password = raw.encode()
        if len(password) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(password, hashed.encode())
        except ValueError:
            # Malformed stored hash
            return False

    def needs_rehash(self, hashed: str) -> bool:
        # bcrypt format: $2b$XX$... where XX is cost factor
        try:
            cost = int(hashed.split("$")[2])
        except (IndexError, ValueError):
            return False
        return cost < self.rounds

    @cached_property
    def dummy_hash(self) -> str:
        """Hash compared against when an account is missing, to keep timing uniform."""
        return self.hash("dummy_password_for_timing_safety")


@dataclass
class CredentialStore:
    """
    Domain component for account records and credentials.

    Uniqueness of email and username is delegated to the repository,
    which enforces it with storage constraints.
    """

    repository: AccountRepository
    hasher: PasswordHasher = field(default_factory=BcryptPasswordHasher)
    clock: Clock = system_clock
    password_min_length: int = 6

    def create_account(
        self,
        email: str,
        raw_password: str,
        display_name: str | None = None,
        pending_token: VerificationToken | None = None,
    ) -> Result[PublicProfile]:
        """
        Create an unverified account.

        Args:
            email: User's email address (will be normalized)
            raw_password: Plaintext password (will be hashed)
            display_name: Optional display name
            pending_token: Verification token persisted in the same transaction

        Returns:
            Ok(profile), or Err with INVALID_INPUT / EMAIL_ALREADY_REGISTERED
        """
        normalized_email = normalize_email(email)

        problem = self._validate_email(normalized_email) or self._validate_password(raw_password)
        if problem is not None:
            return err(FailureKind.INVALID_INPUT, problem)
        if display_name is not None:
            display_name = display_name.strip() or None
            if display_name is not None and len(display_name) > _MAX_FIELD_LENGTHS["display_name"]:
                return err(FailureKind.INVALID_INPUT, "display_name: too long")

        if pending_token is not None and pending_token.email != normalized_email:
            raise ValueError("pending token was minted for a different email")

        account = Account(
            id=str(uuid.uuid4()),
            email=normalized_email,
            password_hash=self.hasher.hash(raw_password),
            created_at=self.clock(),
            display_name=display_name,
        )

        if not self.repository.insert(account, pending_token):
            return err(FailureKind.EMAIL_ALREADY_REGISTERED)

        logger.info("Account created: %s (%s)", account.id, normalized_email)
        return Ok(account.to_public())

    def verify_password(self, email: str, raw_password: str) -> Result[PublicProfile]:
        """
        Check login credentials.

        Returns:
            Ok(profile), or Err with USER_NOT_FOUND / EMAIL_NOT_VERIFIED /
            INVALID_PASSWORD, checked in that order
        """
        account = self.repository.get_by_email(normalize_email(email))
        if account is None:
            self._burn_dummy_comparison(raw_password)
            return err(FailureKind.USER_NOT_FOUND)

        if not account.verified:
            return err(FailureKind.EMAIL_NOT_VERIFIED)

        if not self.hasher.verify(raw_password, account.password_hash):
            return err(FailureKind.INVALID_PASSWORD)

        if self.hasher.needs_rehash(account.password_hash):
            self.repository.update_password_hash(account.id, self.hasher.hash(raw_password))
            logger.info("Password hash upgraded to current work factor: %s", account.id)

        return Ok(account.to_public())

    def mark_verified(self, account_id: str) -> Result[PublicProfile]:
        """Set verified=True. Idempotent: an already verified account is left as is."""
        account = self.repository.mark_verified(account_id)
        if account is None:
            return err(FailureKind.USER_NOT_FOUND)
        logger.info("Account verified: %s", account_id)
        return Ok(account.to_public())

    def update_profile(self, account_id: str, changes: ProfileUpdate) -> Result[PublicProfile]:
        """
        Apply only the supplied profile fields.

        An update with no supplied fields is rejected as INVALID_INPUT.
        Username uniqueness is re-checked by the storage constraint.
        """
        supplied = changes.supplied()
        if not supplied:
            return err(FailureKind.INVALID_INPUT, "At least one field must be supplied")

        cleaned: dict[str, str | None] = {}
        for name, value in supplied.items():
            value = value.strip()
            if name == "username":
                value = value.lower()
                if value and not _USERNAME_PATTERN.match(value):
                    return err(
                        FailureKind.INVALID_INPUT,
                        "username: 3-30 characters of letters, digits, '_' or '.'",
                    )
            elif len(value) > _MAX_FIELD_LENGTHS[name]:
                return err(FailureKind.INVALID_INPUT, f"{name}: too long")
            cleaned[name] = value or None

        outcome, account = self.repository.update_profile(account_id, cleaned)
        if outcome is WriteOutcome.MISSING:
            return err(FailureKind.USER_NOT_FOUND)
        if outcome is WriteOutcome.CONFLICT:
            return err(FailureKind.INVALID_INPUT, "username: already taken")
        return Ok(account.to_public())

    def set_privacy(self, account_id: str, is_private: bool) -> Result[PublicProfile]:
        """Set the privacy flag to exactly ``is_private``."""
        account = self.repository.set_privacy(account_id, is_private)
        if account is None:
            return err(FailureKind.USER_NOT_FOUND)
        return Ok(account.to_public())

    def find_by_id(self, account_id: str) -> Result[PublicProfile]:
        account = self.repository.get_by_id(account_id)
        if account is None:
            return err(FailureKind.USER_NOT_FOUND)
        return Ok(account.to_public())

    def find_by_username(self, username: str) -> Result[PublicProfile]:
        username = username.strip().lower()
        if not username:
            return err(FailureKind.USER_NOT_FOUND)
        account = self.repository.get_by_username(username)
        if account is None:
            return err(FailureKind.USER_NOT_FOUND)
        return Ok(account.to_public())

    def find_by_email(self, email: str) -> Result[PublicProfile]:
        account = self.repository.get_by_email(normalize_email(email))
        if account is None:
            return err(FailureKind.USER_NOT_FOUND)
        return Ok(account.to_public())

    def _validate_email(self, email: str) -> str | None:
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            return f"email: {e}"
        return None

    def _validate_password(self, raw_password: str) -> str | None:
        if len(raw_password) < self.password_min_length:
            return f"password: must be at least {self.password_min_length} characters"
        if len(raw_password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
            return f"password: must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
        return None

    def _burn_dummy_comparison(self, raw_password: str) -> None:
        dummy_hash = getattr(self.hasher, "dummy_hash", None)
        if dummy_hash is not None:
            self.hasher.verify(raw_password, dummy_hash)
