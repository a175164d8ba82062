"""
Identity service - Signup, verification and login flows.

Account verification state machine (forward-only):

    Unverified --consume(valid token)--> Verified

Verified is terminal. Login is only reachable from Verified.

Signup writes the account and its verification token in one storage
transaction. The verification message is sent after commit on a best-effort
basis: a delivery failure is logged, the signup still succeeds, and the user
can ask for a new token with ``resend_verification``.
"""

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

from .credentials import CredentialStore, normalize_email
from .models import LoginResult, PublicProfile, SessionClaims, SignupReceipt
from .ports import EmailSender
from .result import FailureKind, Ok, Result, err
from .sessions import SessionIssuer
from .tokens import VerificationTokenManager

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Verify your email address"


@dataclass
class IdentityService:
    """
    Domain service orchestrating the identity flows.

    Wires the Credential Store, Token Manager, Session Issuer and the
    email sender together; contains no storage logic of its own.
    """

    credentials: CredentialStore
    tokens: VerificationTokenManager
    sessions: SessionIssuer
    email_sender: EmailSender
    verification_url: str = "http://localhost:8000/v1/verify"

    def signup(
        self, email: str, password: str, display_name: str | None = None
    ) -> Result[SignupReceipt]:
        """
        Create an unverified account and send its verification token.

        Returns:
            Ok(receipt), or Err with INVALID_INPUT / EMAIL_ALREADY_REGISTERED
        """
        normalized_email = normalize_email(email)
        issued = self.tokens.mint(normalized_email)

        created = self.credentials.create_account(
            normalized_email, password, display_name, pending_token=issued.record
        )
        if created.is_err():
            return created

        delivered = self._send_verification(normalized_email, issued.secret)
        return Ok(
            SignupReceipt(
                account=created.value,
                expires_at=issued.record.expires_at,
                delivered=delivered,
            )
        )

    def verify_email(self, email: str, token: str) -> Result[PublicProfile]:
        """Consume a verification token; on success return the verified profile."""
        consumed = self.tokens.consume(email, token)
        if consumed.is_err():
            return consumed
        return self.credentials.find_by_email(email)

    def resend_verification(self, email: str) -> Result[None]:
        """
        Replace the outstanding token for an unverified account and send it.

        Returns:
            Ok(None), Err(USER_NOT_FOUND), Err(INVALID_INPUT) when the account
            is already verified, or Err(DELIVERY_FAILED)
        """
        account = self.credentials.find_by_email(email)
        if account.is_err():
            return account
        if account.value.verified:
            return err(FailureKind.INVALID_INPUT, "Email is already verified")

        issued = self.tokens.issue(account.value.email)
        if not self._send_verification(account.value.email, issued.secret):
            return err(FailureKind.DELIVERY_FAILED)
        return Ok(None)

    def login(self, email: str, password: str) -> Result[LoginResult]:
        """
        Check credentials and mint a session token.

        Returns:
            Ok(LoginResult), or Err with USER_NOT_FOUND / EMAIL_NOT_VERIFIED /
            INVALID_PASSWORD
        """
        checked = self.credentials.verify_password(email, password)
        if checked.is_err():
            return checked

        account = checked.value
        access_token = self.sessions.issue(account.id, {"email": account.email})
        logger.info("Login succeeded: %s", account.id)
        return Ok(LoginResult(account=account, access_token=access_token))

    def authenticate(self, token: str | None) -> Result[SessionClaims]:
        """Validate a presented session token."""
        return self.sessions.validate(token)

    def _send_verification(self, email: str, secret: str) -> bool:
        link = f"{self.verification_url}?{urlencode({'email': email, 'token': secret})}"
        body = (
            "Use the link below to verify your email address:\n\n"
            f"{link}\n\n"
            f"Or enter this code: {secret}\n"
        )
        sent = self.email_sender.send(email, VERIFICATION_SUBJECT, body)
        if sent.is_err():
            logger.warning("Verification email to %s failed: %s", email, sent.failure.detail)
            return False
        return True
