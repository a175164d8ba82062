"""
Domain layer - Pure business logic with zero framework imports.

This package contains the identity and access-control core: credentials,
email verification tokens, sessions, the follow graph and the visibility
rule. It defines its own port interfaces for infrastructure abstraction;
storage and delivery live in ``trustgraph.adapters``.
"""

from .credentials import BcryptPasswordHasher, CredentialStore, normalize_email
from .exceptions import ConfigurationError, TrustgraphError, UnwrapError
from .follows import FollowGraph
from .identity import IdentityService
from .models import (
    Account,
    FollowEdge,
    IssuedToken,
    LoginResult,
    ProfileUpdate,
    PublicProfile,
    SessionClaims,
    SignupReceipt,
    VerificationToken,
)
from .ports import (
    AccountRepository,
    EmailSender,
    FollowRepository,
    PasswordHasher,
    TokenCheck,
    VerificationTokenRepository,
    WriteOutcome,
)
from .result import Err, Failure, FailureKind, Ok, Result, err
from .sessions import SessionIssuer
from .tokens import VerificationTokenManager
from .visibility import VisibilityAuthorizer

__all__ = [
    "Account",
    "AccountRepository",
    "BcryptPasswordHasher",
    "ConfigurationError",
    "CredentialStore",
    "EmailSender",
    "Err",
    "Failure",
    "FailureKind",
    "FollowEdge",
    "FollowGraph",
    "FollowRepository",
    "IdentityService",
    "IssuedToken",
    "LoginResult",
    "Ok",
    "PasswordHasher",
    "ProfileUpdate",
    "PublicProfile",
    "Result",
    "SessionClaims",
    "SessionIssuer",
    "SignupReceipt",
    "TokenCheck",
    "TrustgraphError",
    "UnwrapError",
    "VerificationToken",
    "VerificationTokenManager",
    "VerificationTokenRepository",
    "VisibilityAuthorizer",
    "WriteOutcome",
    "err",
    "normalize_email",
]
