"""
FastAPI dependencies - Dependency injection factories.

The domain object graph is built once at startup by ``build_components``
and kept on ``app.state``; the Depends() factories below hand out its parts.
"""

from dataclasses import dataclass
from datetime import timedelta

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from trustgraph.adapters.repository.memory import (
    InMemoryAccountRepository,
    InMemoryFollowRepository,
    InMemoryVerificationTokenRepository,
    MemoryDatabase,
)
from trustgraph.adapters.repository.postgres import (
    PostgresAccountRepository,
    PostgresFollowRepository,
    PostgresVerificationTokenRepository,
)
from trustgraph.adapters.smtp.console import ConsoleEmailSender
from trustgraph.api.errors import failure_to_http
from trustgraph.config.settings import Settings
from trustgraph.domain.credentials import BcryptPasswordHasher, CredentialStore
from trustgraph.domain.exceptions import ConfigurationError
from trustgraph.domain.follows import FollowGraph
from trustgraph.domain.identity import IdentityService
from trustgraph.domain.sessions import SessionIssuer
from trustgraph.domain.tokens import VerificationTokenManager
from trustgraph.domain.visibility import VisibilityAuthorizer


@dataclass
class Components:
    """Wired domain services for one application instance."""

    credentials: CredentialStore
    tokens: VerificationTokenManager
    sessions: SessionIssuer
    follow_graph: FollowGraph
    visibility: VisibilityAuthorizer
    identity: IdentityService


def build_components(
    settings: Settings,
    *,
    pool: ConnectionPool | None = None,
    memory_db: MemoryDatabase | None = None,
) -> Components:
    """
    Wire repositories, domain services and the email sender.

    Exactly one of ``pool`` (PostgreSQL) or ``memory_db`` must be given.
    """
    if (pool is None) == (memory_db is None):
        raise ValueError("Provide exactly one of pool or memory_db")
    if not settings.session_secret:
        raise ConfigurationError("SESSION_SECRET is not set")

    if pool is not None:
        accounts = PostgresAccountRepository(pool)
        token_repo = PostgresVerificationTokenRepository(pool)
        follow_repo = PostgresFollowRepository(pool)
    else:
        accounts = InMemoryAccountRepository(memory_db)
        token_repo = InMemoryVerificationTokenRepository(memory_db)
        follow_repo = InMemoryFollowRepository(memory_db)

    credentials = CredentialStore(
        repository=accounts,
        hasher=BcryptPasswordHasher(rounds=settings.bcrypt_cost),
        password_min_length=settings.password_min_length,
    )
    tokens = VerificationTokenManager(
        repository=token_repo,
        ttl=timedelta(seconds=settings.verification_token_ttl_seconds),
    )
    sessions = SessionIssuer(
        signing_key=settings.session_secret,
        algorithm=settings.session_algorithm,
        verify_key=settings.session_verify_key,
        ttl=timedelta(seconds=settings.session_ttl_seconds),
        issuer=settings.session_issuer,
        audience=settings.session_audience,
    )
    follow_graph = FollowGraph(repository=follow_repo)
    visibility = VisibilityAuthorizer(credentials=credentials, follow_graph=follow_graph)
    identity = IdentityService(
        credentials=credentials,
        tokens=tokens,
        sessions=sessions,
        email_sender=ConsoleEmailSender(sender=settings.email_from),
        verification_url=settings.verification_url,
    )
    return Components(
        credentials=credentials,
        tokens=tokens,
        sessions=sessions,
        follow_graph=follow_graph,
        visibility=visibility,
        identity=identity,
    )


def get_components(request: Request) -> Components:
    """
    Get wired components from app state.

    The components are created during app lifespan startup and stored in app.state.
    """
    return request.app.state.components


def get_identity_service(components: Components = Depends(get_components)) -> IdentityService:
    return components.identity


def get_credential_store(components: Components = Depends(get_components)) -> CredentialStore:
    return components.credentials


def get_follow_graph(components: Components = Depends(get_components)) -> FollowGraph:
    return components.follow_graph


def get_visibility_authorizer(
    components: Components = Depends(get_components),
) -> VisibilityAuthorizer:
    return components.visibility


# Bearer security scheme for OpenAPI documentation; missing headers are
# reported by the session validator, not by FastAPI
http_bearer = HTTPBearer(auto_error=False)


def get_current_account_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    service: IdentityService = Depends(get_identity_service),
) -> str:
    """
    Authenticate the request from its ``Authorization: Bearer`` session token.

    Returns:
        Account id (token subject)
    """
    token = credentials.credentials if credentials is not None else None
    claims = service.authenticate(token)
    if claims.is_err():
        raise failure_to_http(claims.failure, bearer=True)
    return claims.value.subject
