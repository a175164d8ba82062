"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory repositories sharing one MemoryDatabase
- Domain services wired against them with a controllable clock
- A mocked email sender whose calls expose the verification token
"""

import re
from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest

from trustgraph.adapters.repository.memory import (
    InMemoryAccountRepository,
    InMemoryFollowRepository,
    InMemoryVerificationTokenRepository,
    MemoryDatabase,
)
from trustgraph.domain.credentials import BcryptPasswordHasher, CredentialStore
from trustgraph.domain.follows import FollowGraph
from trustgraph.domain.identity import IdentityService
from trustgraph.domain.models import PublicProfile
from trustgraph.domain.result import Ok
from trustgraph.domain.sessions import SessionIssuer
from trustgraph.domain.tokens import VerificationTokenManager
from trustgraph.domain.visibility import VisibilityAuthorizer

TEST_SECRET = "test-session-secret-with-at-least-32-bytes"

_TOKEN_IN_BODY = re.compile(r"Or enter this code: (\S+)")


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def token_from_sender(sender: Mock) -> str:
    """Extract the verification token from the last message sent through a mocked sender."""
    body = sender.send.call_args[0][2]
    match = _TOKEN_IN_BODY.search(body)
    assert match is not None, f"No token in message body: {body!r}"
    return match.group(1)


@pytest.fixture
def session_secret() -> str:
    return TEST_SECRET


@pytest.fixture
def sent_token():
    """Helper reading the verification token out of a mocked sender."""
    return token_from_sender


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def memory_db() -> MemoryDatabase:
    return MemoryDatabase()


@pytest.fixture
def hasher() -> BcryptPasswordHasher:
    """Low-cost bcrypt so the suite stays fast."""
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def credentials(memory_db: MemoryDatabase, hasher: BcryptPasswordHasher, clock: FakeClock) -> CredentialStore:
    return CredentialStore(repository=InMemoryAccountRepository(memory_db), hasher=hasher, clock=clock)


@pytest.fixture
def token_repository(memory_db: MemoryDatabase) -> InMemoryVerificationTokenRepository:
    return InMemoryVerificationTokenRepository(memory_db)


@pytest.fixture
def tokens(
    token_repository: InMemoryVerificationTokenRepository, clock: FakeClock
) -> VerificationTokenManager:
    return VerificationTokenManager(repository=token_repository, clock=clock)


@pytest.fixture
def follow_graph(memory_db: MemoryDatabase, clock: FakeClock) -> FollowGraph:
    return FollowGraph(repository=InMemoryFollowRepository(memory_db), clock=clock)


@pytest.fixture
def visibility(credentials: CredentialStore, follow_graph: FollowGraph) -> VisibilityAuthorizer:
    return VisibilityAuthorizer(credentials=credentials, follow_graph=follow_graph)


@pytest.fixture
def sessions() -> SessionIssuer:
    return SessionIssuer(signing_key=TEST_SECRET)


@pytest.fixture
def email_sender() -> Mock:
    sender = Mock()
    sender.send.return_value = Ok(None)
    return sender


@pytest.fixture
def identity(
    credentials: CredentialStore,
    tokens: VerificationTokenManager,
    sessions: SessionIssuer,
    email_sender: Mock,
) -> IdentityService:
    return IdentityService(
        credentials=credentials,
        tokens=tokens,
        sessions=sessions,
        email_sender=email_sender,
    )


@pytest.fixture
def make_account(credentials: CredentialStore):
    """Factory creating an account directly in the store, optionally verified/private."""

    def _make(
        email: str,
        password: str = "secret1",
        *,
        verified: bool = True,
        private: bool = False,
    ) -> PublicProfile:
        profile = credentials.create_account(email, password).unwrap()
        if verified:
            profile = credentials.mark_verified(profile.id).unwrap()
        if private:
            profile = credentials.set_privacy(profile.id, True).unwrap()
        return profile

    return _make
