"""Repository adapters - Database and in-memory implementations."""

from .memory import (
    InMemoryAccountRepository,
    InMemoryFollowRepository,
    InMemoryVerificationTokenRepository,
    MemoryDatabase,
)
from .postgres import (
    PostgresAccountRepository,
    PostgresFollowRepository,
    PostgresVerificationTokenRepository,
    run_migrations,
)

__all__ = [
    "InMemoryAccountRepository",
    "InMemoryFollowRepository",
    "InMemoryVerificationTokenRepository",
    "MemoryDatabase",
    "PostgresAccountRepository",
    "PostgresFollowRepository",
    "PostgresVerificationTokenRepository",
    "run_migrations",
]
