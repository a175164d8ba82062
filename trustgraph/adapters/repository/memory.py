"""
In-memory repository adapters - Implement the domain storage ports.

Used by unit tests and for running the API without PostgreSQL. All three
repositories share one ``MemoryDatabase`` so cross-table rules (atomic
signup, follow edges referencing accounts) behave as they do in SQL.

Every check-and-write happens under the database lock, which plays the
role of the unique constraints and transactions of the real store. There
is no I/O, so holding the lock never spans a storage round-trip.
"""

import hmac
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime

from trustgraph.domain.models import Account, FollowEdge, VerificationToken
from trustgraph.domain.ports import TokenCheck, WriteOutcome


@dataclass
class MemoryDatabase:
    """Tables and indexes shared by the in-memory repositories."""

    accounts: dict[str, Account] = field(default_factory=dict)
    email_index: dict[str, str] = field(default_factory=dict)
    username_index: dict[str, str] = field(default_factory=dict)
    tokens: dict[str, VerificationToken] = field(default_factory=dict)
    follows: dict[tuple[str, str], FollowEdge] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)


class InMemoryAccountRepository:
    """Implements AccountRepository protocol over a MemoryDatabase."""

    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db

    def insert(self, account: Account, token: VerificationToken | None = None) -> bool:
        with self._db.lock:
            if account.email in self._db.email_index:
                return False
            self._db.accounts[account.id] = account
            self._db.email_index[account.email] = account.id
            if account.username is not None:
                self._db.username_index[account.username] = account.id
            if token is not None:
                self._db.tokens[token.email] = token
            return True

    def get_by_id(self, account_id: str) -> Account | None:
        return self._db.accounts.get(account_id)

    def get_by_email(self, email: str) -> Account | None:
        with self._db.lock:
            account_id = self._db.email_index.get(email)
            return self._db.accounts.get(account_id) if account_id else None

    def get_by_username(self, username: str) -> Account | None:
        with self._db.lock:
            account_id = self._db.username_index.get(username)
            return self._db.accounts.get(account_id) if account_id else None

    def mark_verified(self, account_id: str) -> Account | None:
        with self._db.lock:
            account = self._db.accounts.get(account_id)
            if account is None:
                return None
            if not account.verified:
                account = replace(account, verified=True)
                self._db.accounts[account_id] = account
            return account

    def update_profile(
        self, account_id: str, changes: dict[str, str | None]
    ) -> tuple[WriteOutcome, Account | None]:
        with self._db.lock:
            account = self._db.accounts.get(account_id)
            if account is None:
                return WriteOutcome.MISSING, None

            if "username" in changes and changes["username"] != account.username:
                new_username = changes["username"]
                if new_username is not None:
                    owner = self._db.username_index.get(new_username)
                    if owner is not None and owner != account_id:
                        return WriteOutcome.CONFLICT, None
                    self._db.username_index[new_username] = account_id
                if account.username is not None:
                    self._db.username_index.pop(account.username, None)

            account = replace(account, **changes)
            self._db.accounts[account_id] = account
            return WriteOutcome.APPLIED, account

    def set_privacy(self, account_id: str, private: bool) -> Account | None:
        with self._db.lock:
            account = self._db.accounts.get(account_id)
            if account is None:
                return None
            account = replace(account, private=private)
            self._db.accounts[account_id] = account
            return account

    def update_password_hash(self, account_id: str, password_hash: str) -> None:
        with self._db.lock:
            account = self._db.accounts.get(account_id)
            if account is not None:
                self._db.accounts[account_id] = replace(account, password_hash=password_hash)


class InMemoryVerificationTokenRepository:
    """Implements VerificationTokenRepository protocol over a MemoryDatabase."""

    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db

    def upsert(self, token: VerificationToken) -> None:
        with self._db.lock:
            self._db.tokens[token.email] = token

    def get(self, email: str) -> VerificationToken | None:
        return self._db.tokens.get(email)

    def consume_and_verify(self, email: str, token_hash: str, now: datetime) -> TokenCheck:
        with self._db.lock:
            stored = self._db.tokens.get(email)
            if stored is None:
                return TokenCheck.MISSING
            if stored.is_expired(now):
                del self._db.tokens[email]
                return TokenCheck.EXPIRED
            if not hmac.compare_digest(stored.token_hash, token_hash):
                return TokenCheck.MISMATCH

            account_id = self._db.email_index.get(email)
            if account_id is None:
                return TokenCheck.MISSING
            # Account first: if the write fails the token is still there
            account = self._db.accounts[account_id]
            self._db.accounts[account_id] = replace(account, verified=True)
            del self._db.tokens[email]
            return TokenCheck.CONSUMED

    def delete_expired(self, now: datetime) -> int:
        with self._db.lock:
            expired = [email for email, token in self._db.tokens.items() if token.is_expired(now)]
            for email in expired:
                del self._db.tokens[email]
            return len(expired)


class InMemoryFollowRepository:
    """Implements FollowRepository protocol over a MemoryDatabase."""

    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db

    def insert(self, edge: FollowEdge) -> WriteOutcome:
        key = (edge.follower_id, edge.following_id)
        with self._db.lock:
            if edge.follower_id not in self._db.accounts or edge.following_id not in self._db.accounts:
                return WriteOutcome.MISSING
            if key in self._db.follows:
                return WriteOutcome.CONFLICT
            self._db.follows[key] = edge
            return WriteOutcome.APPLIED

    def delete(self, follower_id: str, following_id: str) -> bool:
        with self._db.lock:
            return self._db.follows.pop((follower_id, following_id), None) is not None

    def exists(self, follower_id: str, following_id: str) -> bool:
        return (follower_id, following_id) in self._db.follows

    def followers_of(self, account_id: str) -> list[str]:
        with self._db.lock:
            return [follower for follower, following in self._db.follows if following == account_id]

    def following_of(self, account_id: str) -> list[str]:
        with self._db.lock:
            return [following for follower, following in self._db.follows if follower == account_id]
