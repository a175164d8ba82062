"""
PostgreSQL repository adapters - Implement the domain storage ports.

This module provides the PostgreSQL implementations of the domain's
repository ports using psycopg3 with raw SQL.

Concurrency Design:
-------------------
Uniqueness is enforced by the database, never by a read before a write:

1. **accounts.email / accounts.username UNIQUE**: signup uses
   ``INSERT ... ON CONFLICT (email) DO NOTHING`` so two concurrent signups
   for the same email cannot both succeed. A username change that hits the
   constraint surfaces as ``UniqueViolation`` and is reported as CONFLICT.

2. **follows PRIMARY KEY (follower_id, following_id)**: follow uses
   ``ON CONFLICT DO NOTHING``; a concurrent duplicate simply inserts no row.

3. **verification_tokens PRIMARY KEY (email)**: one outstanding token per
   email; re-issuance is an upsert.

4. **Token consumption**: ``SELECT ... FOR UPDATE`` locks the token row so
   the check, the account's verified flag and the token delete commit
   together; two concurrent consumes of the same token cannot both succeed,
   and a fault before commit leaves the token in place.

Signup writes the account row and its token row in the same transaction.
Connectivity errors are not caught here; they propagate to the caller.
"""

import hmac
import logging
from datetime import datetime
from pathlib import Path

from psycopg import errors, sql
from psycopg_pool import ConnectionPool

from trustgraph.domain.models import Account, FollowEdge, VerificationToken
from trustgraph.domain.ports import TokenCheck, WriteOutcome

logger = logging.getLogger(__name__)

# Shipped as package data: trustgraph/migrations/*.sql
MIGRATIONS_DIR = Path(__file__).resolve().parent.parent.parent / "migrations"

_ACCOUNT_COLUMNS = (
    "id, email, password_hash, created_at, display_name, bio, username, avatar_ref, verified, private"
)
_PROFILE_COLUMNS = frozenset({"display_name", "bio", "username", "avatar_ref"})


def _row_to_account(row: tuple) -> Account:
    return Account(
        id=row[0],
        email=row[1],
        password_hash=row[2],
        created_at=row[3],
        display_name=row[4],
        bio=row[5],
        username=row[6],
        avatar_ref=row[7],
        verified=row[8],
        private=row[9],
    )


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def insert(self, account: Account, token: VerificationToken | None = None) -> bool:
        """
        Atomically insert an account and, optionally, its verification token.

        Returns:
            True if inserted, False if the email is already registered
        """
        insert_sql = f"""
            INSERT INTO accounts ({_ACCOUNT_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (email) DO NOTHING
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                insert_sql,
                (
                    account.id,
                    account.email,
                    account.password_hash,
                    account.created_at,
                    account.display_name,
                    account.bio,
                    account.username,
                    account.avatar_ref,
                    account.verified,
                    account.private,
                ),
            )
            if cursor.rowcount != 1:
                conn.rollback()
                return False

            if token is not None:
                _upsert_token(cursor, token)

            conn.commit()
            return True

    def get_by_id(self, account_id: str) -> Account | None:
        return self._fetch_one(f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE id = %s", account_id)

    def get_by_email(self, email: str) -> Account | None:
        return self._fetch_one(f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE email = %s", email)

    def get_by_username(self, username: str) -> Account | None:
        return self._fetch_one(
            f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE username = %s", username
        )

    def mark_verified(self, account_id: str) -> Account | None:
        # verified only ever moves to TRUE; repeating the update is a no-op
        return self._fetch_one(
            f"UPDATE accounts SET verified = TRUE WHERE id = %s RETURNING {_ACCOUNT_COLUMNS}",
            account_id,
            commit=True,
        )

    def update_profile(
        self, account_id: str, changes: dict[str, str | None]
    ) -> tuple[WriteOutcome, Account | None]:
        unknown = set(changes) - _PROFILE_COLUMNS
        if unknown:
            raise ValueError(f"Not a profile column: {sorted(unknown)}")

        update_sql = sql.SQL("UPDATE accounts SET {assignments} WHERE id = %s RETURNING {columns}").format(
            assignments=sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(name)) for name in changes
            ),
            columns=sql.SQL(_ACCOUNT_COLUMNS),
        )

        with self._pool.connection() as conn, conn.cursor() as cursor:
            try:
                cursor.execute(update_sql, (*changes.values(), account_id))
            except errors.UniqueViolation:
                conn.rollback()
                return WriteOutcome.CONFLICT, None
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            return WriteOutcome.MISSING, None
        return WriteOutcome.APPLIED, _row_to_account(row)

    def set_privacy(self, account_id: str, private: bool) -> Account | None:
        return self._fetch_one(
            f"UPDATE accounts SET private = %s WHERE id = %s RETURNING {_ACCOUNT_COLUMNS}",
            private,
            account_id,
            commit=True,
        )

    def update_password_hash(self, account_id: str, password_hash: str) -> None:
        with self._pool.connection() as conn:
            conn.execute(
                "UPDATE accounts SET password_hash = %s WHERE id = %s",
                (password_hash, account_id),
            )
            conn.commit()

    def _fetch_one(self, query: str, *params: object, commit: bool = False) -> Account | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
            if commit:
                conn.commit()
        return _row_to_account(row) if row is not None else None


class PostgresVerificationTokenRepository:
    """Implements VerificationTokenRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def upsert(self, token: VerificationToken) -> None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            _upsert_token(cursor, token)
            conn.commit()

    def get(self, email: str) -> VerificationToken | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "SELECT email, token_hash, issued_at, expires_at FROM verification_tokens WHERE email = %s",
                (email,),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return VerificationToken(email=row[0], token_hash=row[1], issued_at=row[2], expires_at=row[3])

    def consume_and_verify(self, email: str, token_hash: str, now: datetime) -> TokenCheck:
        """
        Check and consume the token for ``email`` under a row lock.

        Matching token: account marked verified and token deleted in one
        transaction. Wrong token: row untouched. Expired token: row deleted
        (lazy purge).
        """
        select_sql = """
            SELECT token_hash, expires_at
            FROM verification_tokens
            WHERE email = %s
            FOR UPDATE
        """
        delete_sql = "DELETE FROM verification_tokens WHERE email = %s"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(select_sql, (email,))
            row = cursor.fetchone()

            if row is None:
                conn.commit()
                return TokenCheck.MISSING

            stored_hash, expires_at = row
            if now >= expires_at:
                cursor.execute(delete_sql, (email,))
                conn.commit()
                return TokenCheck.EXPIRED

            if not hmac.compare_digest(stored_hash, token_hash):
                conn.commit()
                return TokenCheck.MISMATCH

            cursor.execute("UPDATE accounts SET verified = TRUE WHERE email = %s", (email,))
            if cursor.rowcount != 1:
                conn.rollback()
                return TokenCheck.MISSING
            cursor.execute(delete_sql, (email,))
            conn.commit()
            return TokenCheck.CONSUMED

    def delete_expired(self, now: datetime) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM verification_tokens WHERE expires_at <= %s", (now,))
            conn.commit()
            return cursor.rowcount


class PostgresFollowRepository:
    """Implements FollowRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def insert(self, edge: FollowEdge) -> WriteOutcome:
        insert_sql = """
            INSERT INTO follows (follower_id, following_id, created_at)
            VALUES (%s, %s, %s)
            ON CONFLICT (follower_id, following_id) DO NOTHING
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            try:
                cursor.execute(insert_sql, (edge.follower_id, edge.following_id, edge.created_at))
            except errors.ForeignKeyViolation:
                conn.rollback()
                return WriteOutcome.MISSING
            conn.commit()
            # 0 rows: the pair already existed, possibly inserted concurrently
            return WriteOutcome.APPLIED if cursor.rowcount == 1 else WriteOutcome.CONFLICT

    def delete(self, follower_id: str, following_id: str) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "DELETE FROM follows WHERE follower_id = %s AND following_id = %s",
                (follower_id, following_id),
            )
            conn.commit()
            return cursor.rowcount == 1

    def exists(self, follower_id: str, following_id: str) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "SELECT 1 FROM follows WHERE follower_id = %s AND following_id = %s",
                (follower_id, following_id),
            )
            return cursor.fetchone() is not None

    def followers_of(self, account_id: str) -> list[str]:
        return self._ids("SELECT follower_id FROM follows WHERE following_id = %s", account_id)

    def following_of(self, account_id: str) -> list[str]:
        return self._ids("SELECT following_id FROM follows WHERE follower_id = %s", account_id)

    def _ids(self, query: str, account_id: str) -> list[str]:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(query, (account_id,))
            return [row[0] for row in cursor.fetchall()]


def _upsert_token(cursor, token: VerificationToken) -> None:
    cursor.execute(
        """
        INSERT INTO verification_tokens (email, token_hash, issued_at, expires_at)
        VALUES (%s, %s, %s, %s)
        ON CONFLICT (email) DO UPDATE
        SET token_hash = EXCLUDED.token_hash,
            issued_at = EXCLUDED.issued_at,
            expires_at = EXCLUDED.expires_at
        """,
        (token.email, token.token_hash, token.issued_at, token.expires_at),
    )


def run_migrations(pool: ConnectionPool, migrations_dir: Path = MIGRATIONS_DIR) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).
    The schema ships inside the package, so a missing or empty directory
    is a broken install and fails startup.

    Args:
        pool: psycopg3 ConnectionPool instance
        migrations_dir: Directory holding the `*.sql` files

    Raises:
        RuntimeError: If no migrations are found or one fails
    """
    sql_files = sorted(migrations_dir.glob("*.sql")) if migrations_dir.is_dir() else []

    if not sql_files:
        logger.error("No migration files found in %s", migrations_dir)
        raise RuntimeError(f"No database migrations found in {migrations_dir}")

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
                conn.commit()
            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
