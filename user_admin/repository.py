"""Database repository for account data."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account, AccountStatus
from .domain.contracts import AccountMutation, NewAccountInput
from .errors import ConflictError, StoreUnavailableError

logger = logging.getLogger(__name__)

EMAIL_CONSTRAINT = "users_email_key"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id BIGSERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    password_hash TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'unverified'
        CHECK (status IN ('unverified', 'active', 'blocked')),
    verification_token TEXT,
    last_login TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT users_email_key UNIQUE (email),
    CONSTRAINT users_verification_token_key UNIQUE (verification_token)
);
CREATE INDEX IF NOT EXISTS users_status_idx ON users (status);
"""

_COLUMNS = "id, name, email, password_hash, status, verification_token, last_login, created_at"


class AccountRepository:
    """Postgres-backed account persistence.

    Email uniqueness is left entirely to the ``users_email_key`` constraint so
    concurrent registrations cannot both succeed.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _cursor(self) -> Iterator[psycopg.Cursor]:
        """Yield a cursor inside a transaction, reporting driver faults generically."""
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    yield cur
        except psycopg.Error as exc:
            logger.exception("account store failure")
            raise StoreUnavailableError() from exc

    def ensure_schema(self) -> None:
        """Create the ``users`` table and indexes when missing."""
        with self._cursor() as cur:
            cur.execute(SCHEMA_SQL)

    def insert(self, payload: NewAccountInput) -> Account:
        """Persist a new account, raising ``ConflictError`` for a taken email."""
        with self._cursor() as cur:
            try:
                cur.execute(
                    f"""
                    INSERT INTO users (name, email, password_hash, status, verification_token)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        payload.name,
                        payload.email,
                        payload.password_hash,
                        payload.status.value,
                        payload.verification_token,
                    ),
                )
            except pg_errors.UniqueViolation as exc:
                if exc.diag.constraint_name == EMAIL_CONSTRAINT:
                    raise ConflictError() from exc
                raise
            row = cur.fetchone()
        return self._map_record(row)

    def find_by_id(self, account_id: int) -> Account | None:
        return self._fetch_one("id = %s", (account_id,))

    def find_by_email(self, email: str) -> Account | None:
        return self._fetch_one("email = %s", (email.strip().lower(),))

    def find_by_verification_token(self, token: str) -> Account | None:
        return self._fetch_one("verification_token = %s", (token,))

    def list_accounts(self) -> list[Account]:
        """Return all accounts, most recent login first."""
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM users
                ORDER BY last_login DESC NULLS LAST, created_at DESC
                """
            )
            rows = cur.fetchall()
        return [self._map_record(row) for row in rows]

    def update_many(
        self,
        ids: Iterable[int],
        mutation: AccountMutation,
        *,
        current_status: AccountStatus | None = None,
    ) -> int:
        """Apply ``mutation`` to the listed accounts and return the rows changed.

        ``current_status`` restricts the update to accounts still in that
        status, turning a read-modify-write into a single guarded statement.
        """
        assignments: list[str] = []
        params: list[Any] = []
        if mutation.status is not None:
            assignments.append("status = %s")
            params.append(mutation.status.value)
        if mutation.last_login is not None:
            assignments.append("last_login = %s")
            params.append(mutation.last_login)
        if mutation.clear_verification_token:
            assignments.append("verification_token = NULL")
        if not assignments:
            raise ValueError("empty account mutation")

        clauses = ["id = ANY(%s)"]
        params.append(list(ids))
        if current_status is not None:
            clauses.append("status = %s")
            params.append(current_status.value)

        query = f"UPDATE users SET {', '.join(assignments)} WHERE {' AND '.join(clauses)}"
        with self._cursor() as cur:
            cur.execute(query, params)
            return cur.rowcount

    def delete_many(self, ids: Iterable[int]) -> int:
        with self._cursor() as cur:
            cur.execute("DELETE FROM users WHERE id = ANY(%s)", (list(ids),))
            return cur.rowcount

    def delete_where(self, status: AccountStatus) -> list[int]:
        """Delete every account in ``status`` and return the removed ids."""
        with self._cursor() as cur:
            cur.execute("DELETE FROM users WHERE status = %s RETURNING id", (status.value,))
            return [row[0] for row in cur.fetchall()]

    def _fetch_one(self, where_sql: str, params: tuple[Any, ...]) -> Account | None:
        with self._cursor() as cur:
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE {where_sql}", params)
            row = cur.fetchone()
        if not row:
            return None
        return self._map_record(row)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            id=row[0],
            name=row[1],
            email=row[2],
            password_hash=row[3],
            status=AccountStatus(row[4]),
            verification_token=row[5],
            last_login=row[6],
            created_at=row[7],
        )
