"""
auth/store.py -- Credential stores.

Pattern: Repository behind a Protocol. Route and dependency code only ever
sees CredentialStore; which implementation backs it is decided once at
startup by build_credential_store().

  InMemoryCredentialStore -- the fixed user list held in a dict. Default, and
      what the tests use.
  SQLCredentialStore      -- SQLAlchemy Core over any SQL URL. Seeds the table
      from the startup records when it is empty, then serves reads only.

Both are read-only after construction: no create/update/delete is exposed.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or metrics/. core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, func, select
from sqlalchemy.engine import Engine

from auth.models import Role, UserRecord

logger = logging.getLogger("devops_api.auth")

# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    def find_by_username(self, username: str) -> UserRecord | None: ...

    def list_users(self) -> list[UserRecord]: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemoryCredentialStore:
    """Dict-backed store over a fixed record set.

    Usage:
        store = InMemoryCredentialStore(DEFAULT_USERS)
        user = store.find_by_username("admin")
    """

    def __init__(self, records: Iterable[UserRecord]) -> None:
        self._by_username: dict[str, UserRecord] = {}
        for record in records:
            if record.username in self._by_username:
                raise ValueError(f"Duplicate username in credential set: {record.username!r}")
            self._by_username[record.username] = record

    def find_by_username(self, username: str) -> UserRecord | None:
        """Exact, case-sensitive lookup. Returns None if not found."""
        return self._by_username.get(username)

    def list_users(self) -> list[UserRecord]:
        return sorted(self._by_username.values(), key=lambda r: r.id)

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("secret", Text, nullable=False),  # plaintext or bcrypt hash, per CREDENTIAL_SCHEME
    Column("role", String(30), nullable=False),
)


def _row_to_user(row) -> UserRecord:
    return UserRecord(id=row.id, username=row.username, secret=row.secret, role=Role(row.role))


class SQLCredentialStore:
    """Persistence-backed credential store (SQLAlchemy Core).

    Seeding happens only when the users table is empty, so a database that
    already holds records is served as-is and the seed set is ignored.
    """

    def __init__(self, db_url: str, records: Iterable[UserRecord] = ()) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        _metadata.create_all(self.engine)
        self._seed(list(records))

    def _seed(self, records: list[UserRecord]) -> None:
        if not records:
            return
        with self.engine.begin() as conn:
            count = conn.execute(select(func.count()).select_from(_users)).scalar() or 0
            if count:
                logger.info("Credential table already populated (%d users); skipping seed", count)
                return
            conn.execute(
                _users.insert(),
                [{"id": r.id, "username": r.username, "secret": r.secret, "role": r.role.value} for r in records],
            )
        logger.info("Seeded credential table with %d users", len(records))

    def find_by_username(self, username: str) -> UserRecord | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(_users).where(_users.c.username == username)).first()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[UserRecord]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(_users).order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


def build_credential_store(db_url: str, records: Iterable[UserRecord]) -> CredentialStore:
    """Pick the store implementation for the configured CREDENTIAL_DB_URL."""
    if db_url:
        return SQLCredentialStore(db_url, records)
    return InMemoryCredentialStore(records)
