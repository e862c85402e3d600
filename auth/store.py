"""
auth/store.py -- Credential Store contract and its SQLAlchemy Core adapter.

Pattern: Repository + Data Mapper. CredentialStore is the async contract the
auth services depend on; SqlCredentialStore is the repository and
_row_to_record is the mapper. Service and route code never touches SQL.

Contract:
  Every method is awaitable and reports "not found" as None, never as an
  exception. A duplicate email on create/update raises DuplicateEmailError --
  the UNIQUE constraint is the race-safe fallback for the service-level
  check-then-write in register/update.

Concurrency:
  The adapter uses a synchronous SQLAlchemy engine (connection pool). Each
  public coroutine hands the blocking call to Starlette's thread pool via
  run_in_threadpool so the event loop never blocks on the database.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or documents/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import CredentialRecord, Role
from core.db import make_engine

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("full_name", String(100), nullable=False, server_default=""),
    # Delimited on both sides (",ADMIN,USER,") so a role filter is a plain
    # substring match that cannot hit a prefix of another role name.
    Column("roles", String(100), nullable=False, server_default=",USER,"),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("reset_token_id", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Fields callers may change through update(). id and created_at are immutable.
_UPDATABLE_FIELDS = {"email", "password_hash", "full_name", "roles", "is_active", "reset_token_id"}


class DuplicateEmailError(Exception):
    """Raised when a write would violate the UNIQUE(email) constraint."""


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    async def find_by_email(self, email: str) -> CredentialRecord | None: ...

    async def find_by_id(self, user_id: str) -> CredentialRecord | None: ...

    async def create(self, record: CredentialRecord) -> CredentialRecord: ...

    async def update(self, user_id: str, **fields: Any) -> CredentialRecord | None: ...

    async def consume_reset_token(self, user_id: str, token_id: str, password_hash: str) -> bool: ...

    async def delete(self, user_id: str) -> None: ...

    async def list_records(
        self, *, is_active: bool | None = None, role: Role | None = None, offset: int = 0, limit: int = 10
    ) -> list[CredentialRecord]: ...

    async def count(self, *, is_active: bool | None = None, role: Role | None = None) -> int: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _encode_roles(roles) -> str:
    return "," + ",".join(sorted(Role(r).value for r in roles)) + ","


def _decode_roles(value: str) -> frozenset[Role]:
    return frozenset(Role(part) for part in value.split(",") if part)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SqlCredentialStore:
    """SQLAlchemy Core implementation of CredentialStore.

    Usage:
        store = SqlCredentialStore("sqlite:///dockeep.db")
        record = await store.create(CredentialRecord(email="a@b.c", password_hash=h))
        await store.find_by_email("a@b.c")
        store.close()
    """

    def __init__(self, db_url: str | None = None, *, engine: Engine | None = None) -> None:
        if engine is None:
            if db_url is None:
                raise ValueError("SqlCredentialStore needs a db_url or an engine")
            engine = make_engine(db_url)
        self.engine: Engine = engine
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Async contract
    # ------------------------------------------------------------------

    async def find_by_email(self, email: str) -> CredentialRecord | None:
        return await run_in_threadpool(self.get_by_email, email)

    async def find_by_id(self, user_id: str) -> CredentialRecord | None:
        return await run_in_threadpool(self.get_by_id, user_id)

    async def create(self, record: CredentialRecord) -> CredentialRecord:
        return await run_in_threadpool(self.insert, record)

    async def update(self, user_id: str, **fields: Any) -> CredentialRecord | None:
        return await run_in_threadpool(self.update_fields, user_id, fields)

    async def consume_reset_token(self, user_id: str, token_id: str, password_hash: str) -> bool:
        return await run_in_threadpool(self.apply_reset, user_id, token_id, password_hash)

    async def delete(self, user_id: str) -> None:
        await run_in_threadpool(self.delete_by_id, user_id)

    async def list_records(
        self, *, is_active: bool | None = None, role: Role | None = None, offset: int = 0, limit: int = 10
    ) -> list[CredentialRecord]:
        return await run_in_threadpool(self.select_records, is_active, role, offset, limit)

    async def count(self, *, is_active: bool | None = None, role: Role | None = None) -> int:
        return await run_in_threadpool(self.count_records, is_active, role)

    # ------------------------------------------------------------------
    # Synchronous queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        """Return True if at least one user record exists."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def get_by_email(self, email: str) -> CredentialRecord | None:
        """Look up a record by normalized email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_record(row) if row is not None else None

    def get_by_id(self, user_id: str) -> CredentialRecord | None:
        """Look up a record by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_record(row) if row is not None else None

    def insert(self, record: CredentialRecord) -> CredentialRecord:
        """Insert a new record and return it as stored.

        Raises DuplicateEmailError if the email is already registered, even
        when a concurrent request won the race past the service-level check.
        """
        now = _now_iso()
        user_id = record.id or uuid.uuid4().hex
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user_id,
                        email=record.email,
                        password_hash=record.password_hash,
                        full_name=record.full_name,
                        roles=_encode_roles(record.roles),
                        is_active=1 if record.is_active else 0,
                        reset_token_id=record.reset_token_id,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(record.email) from exc
        stored = self.get_by_id(user_id)
        if stored is None:
            raise RuntimeError(f"User {user_id} not found after insert")
        return stored

    def update_fields(self, user_id: str, fields: dict[str, Any]) -> CredentialRecord | None:
        """Apply a partial update. Returns the updated record, or None if absent.

        Unknown field names raise ValueError -- column names come from a
        fixed whitelist, never from caller input.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        values = dict(fields)
        if "roles" in values:
            values["roles"] = _encode_roles(values["roles"])
        if "is_active" in values:
            values["is_active"] = 1 if values["is_active"] else 0
        values["updated_at"] = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(**values))
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(fields.get("email", "")) from exc
        if result.rowcount == 0:
            return None
        return self.get_by_id(user_id)

    def apply_reset(self, user_id: str, token_id: str, password_hash: str) -> bool:
        """Write a new hash only if token_id is still the outstanding reset id.

        The match and the clear are one UPDATE, so of two requests racing
        with the same token exactly one sees rowcount 1.
        """
        query = (
            _users.update()
            .where(_users.c.id == user_id)
            .where(_users.c.reset_token_id == token_id)
            .where(_users.c.is_active == 1)
            .values(password_hash=password_hash, reset_token_id=None, updated_at=_now_iso())
        )
        with self.engine.begin() as conn:
            result = conn.execute(query)
        return result.rowcount == 1

    def delete_by_id(self, user_id: str) -> bool:
        """Permanently delete a record. Returns True if a row was removed.

        Owned documents must be removed first by the caller (see
        auth.admin.UserAdminService.delete_user).
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def select_records(
        self, is_active: bool | None, role: Role | None, offset: int, limit: int
    ) -> list[CredentialRecord]:
        """Return records ordered by created_at (newest first), filtered and paged."""
        query = _filtered(_users.select(), is_active, role)
        query = query.order_by(_users.c.created_at.desc(), _users.c.id).offset(offset).limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_record(r) for r in rows]

    def count_records(self, is_active: bool | None, role: Role | None) -> int:
        query = _filtered(select(func.count()).select_from(_users), is_active, role)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    def close(self) -> None:
        self.engine.dispose()


def _filtered(query, is_active: bool | None, role: Role | None):
    if is_active is not None:
        query = query.where(_users.c.is_active == (1 if is_active else 0))
    if role is not None:
        query = query.where(_users.c.roles.contains(f",{Role(role).value},"))
    return query


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_record(row) -> CredentialRecord:
    return CredentialRecord(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        full_name=row.full_name or "",
        roles=_decode_roles(row.roles),
        is_active=bool(row.is_active),
        reset_token_id=row.reset_token_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
