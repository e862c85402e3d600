"""
documents/store.py -- SQLAlchemy Core persistence for owned documents.

Pattern: Repository + Data Mapper (same as auth/store.py). DocumentStore is
the repository; _row_to_document is the mapper.

The store does no permission checks. Handlers fetch a document, hand its
owner_id to auth.ownership, and only then call update/delete here.

delete_many() removes every id in one transaction so a batch either fully
applies or not at all.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import Column, Index, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from core.db import make_engine
from documents.models import Document

_metadata = MetaData()

_documents = Table(
    "documents",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("owner_id", String(32), nullable=False),
    Column("title", String(200), nullable=False),
    Column("description", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("ix_documents_owner_id", "owner_id"),
)

_UPDATABLE_FIELDS = {"title", "description"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentStore:
    """Repository for Document metadata.

    Usage:
        store = DocumentStore(engine=engine)
        doc = await store.create(Document(owner_id=uid, title="Q3 report"))
        await store.get(doc.id)
        store.close()
    """

    def __init__(self, db_url: Optional[str] = None, *, engine: Optional[Engine] = None) -> None:
        if engine is None:
            if db_url is None:
                raise ValueError("DocumentStore needs a db_url or an engine")
            engine = make_engine(db_url)
        self.engine: Engine = engine
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Async interface
    # ------------------------------------------------------------------

    async def create(self, document: Document) -> Document:
        return await run_in_threadpool(self.insert, document)

    async def get(self, document_id: str) -> Optional[Document]:
        return await run_in_threadpool(self.get_by_id, document_id)

    async def find_many(self, document_ids: list[str]) -> list[Document]:
        return await run_in_threadpool(self.get_many, document_ids)

    async def list_by_owner(self, owner_id: str, offset: int = 0, limit: int = 10) -> list[Document]:
        return await run_in_threadpool(self.select_by_owner, owner_id, offset, limit)

    async def count_by_owner(self, owner_id: str) -> int:
        return await run_in_threadpool(self.count_owner, owner_id)

    async def update(self, document_id: str, **fields) -> Optional[Document]:
        return await run_in_threadpool(self.update_fields, document_id, fields)

    async def delete(self, document_id: str) -> bool:
        return await run_in_threadpool(self.delete_many_sync, [document_id]) > 0

    async def delete_many(self, document_ids: list[str]) -> int:
        return await run_in_threadpool(self.delete_many_sync, document_ids)

    async def delete_by_owner(self, owner_id: str) -> int:
        return await run_in_threadpool(self.delete_owner, owner_id)

    # ------------------------------------------------------------------
    # Synchronous queries
    # ------------------------------------------------------------------

    def insert(self, document: Document) -> Document:
        now = _now_iso()
        document_id = document.id or uuid.uuid4().hex
        with self.engine.connect() as conn:
            conn.execute(
                _documents.insert().values(
                    id=document_id,
                    owner_id=document.owner_id,
                    title=document.title,
                    description=document.description,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return Document(
            id=document_id,
            owner_id=document.owner_id,
            title=document.title,
            description=document.description,
            created_at=now,
            updated_at=now,
        )

    def get_by_id(self, document_id: str) -> Optional[Document]:
        with self.engine.connect() as conn:
            row = conn.execute(_documents.select().where(_documents.c.id == document_id)).fetchone()
        return _row_to_document(row) if row is not None else None

    def get_many(self, document_ids: list[str]) -> list[Document]:
        """Return the documents that exist among document_ids (any order)."""
        if not document_ids:
            return []
        with self.engine.connect() as conn:
            rows = conn.execute(_documents.select().where(_documents.c.id.in_(document_ids))).fetchall()
        return [_row_to_document(r) for r in rows]

    def select_by_owner(self, owner_id: str, offset: int, limit: int) -> list[Document]:
        """Return a page of the owner's documents, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _documents.select()
                .where(_documents.c.owner_id == owner_id)
                .order_by(_documents.c.created_at.desc(), _documents.c.id)
                .offset(offset)
                .limit(limit)
            ).fetchall()
        return [_row_to_document(r) for r in rows]

    def count_owner(self, owner_id: str) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_documents).where(_documents.c.owner_id == owner_id)
            ).scalar()
        return result or 0

    def update_fields(self, document_id: str, fields: dict) -> Optional[Document]:
        """Apply a partial update. Returns the updated document, or None if absent."""
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown document fields: {unknown!r}")
        values = dict(fields, updated_at=_now_iso())
        with self.engine.connect() as conn:
            result = conn.execute(_documents.update().where(_documents.c.id == document_id).values(**values))
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_by_id(document_id)

    def delete_many_sync(self, document_ids: list[str]) -> int:
        """Delete all given ids in a single transaction. Returns rows removed."""
        if not document_ids:
            return 0
        with self.engine.begin() as conn:
            result = conn.execute(_documents.delete().where(_documents.c.id.in_(document_ids)))
        return result.rowcount

    def delete_owner(self, owner_id: str) -> int:
        """Remove every document owned by owner_id. Used when a user is deleted."""
        with self.engine.begin() as conn:
            result = conn.execute(_documents.delete().where(_documents.c.owner_id == owner_id))
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_document(row) -> Document:
    return Document(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        description=row.description,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
