"""
documents/service.py -- Document operations with ownership enforcement.

Every operation on an existing document follows fetch-then-check:
  1. load the record(s)            -> NOT_FOUND if absent
  2. auth.ownership.authorize(...) -> FORBIDDEN if not the owner
  3. mutate

An administrator may read and delete any document. Editing stays
owner-only.
"""

from __future__ import annotations

import logging
from typing import Optional

from auth.models import Principal
from auth.ownership import authorize, authorize_batch
from core.errors import Err, ErrorKind, Ok, Result
from core.pagination import Page, page_offset
from documents.models import Document
from documents.store import DocumentStore

logger = logging.getLogger("dockeep.documents")

DOCUMENT_NOT_FOUND = "Document not found."


class DocumentService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def create(self, principal: Principal, title: str, description: Optional[str] = None) -> Result[Document]:
        document = await self._store.create(Document(owner_id=principal.id, title=title, description=description))
        return Ok(document)

    async def list_own(self, principal: Principal, page: int = 1, limit: int = 10) -> Result[Page[Document]]:
        offset, limit = page_offset(page, limit)
        items = await self._store.list_by_owner(principal.id, offset=offset, limit=limit)
        total = await self._store.count_by_owner(principal.id)
        return Ok(Page(items=items, total=total, page=offset // limit + 1, limit=limit))

    async def get(self, principal: Principal, document_id: str) -> Result[Document]:
        document = await self._store.get(document_id)
        if document is None:
            return Err(ErrorKind.NOT_FOUND, DOCUMENT_NOT_FOUND)
        allowed = authorize(principal, document.owner_id, allow_admin_override=True)
        if isinstance(allowed, Err):
            return allowed
        return Ok(document)

    async def update(self, principal: Principal, document_id: str, **fields) -> Result[Document]:
        document = await self._store.get(document_id)
        if document is None:
            return Err(ErrorKind.NOT_FOUND, DOCUMENT_NOT_FOUND)
        allowed = authorize(principal, document.owner_id)
        if isinstance(allowed, Err):
            return allowed
        if not fields:
            return Ok(document)
        updated = await self._store.update(document_id, **fields)
        if updated is None:
            return Err(ErrorKind.NOT_FOUND, DOCUMENT_NOT_FOUND)
        return Ok(updated)

    async def delete(self, principal: Principal, document_id: str) -> Result[None]:
        document = await self._store.get(document_id)
        if document is None:
            return Err(ErrorKind.NOT_FOUND, DOCUMENT_NOT_FOUND)
        allowed = authorize(principal, document.owner_id, allow_admin_override=True)
        if isinstance(allowed, Err):
            return allowed
        await self._store.delete(document_id)
        logger.info("Document %s deleted by %s", document_id, principal.id)
        return Ok(None)

    async def delete_many(self, principal: Principal, document_ids: list[str]) -> Result[int]:
        """Delete a batch atomically.

        Any missing id fails the batch with NOT_FOUND; any document the
        caller may not delete fails it with FORBIDDEN. Either way nothing is
        deleted.
        """
        wanted = list(dict.fromkeys(document_ids))
        if not wanted:
            return Err(ErrorKind.INVALID_INPUT, "No document ids given.")
        documents = await self._store.find_many(wanted)
        if len(documents) != len(wanted):
            return Err(ErrorKind.NOT_FOUND, DOCUMENT_NOT_FOUND)
        allowed = authorize_batch(principal, (d.owner_id for d in documents), allow_admin_override=True)
        if isinstance(allowed, Err):
            return allowed
        deleted = await self._store.delete_many(wanted)
        logger.info("Batch of %d documents deleted by %s", deleted, principal.id)
        return Ok(deleted)
