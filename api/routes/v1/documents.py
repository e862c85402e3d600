"""
api/routes/v1/documents.py -- Owned-resource endpoints.

All routes require authentication. Record-level access is decided by
documents/service.py (fetch, then ownership check), not by route roles:
  PATCH a document                -- owner only
  GET / DELETE / batch-delete     -- owner, or ADMIN override
A missing document is always 404, checked before ownership.
"""

from __future__ import annotations

from fastapi import Depends, Query, Request, Response

from api.models import (
    BatchDeleteRequest,
    BatchDeleteResponse,
    DocumentCreate,
    DocumentListResponse,
    DocumentPatch,
    DocumentResponse,
)
from api.routing import AUTHENTICATED, RouteSpec
from auth.dependencies import get_current_principal
from auth.models import Principal
from core.errors import unwrap
from documents.service import DocumentService


def _service(request: Request) -> DocumentService:
    return request.app.state.document_service


async def create_document(
    request: Request,
    body: DocumentCreate,
    principal: Principal = Depends(get_current_principal),
) -> DocumentResponse:
    document = unwrap(await _service(request).create(principal, body.title, body.description))
    return DocumentResponse.from_document(document)


async def list_documents(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
) -> DocumentListResponse:
    """List the caller's own documents, newest first."""
    result = await _service(request).list_own(principal, page=page, limit=limit)
    return DocumentListResponse.from_page(unwrap(result))


async def get_document(
    request: Request, document_id: str, principal: Principal = Depends(get_current_principal)
) -> DocumentResponse:
    return DocumentResponse.from_document(unwrap(await _service(request).get(principal, document_id)))


async def update_document(
    request: Request,
    document_id: str,
    body: DocumentPatch,
    principal: Principal = Depends(get_current_principal),
) -> DocumentResponse:
    fields = body.model_dump(exclude_unset=True)
    return DocumentResponse.from_document(unwrap(await _service(request).update(principal, document_id, **fields)))


async def delete_document(
    request: Request, document_id: str, principal: Principal = Depends(get_current_principal)
) -> Response:
    unwrap(await _service(request).delete(principal, document_id))
    return Response(status_code=204)


async def batch_delete_documents(
    request: Request,
    body: BatchDeleteRequest,
    principal: Principal = Depends(get_current_principal),
) -> BatchDeleteResponse:
    """Delete several documents at once. All-or-nothing."""
    count = unwrap(await _service(request).delete_many(principal, body.ids))
    return BatchDeleteResponse(message=f"{count} document(s) deleted.", count=count)


# batch-delete is a POST on a literal path so it never collides with
# /documents/{document_id}.
DOCUMENT_ROUTES: list[RouteSpec] = [
    RouteSpec("/documents", "POST", create_document, AUTHENTICATED, 201, DocumentResponse),
    RouteSpec("/documents", "GET", list_documents, AUTHENTICATED, 200, DocumentListResponse),
    RouteSpec("/documents/batch-delete", "POST", batch_delete_documents, AUTHENTICATED, 200, BatchDeleteResponse),
    RouteSpec("/documents/{document_id}", "GET", get_document, AUTHENTICATED, 200, DocumentResponse),
    RouteSpec("/documents/{document_id}", "PATCH", update_document, AUTHENTICATED, 200, DocumentResponse),
    RouteSpec("/documents/{document_id}", "DELETE", delete_document, AUTHENTICATED, 204),
]
