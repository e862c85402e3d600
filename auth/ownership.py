"""
auth/ownership.py -- Record-level ownership check.

Handlers call these AFTER fetching the resource. A missing resource must be
reported as NOT_FOUND before ownership is evaluated, so callers cannot
distinguish "exists but not yours" from "does not exist" by anything other
than the status code.

The administrative override is opt-in per call site: some operations (reading
or deleting a document) let an ADMIN act on anyone's record, others (editing
a document) are strictly owner-only.

Layer rule: no imports from api/ or documents/.
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.models import Principal
from core.errors import Err, ErrorKind, Ok, Result

FORBIDDEN_OWNER = "You do not have permission to access this resource."
FORBIDDEN_BATCH = "You do not have permission to modify some of these resources."


def authorize(principal: Principal, owner_id: str, allow_admin_override: bool = False) -> Result[None]:
    """Pass if principal owns the record, or is an admin and the override applies."""
    if principal.id == owner_id:
        return Ok(None)
    if allow_admin_override and principal.is_admin:
        return Ok(None)
    return Err(ErrorKind.FORBIDDEN, FORBIDDEN_OWNER)


def authorize_batch(principal: Principal, owner_ids: Iterable[str], allow_admin_override: bool = False) -> Result[None]:
    """All-or-nothing variant: one foreign record fails the whole batch."""
    for owner_id in owner_ids:
        if isinstance(authorize(principal, owner_id, allow_admin_override), Err):
            return Err(ErrorKind.FORBIDDEN, FORBIDDEN_BATCH)
    return Ok(None)
