"""
auth/roles.py -- Role-based authorization check.

check_roles() is a pure function over the caller's Principal and a route's
declared required-role set. It never looks at the request or the handler;
the route table in api/routing.py supplies the set explicitly.

  required_roles empty    -> any authenticated principal passes
  required_roles non-empty -> principal.roles must intersect it

Layer rule: no imports from api/ or documents/.
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.models import Principal, Role
from core.errors import Err, ErrorKind, Ok, Result

FORBIDDEN_ROLE = "Insufficient role for this operation."


def check_roles(principal: Principal, required_roles: Iterable[Role]) -> Result[Principal]:
    required = frozenset(required_roles)
    if not required or principal.roles & required:
        return Ok(principal)
    return Err(ErrorKind.FORBIDDEN, FORBIDDEN_ROLE)
