"""
auth/dependencies.py -- Authentication guard and FastAPI Depends() helpers.

One auth method only: an "Authorization: Bearer <token>" header. No cookies,
no API keys.

authenticate() is the guard itself, independent of FastAPI:
  1. header absent, scheme not exactly "Bearer", or empty token -> Err
  2. token fails verification (any reason)                      -> Err
  3. subject missing from the store, or account inactive         -> Err
  4. otherwise                                                  -> Principal
Every failure is UNAUTHENTICATED with the same message so callers cannot
tell an expired token from a forged one.

Step 3 costs one store lookup per request. In exchange, deactivating a user
takes effect on their very next request without a revocation list.

get_current_principal() wraps authenticate() as a dependency, raises
AuthError on failure and stores the Principal on request.state.principal.
require_roles() builds the role-checking dependency used by api/routing.py.

Layer rule: no imports from api/ or documents/. This module may import from
fastapi because it is part of the dependency injection wiring.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable

from fastapi import Request

from auth.models import Principal, Role
from auth.roles import check_roles
from auth.store import CredentialStore
from auth.tokens import TokenService
from core.errors import AuthError, Err, ErrorKind, Ok, Result

BEARER_SCHEME = "Bearer"
AUTHENTICATION_REQUIRED = "Authentication required."


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from "Bearer <token>", or None for anything else.

    The scheme match is exact and case-sensitive.
    """
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != BEARER_SCHEME or not parts[1]:
        return None
    return parts[1]


async def authenticate(authorization: str | None, tokens: TokenService, store: CredentialStore) -> Result[Principal]:
    token = extract_bearer_token(authorization)
    if token is None:
        return Err(ErrorKind.UNAUTHENTICATED, AUTHENTICATION_REQUIRED)
    verified = tokens.verify_access_token(token)
    if isinstance(verified, Err):
        return Err(ErrorKind.UNAUTHENTICATED, AUTHENTICATION_REQUIRED)
    record = await store.find_by_id(verified.value.sub)
    if record is None or not record.is_active:
        return Err(ErrorKind.UNAUTHENTICATED, AUTHENTICATION_REQUIRED)
    return Ok(Principal.from_record(record))


async def get_current_principal(request: Request) -> Principal:
    """Require authentication. Raises AuthError (-> 401) if not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(principal: Principal = Depends(get_current_principal)): ...
    """
    principal = getattr(request.state, "principal", None)
    if principal is not None:
        return principal
    result = await authenticate(
        request.headers.get("Authorization"),
        request.app.state.tokens,
        request.app.state.user_store,
    )
    if isinstance(result, Err):
        raise AuthError(result)
    request.state.principal = result.value
    return result.value


def require_roles(required_roles: Iterable[Role]) -> Callable[[Request], Awaitable[Principal]]:
    """Build a dependency: authenticate, then check required_roles.

    An empty set means "any authenticated principal".
    """
    required = frozenset(required_roles)

    async def dependency(request: Request) -> Principal:
        principal = await get_current_principal(request)
        result = check_roles(principal, required)
        if isinstance(result, Err):
            raise AuthError(result)
        return principal

    return dependency
