"""
api/routes/v1/users.py -- User management endpoints.

Auth policy (declared in USER_ROUTES):
  GET    /api/v1/users/me                -- authenticated (own record)
  PATCH  /api/v1/users/me                -- authenticated (own name/email)
  GET    /api/v1/users                   -- ADMIN or MODERATOR
  GET    /api/v1/users/{id}              -- ADMIN or MODERATOR
  POST   /api/v1/users                   -- ADMIN
  PATCH  /api/v1/users/{id}              -- ADMIN
  PUT    /api/v1/users/{id}/roles        -- ADMIN
  PUT    /api/v1/users/{id}/activate     -- ADMIN
  PUT    /api/v1/users/{id}/deactivate   -- ADMIN
  DELETE /api/v1/users/{id}              -- ADMIN; cascades owned documents

[M4] Self-deactivation, self-deletion and demoting/deactivating the last
active admin are rejected by auth/admin.py.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Query, Request, Response

from api.models import RolesUpdate, UserCreate, UserListResponse, UserPatch, UserResponse
from api.routing import AUTHENTICATED, RouteSpec
from auth.admin import UserAdminService
from auth.dependencies import get_current_principal
from auth.models import Principal, Role
from core.errors import unwrap

ADMIN_ONLY = frozenset({Role.ADMIN})
STAFF = frozenset({Role.ADMIN, Role.MODERATOR})


def _service(request: Request) -> UserAdminService:
    return request.app.state.admin_service


# ---------------------------------------------------------------------------
# Self-service
# ---------------------------------------------------------------------------


async def get_me(request: Request, principal: Principal = Depends(get_current_principal)) -> UserResponse:
    return UserResponse.from_record(unwrap(await _service(request).get_user(principal.id)))


async def update_me(
    request: Request,
    body: UserPatch,
    principal: Principal = Depends(get_current_principal),
) -> UserResponse:
    record = unwrap(await _service(request).update_user(principal.id, email=body.email, full_name=body.full_name))
    return UserResponse.from_record(record)


# ---------------------------------------------------------------------------
# Staff / admin
# ---------------------------------------------------------------------------


async def list_users(
    request: Request,
    is_active: Optional[bool] = None,
    role: Optional[Role] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> UserListResponse:
    result = await _service(request).list_users(is_active=is_active, role=role, page=page, limit=limit)
    return UserListResponse.from_page(unwrap(result))


async def get_user(request: Request, user_id: str) -> UserResponse:
    return UserResponse.from_record(unwrap(await _service(request).get_user(user_id)))


async def create_user(request: Request, body: UserCreate) -> UserResponse:
    """Create an account with explicit roles. Admin only."""
    record = unwrap(await _service(request).create_user(body.email, body.password, body.full_name, body.roles))
    return UserResponse.from_record(record)


async def update_user(request: Request, user_id: str, body: UserPatch) -> UserResponse:
    record = unwrap(await _service(request).update_user(user_id, email=body.email, full_name=body.full_name))
    return UserResponse.from_record(record)


async def update_roles(request: Request, user_id: str, body: RolesUpdate) -> UserResponse:
    return UserResponse.from_record(unwrap(await _service(request).update_roles(user_id, body.roles)))


async def activate_user(
    request: Request, user_id: str, principal: Principal = Depends(get_current_principal)
) -> UserResponse:
    return UserResponse.from_record(unwrap(await _service(request).set_active(principal, user_id, True)))


async def deactivate_user(
    request: Request, user_id: str, principal: Principal = Depends(get_current_principal)
) -> UserResponse:
    return UserResponse.from_record(unwrap(await _service(request).set_active(principal, user_id, False)))


async def delete_user(request: Request, user_id: str, principal: Principal = Depends(get_current_principal)) -> Response:
    unwrap(await _service(request).delete_user(principal, user_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Route table -- /users/me must precede /users/{user_id}
# ---------------------------------------------------------------------------

USER_ROUTES: list[RouteSpec] = [
    RouteSpec("/users/me", "GET", get_me, AUTHENTICATED, 200, UserResponse),
    RouteSpec("/users/me", "PATCH", update_me, AUTHENTICATED, 200, UserResponse),
    RouteSpec("/users", "GET", list_users, STAFF, 200, UserListResponse),
    RouteSpec("/users", "POST", create_user, ADMIN_ONLY, 201, UserResponse),
    RouteSpec("/users/{user_id}", "GET", get_user, STAFF, 200, UserResponse),
    RouteSpec("/users/{user_id}", "PATCH", update_user, ADMIN_ONLY, 200, UserResponse),
    RouteSpec("/users/{user_id}/roles", "PUT", update_roles, ADMIN_ONLY, 200, UserResponse),
    RouteSpec("/users/{user_id}/activate", "PUT", activate_user, ADMIN_ONLY, 200, UserResponse),
    RouteSpec("/users/{user_id}/deactivate", "PUT", deactivate_user, ADMIN_ONLY, 200, UserResponse),
    RouteSpec("/users/{user_id}", "DELETE", delete_user, ADMIN_ONLY, 204),
]
