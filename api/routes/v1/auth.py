"""
api/routes/v1/auth.py -- Credential endpoints.

Routes (see auth_routes() for the authorization metadata):
  POST /api/v1/auth/register         -- public; 201 with access token
  POST /api/v1/auth/login            -- public; access token
  POST /api/v1/auth/forgot-password  -- public; constant reply
  POST /api/v1/auth/reset-password   -- public; reset token in body
  GET  /api/v1/auth/profile          -- authenticated
  POST /api/v1/auth/refresh          -- authenticated; fresh access token
  POST /api/v1/auth/change-password  -- authenticated

Security:
  [H2] login, register, forgot-password and reset-password are rate-limited
       per client IP.
  [M5] Cache-Control: no-store on every response that carries a token.
  Anti-enumeration rules live in auth/service.py; handlers only unwrap.
"""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
)
from api.routing import AUTHENTICATED, PUBLIC, RouteSpec
from auth.dependencies import get_current_principal
from auth.models import AuthSession, Principal
from auth.service import AuthService
from core.config import Settings
from core.errors import unwrap


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _token_response(session: AuthSession, status_code: int = 200, include_user: bool = True) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=TokenResponse.from_session(session, include_user=include_user).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


async def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account with the default USER role and return an access token."""
    session = unwrap(await _service(request).register(body.email, body.password, body.full_name))
    return _token_response(session, status_code=201)


async def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange email + password for an access token.

    Unknown email, inactive account and wrong password produce the same 401.
    """
    session = unwrap(await _service(request).login(body.email, body.password))
    return _token_response(session)


async def forgot_password(request: Request, body: ForgotPasswordRequest) -> MessageResponse:
    message = unwrap(await _service(request).forgot_password(body.email))
    return MessageResponse(message=message)


async def reset_password(request: Request, body: ResetPasswordRequest) -> MessageResponse:
    message = unwrap(await _service(request).reset_password(body.token, body.new_password))
    return MessageResponse(message=message)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


async def profile(request: Request, principal: Principal = Depends(get_current_principal)) -> UserResponse:
    record = unwrap(await _service(request).profile(principal))
    return UserResponse.from_record(record)


async def refresh(request: Request, principal: Principal = Depends(get_current_principal)) -> JSONResponse:
    session = unwrap(await _service(request).refresh(principal))
    return _token_response(session, include_user=False)


async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
) -> MessageResponse:
    message = unwrap(await _service(request).change_password(principal, body.old_password, body.new_password))
    return MessageResponse(message=message)


# ---------------------------------------------------------------------------
# Route table
# ---------------------------------------------------------------------------


def auth_routes(settings: Settings) -> list[RouteSpec]:
    limit = settings.login_rate_limit
    return [
        RouteSpec("/auth/register", "POST", register, PUBLIC, 201, TokenResponse, limit),
        RouteSpec("/auth/login", "POST", login, PUBLIC, 200, TokenResponse, limit),
        RouteSpec("/auth/forgot-password", "POST", forgot_password, PUBLIC, 200, MessageResponse, limit),
        RouteSpec("/auth/reset-password", "POST", reset_password, PUBLIC, 200, MessageResponse, limit),
        RouteSpec("/auth/profile", "GET", profile, AUTHENTICATED, 200, UserResponse),
        RouteSpec("/auth/refresh", "POST", refresh, AUTHENTICATED, 200, TokenResponse),
        RouteSpec("/auth/change-password", "POST", change_password, AUTHENTICATED, 200, MessageResponse),
    ]
