"""
api/main.py -- FastAPI application entry point for DocKeep.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- adds CORS headers for allowed browser origins
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan builds the shared engine, stores and services once at startup and
disposes of the engine on shutdown. The services hold the immutable Settings
by reference; nothing else is process-global.

Error mapping: the AuthError handler below is the only place an ErrorKind
becomes an HTTP status (core.errors.ERROR_STATUS).
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import auth_routes
from api.routes.v1.documents import DOCUMENT_ROUTES
from api.routes.v1.users import USER_ROUTES
from api.routing import build_router
from auth.admin import UserAdminService
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import SqlCredentialStore
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.db import make_engine
from core.errors import ERROR_STATUS, AuthError, ErrorKind
from documents.service import DocumentService
from documents.store import DocumentStore

VERSION = "0.3.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("dockeep.api")


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def wire_services(app: FastAPI, settings: Settings, engine: Engine) -> None:
    """Build stores and services on app.state. Shared by lifespan and tests."""
    user_store = SqlCredentialStore(engine=engine)
    document_store = DocumentStore(engine=engine)
    hasher = PasswordHasher(settings)
    tokens = TokenService(settings)

    app.state.settings = settings
    app.state.engine = engine
    app.state.user_store = user_store
    app.state.document_store = document_store
    app.state.hasher = hasher
    app.state.tokens = tokens
    app.state.auth_service = AuthService(user_store, hasher, tokens, settings)
    app.state.admin_service = UserAdminService(user_store, document_store, hasher, settings)
    app.state.document_service = DocumentService(document_store)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown, even if a request handler crashed in between.
    """
    settings: Settings = app.state.settings
    logger.info("DocKeep API starting up")
    engine = make_engine(settings.database_url)
    wire_services(app, settings, engine)
    logger.info(
        "Auth initialized (token ttl=%ds, bcrypt rounds=%d, users present=%s)",
        app.state.tokens.access_token_ttl,
        app.state.hasher.rounds,
        app.state.user_store.has_users(),
    )

    yield

    engine.dispose()
    logger.info("DocKeep API shutdown complete")


# ---------------------------------------------------------------------------
# Error envelope helpers
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map a classified failure to its HTTP status.

    401 responses carry WWW-Authenticate so clients know to send a bearer
    token. The message is whatever the service chose -- services never put
    verification internals in it.
    """
    status_code = ERROR_STATUS[exc.kind]
    response = _error_response(status_code, exc.kind.value, exc.error.message)
    if exc.kind is ErrorKind.UNAUTHENTICATED:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return _error_response(422, "validation_error", "Request validation failed.", str(exc.errors()))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework-raised HTTP errors (unknown route, wrong method) in the envelope."""
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title="DocKeep API",
        description="Bearer-token authentication, role checks and document ownership.",
        version=VERSION,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.add_middleware(SlowAPIMiddleware)
    # SlowAPI looks for app.state.limiter by convention.
    app.state.limiter = limiter

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    router = build_router([*auth_routes(settings), *USER_ROUTES, *DOCUMENT_ROUTES])
    app.include_router(router, prefix="/api/v1")

    @app.get("/api/v1/health", tags=["Health"])
    async def health() -> HealthResponse:
        """Return API liveness and current version. Public, not rate limited."""
        return HealthResponse(version=VERSION)

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    return app


app = create_app()
