"""
tests/conftest.py -- Shared test fixtures for DocKeep.

This module provides:
  - settings / hasher / tokens: service building blocks with bcrypt cost 4
  - engine + user_store / document_store: an isolated in-memory database
  - auth_service / admin_service / document_service: wired like wire_services()
  - make_user: insert a credential record directly through the store
  - api: TestClient over the real app with a patched lifespan, plus an admin
    and a regular user with ready-made bearer tokens

Design: each fixture builds its own in-memory SQLite engine on a StaticPool.
The stores run every query in a worker thread, and a plain :memory: DB is
per-connection, so a normal pool would present a blank schema to each
worker thread. StaticPool hands the same single connection to every thread
(check_same_thread=False), which is safe because TestClient requests and
awaited store calls never overlap. A fresh engine per fixture means tests
never see each other's rows.

Environment variables must be set before any api/auth/core import:
DEBUG lets get_settings() auto-generate SECRET_KEY instead of raising,
BCRYPT_ROUNDS keeps hashing fast, and LOGIN_RATE_LIMIT is raised because
the module-level app reads it once when the route table is built.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import NamedTuple

# CRITICAL: Set before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from api.main import app, wire_services
from auth.admin import UserAdminService
from auth.models import DEFAULT_ROLES, CredentialRecord, Role, TokenClaims
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import SqlCredentialStore
from auth.tokens import TokenService
from core.config import Settings, get_settings
from documents.service import DocumentService
from documents.store import DocumentStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters"
DEFAULT_PASSWORD = "secret123"


def _memory_engine():
    return create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)


# ---------------------------------------------------------------------------
# Service building blocks
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(debug=True, secret_key=TEST_SECRET, bcrypt_rounds=4)


@pytest.fixture
def hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(settings)


@pytest.fixture
def tokens(settings: Settings) -> TokenService:
    return TokenService(settings)


@pytest.fixture
def engine():
    engine = _memory_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def user_store(engine) -> SqlCredentialStore:
    return SqlCredentialStore(engine=engine)


@pytest.fixture
def document_store(engine) -> DocumentStore:
    return DocumentStore(engine=engine)


@pytest.fixture
def auth_service(user_store, hasher, tokens, settings) -> AuthService:
    return AuthService(user_store, hasher, tokens, settings)


@pytest.fixture
def admin_service(user_store, document_store, hasher, settings) -> UserAdminService:
    return UserAdminService(user_store, document_store, hasher, settings)


@pytest.fixture
def document_service(document_store) -> DocumentService:
    return DocumentService(document_store)


def _insert_user(
    store: SqlCredentialStore,
    hasher: PasswordHasher,
    email: str,
    password: str = DEFAULT_PASSWORD,
    roles=DEFAULT_ROLES,
    is_active: bool = True,
) -> CredentialRecord:
    return store.insert(
        CredentialRecord(
            email=email,
            password_hash=hasher.hash(password),
            roles=frozenset(roles),
            is_active=is_active,
        )
    )


@pytest.fixture
def make_user(user_store, hasher):
    """Factory fixture: make_user("a@example.com", roles={Role.ADMIN})."""

    def _make(email: str, password: str = DEFAULT_PASSWORD, roles=DEFAULT_ROLES, is_active: bool = True):
        return _insert_user(user_store, hasher, email, password, roles, is_active)

    return _make


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


class ApiContext(NamedTuple):
    client: TestClient
    admin: CredentialRecord
    admin_token: str
    user: CredentialRecord
    user_token: str

    @property
    def admin_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.admin_token}"}

    @property
    def user_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.user_token}"}


def _patch_lifespan():
    """Return an async context manager that replaces the real lifespan.

    Wires the real services over an isolated in-memory database so
    TestClient routes never touch dockeep.db.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        engine = _memory_engine()
        wire_services(app, get_settings(), engine)
        yield
        engine.dispose()

    return test_lifespan


@pytest.fixture
def api() -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for HTTP integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers and guards. One ADMIN and one USER are
    created once the client has started; their tokens come from the same
    TokenService the app verifies with.
    """
    app.router.lifespan_context = _patch_lifespan()

    with TestClient(app, raise_server_exceptions=True) as client:
        store = app.state.user_store
        admin = _insert_user(store, app.state.hasher, "admin@example.com", roles={Role.ADMIN, Role.USER})
        user = _insert_user(store, app.state.hasher, "user@example.com")
        admin_token = _token_for(app.state.tokens, admin)
        user_token = _token_for(app.state.tokens, user)
        yield ApiContext(client, admin, admin_token, user, user_token)


def _token_for(tokens: TokenService, record: CredentialRecord) -> str:
    token, _ = tokens.issue_access_token(TokenClaims(sub=record.id, email=record.email, roles=record.roles))
    return token
