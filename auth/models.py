"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic beyond trivial
predicates). Stores and services do the work.

Layer rule: no imports from api/ or documents/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    USER = "USER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


ADMIN_ROLE = Role.ADMIN
DEFAULT_ROLES: frozenset[Role] = frozenset({Role.USER})


@dataclass
class CredentialRecord:
    """A persisted identity.

    password_hash is a bcrypt hash and never leaves the service layer -- API
    response models are built field by field and do not include it.

    reset_token_id holds the jti of the one outstanding reset token, or None.
    reset_password() clears it on use, which makes reset tokens single-use.

    id is None before the record is written to the database.
    """

    email: str
    password_hash: str
    roles: frozenset[Role] = field(default_factory=lambda: DEFAULT_ROLES)
    id: str | None = None
    full_name: str = ""
    is_active: bool = True
    reset_token_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to one request.

    Rebuilt from the Credential Store on every request; never persisted.
    """

    id: str
    email: str
    roles: frozenset[Role]
    is_active: bool = True

    @classmethod
    def from_record(cls, record: CredentialRecord) -> Principal:
        return cls(id=record.id, email=record.email, roles=frozenset(record.roles), is_active=record.is_active)

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles


@dataclass(frozen=True)
class TokenClaims:
    """Identity claims carried by an access token (sub, email, roles)."""

    sub: str
    email: str
    roles: frozenset[Role]
    iat: int = 0
    exp: int = 0


@dataclass(frozen=True)
class ResetGrant:
    """A verified (or freshly issued) reset token: subject id plus token id."""

    user_id: str
    token_id: str
    token: str = ""


@dataclass(frozen=True)
class AuthSession:
    """Result of register/login/refresh: a bearer token plus its lifetime."""

    access_token: str
    expires_in: int
    record: CredentialRecord | None = None
    token_type: str = "Bearer"
