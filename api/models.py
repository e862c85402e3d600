"""
API request and response models for DocKeep REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
documents/models.py, which own the internal domain representation. Route
handlers map between the two.

Response models are built field by field from domain records. There is no
generic "dump the record" path, so password_hash and reset_token_id cannot
leak into a response.

Password length policy lives in auth/service.py (400 INVALID_INPUT), not in
these models. The models only cap length to keep bcrypt input bounded.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import AuthSession, CredentialRecord, Role
from core.pagination import Page
from documents.models import Document

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Annotated type so the same constraints apply wherever an email is accepted.
_Email = Annotated[str, Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)]


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: _Email
    password: str = Field(min_length=1, max_length=100)
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=100)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=100)


class ForgotPasswordRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=255)


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1, max_length=2048)
    new_password: str = Field(min_length=1, max_length=100)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(min_length=1, max_length=100)
    new_password: str = Field(min_length=1, max_length=100)


# ---------------------------------------------------------------------------
# Users -- request models
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /api/v1/users (admin only)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: _Email
    password: str = Field(min_length=1, max_length=100)
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    roles: list[Role] = Field(default_factory=lambda: [Role.USER], min_length=1)


class UserPatch(BaseModel):
    """Request body for PATCH /api/v1/users/{id} and PATCH /api/v1/users/me."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: Optional[_Email] = None
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=100)


class RolesUpdate(BaseModel):
    """Request body for PUT /api/v1/users/{id}/roles."""

    roles: list[Role] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Documents -- request models
# ---------------------------------------------------------------------------


class DocumentCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)


class DocumentPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)


class BatchDeleteRequest(BaseModel):
    """Request body for POST /api/v1/documents/batch-delete."""

    ids: list[str] = Field(min_length=1, max_length=100)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    full_name: str
    roles: list[Role]
    is_active: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, record: CredentialRecord) -> "UserResponse":
        """Factory Method: the record-to-response mapping lives with the model."""
        return cls(
            id=record.id,
            email=record.email,
            full_name=record.full_name,
            roles=sorted(record.roles, key=lambda r: r.value),
            is_active=record.is_active,
            created_at=record.created_at or "",
            updated_at=record.updated_at or "",
        )


class TokenResponse(BaseModel):
    """Response for register, login and refresh."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: Optional[UserResponse] = None

    @classmethod
    def from_session(cls, session: AuthSession, include_user: bool = True) -> "TokenResponse":
        return cls(
            access_token=session.access_token,
            token_type=session.token_type,
            expires_in=session.expires_in,
            user=UserResponse.from_record(session.record) if include_user and session.record else None,
        )


class UserListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: list[UserResponse]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def from_page(cls, page: Page[CredentialRecord]) -> "UserListResponse":
        return cls(
            items=[UserResponse.from_record(r) for r in page.items],
            total=page.total,
            page=page.page,
            limit=page.limit,
            pages=page.pages,
        )


class DocumentResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    title: str
    description: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_document(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            owner_id=document.owner_id,
            title=document.title,
            description=document.description,
            created_at=document.created_at,
            updated_at=document.updated_at,
        )


class DocumentListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: list[DocumentResponse]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def from_page(cls, page: Page[Document]) -> "DocumentListResponse":
        return cls(
            items=[DocumentResponse.from_document(d) for d in page.items],
            total=page.total,
            page=page.page,
            limit=page.limit,
            pages=page.pages,
        )


class BatchDeleteResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    count: int


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
