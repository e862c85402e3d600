"""
tests/test_admin_service.py -- Unit tests for auth.admin.UserAdminService.

Covers the record-level rules that route roles cannot express:
  - no self-deactivation, no self-deletion
  - the last active admin keeps the ADMIN role and stays active
  - deleting a user removes the documents they own
  - listing filters and pagination
"""

from __future__ import annotations

import pytest

from auth.admin import UserAdminService
from auth.models import Principal, Role
from core.errors import Err, ErrorKind, Ok
from documents.models import Document

ADMIN_ROLES = {Role.ADMIN, Role.USER}


@pytest.mark.asyncio
async def test_create_user_with_roles(admin_service: UserAdminService) -> None:
    result = await admin_service.create_user("Mod@Example.com", "secret123", "Mo Derator", [Role.MODERATOR])
    assert isinstance(result, Ok)
    assert result.value.email == "mod@example.com"
    assert result.value.roles == frozenset({Role.MODERATOR})


@pytest.mark.asyncio
async def test_create_user_duplicate(admin_service: UserAdminService, make_user) -> None:
    make_user("taken@example.com")
    result = await admin_service.create_user("taken@example.com", "secret123")
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.CONFLICT


@pytest.mark.asyncio
async def test_create_user_short_password(admin_service: UserAdminService, auth_service) -> None:
    result = await admin_service.create_user("new@example.com", "123")
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.INVALID_INPUT
    # Same rule and wording as self-service registration.
    assert result == await auth_service.register("other@example.com", "123")


@pytest.mark.asyncio
async def test_list_users_filters_and_pages(admin_service: UserAdminService, make_user) -> None:
    make_user("admin@example.com", roles=ADMIN_ROLES)
    for i in range(4):
        make_user(f"user{i}@example.com")
    make_user("off@example.com", is_active=False)

    page = (await admin_service.list_users(page=1, limit=2)).value
    assert page.total == 6
    assert len(page.items) == 2
    assert page.pages == 3

    admins = (await admin_service.list_users(role=Role.ADMIN)).value
    assert [r.email for r in admins.items] == ["admin@example.com"]

    inactive = (await admin_service.list_users(is_active=False)).value
    assert [r.email for r in inactive.items] == ["off@example.com"]


@pytest.mark.asyncio
async def test_role_filter_does_not_match_prefix(admin_service: UserAdminService, make_user) -> None:
    make_user("mod@example.com", roles={Role.MODERATOR})
    users = (await admin_service.list_users(role=Role.USER)).value
    assert users.total == 0


@pytest.mark.asyncio
async def test_update_user_email_conflict(admin_service: UserAdminService, make_user) -> None:
    make_user("taken@example.com")
    record = make_user("alice@example.com")
    result = await admin_service.update_user(record.id, email="Taken@example.com")
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.CONFLICT


@pytest.mark.asyncio
async def test_update_user_name_and_email(admin_service: UserAdminService, make_user) -> None:
    record = make_user("alice@example.com")
    result = await admin_service.update_user(record.id, email="alice2@example.com", full_name="  Alice  ")
    assert isinstance(result, Ok)
    assert result.value.email == "alice2@example.com"
    assert result.value.full_name == "Alice"


@pytest.mark.asyncio
async def test_update_missing_user(admin_service: UserAdminService) -> None:
    result = await admin_service.update_user("missing", full_name="Nobody")
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_update_roles_requires_a_role(admin_service: UserAdminService, make_user) -> None:
    record = make_user("alice@example.com")
    result = await admin_service.update_roles(record.id, [])
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.INVALID_INPUT


@pytest.mark.asyncio
async def test_last_admin_keeps_admin_role(admin_service: UserAdminService, make_user) -> None:
    admin = make_user("admin@example.com", roles=ADMIN_ROLES)
    result = await admin_service.update_roles(admin.id, [Role.USER])
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.INVALID_INPUT


@pytest.mark.asyncio
async def test_admin_role_removable_when_another_admin_exists(admin_service: UserAdminService, make_user) -> None:
    first = make_user("admin1@example.com", roles=ADMIN_ROLES)
    make_user("admin2@example.com", roles=ADMIN_ROLES)
    result = await admin_service.update_roles(first.id, [Role.USER])
    assert isinstance(result, Ok)
    assert result.value.roles == frozenset({Role.USER})


@pytest.mark.asyncio
async def test_cannot_deactivate_self(admin_service: UserAdminService, make_user) -> None:
    admin = make_user("admin@example.com", roles=ADMIN_ROLES)
    make_user("admin2@example.com", roles=ADMIN_ROLES)
    result = await admin_service.set_active(Principal.from_record(admin), admin.id, False)
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.INVALID_INPUT


@pytest.mark.asyncio
async def test_cannot_deactivate_last_admin(admin_service: UserAdminService, make_user) -> None:
    admin = make_user("admin@example.com", roles=ADMIN_ROLES)
    other_admin = make_user("admin2@example.com", roles=ADMIN_ROLES, is_active=False)
    # Only one *active* admin exists; another admin deactivating them is refused.
    actor = Principal.from_record(other_admin)
    result = await admin_service.set_active(actor, admin.id, False)
    assert isinstance(result, Err)


@pytest.mark.asyncio
async def test_deactivate_and_reactivate(admin_service: UserAdminService, make_user) -> None:
    admin = make_user("admin@example.com", roles=ADMIN_ROLES)
    user = make_user("alice@example.com")
    actor = Principal.from_record(admin)

    off = await admin_service.set_active(actor, user.id, False)
    assert isinstance(off, Ok) and off.value.is_active is False
    on = await admin_service.set_active(actor, user.id, True)
    assert isinstance(on, Ok) and on.value.is_active is True


@pytest.mark.asyncio
async def test_cannot_delete_self(admin_service: UserAdminService, make_user) -> None:
    admin = make_user("admin@example.com", roles=ADMIN_ROLES)
    result = await admin_service.delete_user(Principal.from_record(admin), admin.id)
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.INVALID_INPUT


@pytest.mark.asyncio
async def test_delete_user_cascades_documents(
    admin_service: UserAdminService, make_user, user_store, document_store
) -> None:
    admin = make_user("admin@example.com", roles=ADMIN_ROLES)
    user = make_user("alice@example.com")
    kept = await document_store.create(Document(owner_id=admin.id, title="admin doc"))
    await document_store.create(Document(owner_id=user.id, title="a"))
    await document_store.create(Document(owner_id=user.id, title="b"))

    result = await admin_service.delete_user(Principal.from_record(admin), user.id)
    assert result == Ok(None)
    assert await user_store.find_by_id(user.id) is None
    assert await document_store.count_by_owner(user.id) == 0
    assert await document_store.get(kept.id) is not None


@pytest.mark.asyncio
async def test_delete_missing_user(admin_service: UserAdminService, make_user) -> None:
    admin = make_user("admin@example.com", roles=ADMIN_ROLES)
    result = await admin_service.delete_user(Principal.from_record(admin), "missing")
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.NOT_FOUND


class _FailingDocuments:
    """Owned-resource store whose cascade always fails, recording what it saw."""

    def __init__(self, user_store) -> None:
        self._user_store = user_store
        self.user_present: bool | None = None

    async def delete_by_owner(self, owner_id: str) -> int:
        self.user_present = await self._user_store.find_by_id(owner_id) is not None
        raise RuntimeError("document store unavailable")


@pytest.mark.asyncio
async def test_delete_user_removes_account_before_documents(make_user, user_store, hasher, settings) -> None:
    admin = make_user("admin@example.com", roles=ADMIN_ROLES)
    user = make_user("alice@example.com")
    documents = _FailingDocuments(user_store)
    service = UserAdminService(user_store, documents, hasher, settings)

    with pytest.raises(RuntimeError):
        await service.delete_user(Principal.from_record(admin), user.id)
    assert documents.user_present is False
    assert await user_store.find_by_id(user.id) is None
