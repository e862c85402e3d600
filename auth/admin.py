"""
auth/admin.py -- Administrative and self-service user management.

Route-level role checks (ADMIN / MODERATOR) happen before these methods run;
this module enforces record-level invariants only:
  [M4] an admin cannot deactivate or delete their own account, and the last
       active admin cannot be deactivated or stripped of the ADMIN role.
  Deleting a user removes the credential row before the documents they
  own, so a failed cascade never leaves a live account without its data.

Layer rule: no imports from api/ or documents/. The owned-resource store is
received as anything with an async delete_by_owner().
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from auth.models import ADMIN_ROLE, DEFAULT_ROLES, CredentialRecord, Principal, Role
from auth.passwords import PasswordHasher
from auth.service import EMAIL_TAKEN, USER_NOT_FOUND, check_password_policy, normalize_email
from auth.store import CredentialStore, DuplicateEmailError
from core.config import Settings
from core.errors import Err, ErrorKind, Ok, Result
from core.pagination import Page, page_offset

logger = logging.getLogger("dockeep.auth")


class OwnedResourceStore(Protocol):
    async def delete_by_owner(self, owner_id: str) -> int: ...


class UserAdminService:
    def __init__(
        self,
        store: CredentialStore,
        owned: OwnedResourceStore,
        hasher: PasswordHasher,
        settings: Settings,
    ) -> None:
        self._store = store
        self._owned = owned
        self._hasher = hasher
        self._min_length = settings.password_min_length

    async def create_user(
        self, email: str, password: str, full_name: str | None = None, roles: Iterable[Role] | None = None
    ) -> Result[CredentialRecord]:
        email = normalize_email(email)
        if await self._store.find_by_email(email) is not None:
            return Err(ErrorKind.CONFLICT, EMAIL_TAKEN)
        policy = check_password_policy(password, self._min_length)
        if isinstance(policy, Err):
            return policy
        role_set = frozenset(roles) if roles else DEFAULT_ROLES
        try:
            record = await self._store.create(
                CredentialRecord(
                    email=email,
                    password_hash=self._hasher.hash(password),
                    full_name=(full_name or "").strip(),
                    roles=role_set,
                )
            )
        except DuplicateEmailError:
            return Err(ErrorKind.CONFLICT, EMAIL_TAKEN)
        logger.info("Admin created user %s with roles %s", record.id, sorted(r.value for r in role_set))
        return Ok(record)

    async def list_users(
        self, *, is_active: bool | None = None, role: Role | None = None, page: int = 1, limit: int = 10
    ) -> Result[Page[CredentialRecord]]:
        offset, limit = page_offset(page, limit)
        items = await self._store.list_records(is_active=is_active, role=role, offset=offset, limit=limit)
        total = await self._store.count(is_active=is_active, role=role)
        return Ok(Page(items=items, total=total, page=offset // limit + 1, limit=limit))

    async def get_user(self, user_id: str) -> Result[CredentialRecord]:
        record = await self._store.find_by_id(user_id)
        if record is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        return Ok(record)

    async def update_user(
        self, user_id: str, *, email: str | None = None, full_name: str | None = None
    ) -> Result[CredentialRecord]:
        """Change name and/or email. Also backs the self-service PATCH /users/me."""
        record = await self._store.find_by_id(user_id)
        if record is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        fields: dict = {}
        if full_name is not None:
            fields["full_name"] = full_name.strip()
        if email is not None:
            email = normalize_email(email)
            if email != record.email:
                other = await self._store.find_by_email(email)
                if other is not None:
                    return Err(ErrorKind.CONFLICT, "Email already in use.")
                fields["email"] = email
        if not fields:
            return Ok(record)
        try:
            updated = await self._store.update(user_id, **fields)
        except DuplicateEmailError:
            return Err(ErrorKind.CONFLICT, "Email already in use.")
        if updated is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        return Ok(updated)

    async def update_roles(self, user_id: str, roles: Iterable[Role]) -> Result[CredentialRecord]:
        role_set = frozenset(roles)
        if not role_set:
            return Err(ErrorKind.INVALID_INPUT, "A user must have at least one role.")
        record = await self._store.find_by_id(user_id)
        if record is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        if ADMIN_ROLE in record.roles and ADMIN_ROLE not in role_set and record.is_active:
            if await self._store.count(is_active=True, role=ADMIN_ROLE) <= 1:
                return Err(ErrorKind.INVALID_INPUT, "Cannot remove the ADMIN role from the last active admin.")
        updated = await self._store.update(user_id, roles=role_set)
        if updated is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        logger.info("Roles for user %s set to %s", user_id, sorted(r.value for r in role_set))
        return Ok(updated)

    async def set_active(self, actor: Principal, user_id: str, active: bool) -> Result[CredentialRecord]:
        """Activate or deactivate a user.

        Deactivation takes effect on the user's next request: the
        authentication guard re-reads is_active every time.
        """
        record = await self._store.find_by_id(user_id)
        if record is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        if not active:
            if record.id == actor.id:
                return Err(ErrorKind.INVALID_INPUT, "You cannot deactivate your own account.")
            if ADMIN_ROLE in record.roles and record.is_active:
                if await self._store.count(is_active=True, role=ADMIN_ROLE) <= 1:
                    return Err(ErrorKind.INVALID_INPUT, "Cannot deactivate the last active admin account.")
        updated = await self._store.update(user_id, is_active=active)
        if updated is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        logger.info("User %s %s by %s", user_id, "activated" if active else "deactivated", actor.id)
        return Ok(updated)

    async def delete_user(self, actor: Principal, user_id: str) -> Result[None]:
        record = await self._store.find_by_id(user_id)
        if record is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        if record.id == actor.id:
            return Err(ErrorKind.INVALID_INPUT, "You cannot delete your own account.")
        await self._store.delete(user_id)
        removed = await self._owned.delete_by_owner(user_id)
        logger.info("User %s deleted by %s (%d owned documents removed)", user_id, actor.id, removed)
        return Ok(None)
