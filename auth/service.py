"""
auth/service.py -- Registration, login and password flows.

Every public coroutine returns a Result (Ok | Err) instead of raising for
expected failures. Route handlers unwrap() the result; api/main.py maps the
ErrorKind to a status code.

Anti-enumeration rules:
  login()            -- unknown email, inactive account and wrong password
                        all return the same Err message. bcrypt runs on
                        every path (dummy hash for unknown emails) [C1].
  forgot_password()  -- returns the same message whether or not the email
                        exists.
  reset_password()   -- every token problem (signature, expiry, wrong
                        purpose, already used, superseded) returns the same
                        Err message.

Single-use reset tokens:
  forgot_password() stores the new token's jti on the record
  (reset_token_id). reset_password() requires the presented token's jti to
  match and clears it in the same conditional UPDATE that writes the new
  hash, so concurrent requests with one token cannot both succeed. Issuing
  a newer reset token therefore also invalidates older ones.

Layer rule: no imports from api/ or documents/.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from auth.models import DEFAULT_ROLES, AuthSession, CredentialRecord, Principal, TokenClaims
from auth.passwords import PasswordHasher
from auth.store import CredentialStore, DuplicateEmailError
from auth.tokens import INVALID_OR_EXPIRED_TOKEN, TokenService
from core.config import Settings
from core.errors import Err, ErrorKind, Ok, Result

logger = logging.getLogger("dockeep.auth")

INVALID_CREDENTIALS = "Invalid credentials."
EMAIL_TAKEN = "Email already registered."
FORGOT_PASSWORD_MESSAGE = "If the email exists, you will receive instructions to reset your password."
PASSWORD_RESET_MESSAGE = "Password reset successfully."
PASSWORD_CHANGED_MESSAGE = "Password changed successfully."
WRONG_CURRENT_PASSWORD = "Current password is incorrect."
SAME_PASSWORD = "New password must be different from the current password."
USER_NOT_FOUND = "User not found."

# Delivery of the reset token is out of band: (email, token) -> None.
ResetTokenSender = Callable[[str, str], Awaitable[None]]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def check_password_policy(password: str, min_length: int) -> Result[None]:
    """The one password rule, shared by self-service and admin account creation."""
    if len(password) < min_length:
        return Err(ErrorKind.INVALID_INPUT, f"Password must be at least {min_length} characters.")
    return Ok(None)


class AuthService:
    """Orchestrates the credential flows over the store, hasher and token service."""

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        settings: Settings,
        reset_sender: ResetTokenSender | None = None,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._tokens = tokens
        self._min_length = settings.password_min_length
        self._debug = settings.debug
        self._reset_sender = reset_sender or self._log_reset_token

    # ------------------------------------------------------------------
    # Registration / login
    # ------------------------------------------------------------------

    async def register(self, email: str, password: str, full_name: str | None = None) -> Result[AuthSession]:
        email = normalize_email(email)
        if await self._store.find_by_email(email) is not None:
            return Err(ErrorKind.CONFLICT, EMAIL_TAKEN)
        policy = self.check_password_policy(password)
        if isinstance(policy, Err):
            return policy
        try:
            record = await self._store.create(
                CredentialRecord(
                    email=email,
                    password_hash=self._hasher.hash(password),
                    full_name=(full_name or "").strip(),
                    roles=DEFAULT_ROLES,
                )
            )
        except DuplicateEmailError:
            # A concurrent register won the race past the check above.
            return Err(ErrorKind.CONFLICT, EMAIL_TAKEN)
        logger.info("Registered user %s", record.id)
        return Ok(self._session_for(record))

    async def login(self, email: str, password: str) -> Result[AuthSession]:
        record = await self._store.find_by_email(normalize_email(email))
        if record is None:
            self._hasher.dummy_verify(password)
            return Err(ErrorKind.UNAUTHENTICATED, INVALID_CREDENTIALS)
        password_ok = self._hasher.verify(password, record.password_hash)
        if not password_ok or not record.is_active:
            logger.info("Rejected login for user %s (active=%s)", record.id, record.is_active)
            return Err(ErrorKind.UNAUTHENTICATED, INVALID_CREDENTIALS)
        return Ok(self._session_for(record))

    async def refresh(self, principal: Principal) -> Result[AuthSession]:
        """Issue a fresh access token if the account still exists and is active."""
        record = await self._store.find_by_id(principal.id)
        if record is None or not record.is_active:
            return Err(ErrorKind.UNAUTHENTICATED, INVALID_CREDENTIALS)
        return Ok(self._session_for(record))

    async def profile(self, principal: Principal) -> Result[CredentialRecord]:
        record = await self._store.find_by_id(principal.id)
        if record is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        return Ok(record)

    # ------------------------------------------------------------------
    # Password flows
    # ------------------------------------------------------------------

    async def forgot_password(self, email: str) -> Result[str]:
        """Issue a reset token for an existing active account. Same reply either way."""
        record = await self._store.find_by_email(normalize_email(email))
        if record is not None and record.is_active:
            grant = self._tokens.issue_reset_token(record.id)
            await self._store.update(record.id, reset_token_id=grant.token_id)
            await self._reset_sender(record.email, grant.token)
        return Ok(FORGOT_PASSWORD_MESSAGE)

    async def reset_password(self, token: str, new_password: str) -> Result[str]:
        verified = self._tokens.verify_reset_token(token)
        if isinstance(verified, Err):
            return verified
        policy = self.check_password_policy(new_password)
        if isinstance(policy, Err):
            return policy
        grant = verified.value
        # The store matches and clears reset_token_id in one statement.
        claimed = await self._store.consume_reset_token(
            grant.user_id, grant.token_id, self._hasher.hash(new_password)
        )
        if not claimed:
            return Err(ErrorKind.INVALID_INPUT, INVALID_OR_EXPIRED_TOKEN)
        logger.info("Password reset for user %s", grant.user_id)
        return Ok(PASSWORD_RESET_MESSAGE)

    async def change_password(self, principal: Principal, old_password: str, new_password: str) -> Result[str]:
        record = await self._store.find_by_id(principal.id)
        if record is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        if not self._hasher.verify(old_password, record.password_hash):
            return Err(ErrorKind.INVALID_INPUT, WRONG_CURRENT_PASSWORD)
        if old_password == new_password:
            return Err(ErrorKind.INVALID_INPUT, SAME_PASSWORD)
        policy = self.check_password_policy(new_password)
        if isinstance(policy, Err):
            return policy
        # A password change also voids any outstanding reset token.
        await self._store.update(record.id, password_hash=self._hasher.hash(new_password), reset_token_id=None)
        logger.info("Password changed for user %s", record.id)
        return Ok(PASSWORD_CHANGED_MESSAGE)

    def check_password_policy(self, password: str) -> Result[None]:
        return check_password_policy(password, self._min_length)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _session_for(self, record: CredentialRecord) -> AuthSession:
        claims = TokenClaims(sub=record.id, email=record.email, roles=frozenset(record.roles))
        token, expires_in = self._tokens.issue_access_token(claims)
        return AuthSession(access_token=token, expires_in=expires_in, record=record)

    async def _log_reset_token(self, email: str, token: str) -> None:
        """Default sender: there is no mail integration, so log the issue.

        The token value itself is only logged in debug mode.
        """
        if self._debug:
            logger.info("Password reset token for %s: %s", email, token)
        else:
            logger.info("Password reset token issued; configure a reset sender to deliver it")
