"""
auth/tokens.py -- Access and reset token issue/verify (JWT, HS256).

Security design decisions:
  JWT: python-jose with HS256. Both token kinds are signed with the same
       SECRET_KEY. The "type" claim is the only thing separating a reset
       token from an access token, so every verification path checks it
       explicitly:
         - verify_access_token() rejects any token that carries "type".
         - verify_reset_token() rejects any token whose "type" != "reset".

  Failures: verification never raises. It returns an Err with one generic
       message per token kind, so the caller cannot tell "expired" from
       "bad signature" from "malformed".

  Expiry: exp = iat + duration, both integer seconds. The access token
       duration comes from Settings.jwt_expires_in ("1d", "12h", "30m",
       "45s"); anything unparsable falls back to one day.

Layer rule: no imports from api/ or documents/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Callable

from jose import JWTError, jwt

from auth.models import ResetGrant, Role, TokenClaims
from core.config import Settings
from core.errors import Err, ErrorKind, Ok, Result

logger = logging.getLogger("dockeep.auth")

_ALGORITHM = "HS256"
RESET_TOKEN_TYPE = "reset"
DEFAULT_EXPIRES_IN = 86400

_DURATION_RE = re.compile(r"^(\d+)([dhms])$")
_UNIT_SECONDS = {"d": 86400, "h": 3600, "m": 60, "s": 1}

INVALID_TOKEN = "Invalid token."
INVALID_OR_EXPIRED_TOKEN = "Invalid or expired token."


def parse_duration(value: str | None) -> int:
    """Convert "1d" / "12h" / "30m" / "45s" to seconds.

    Unparsable or zero durations return DEFAULT_EXPIRES_IN rather than
    raising -- a typo in JWT_EXPIRES_IN must not take the service down.
    """
    match = _DURATION_RE.match((value or "").strip())
    if match is None:
        return DEFAULT_EXPIRES_IN
    amount, unit = match.groups()
    seconds = int(amount) * _UNIT_SECONDS[unit]
    return seconds if seconds > 0 else DEFAULT_EXPIRES_IN


class TokenService:
    """Issues and verifies signed, time-bound bearer tokens.

    Stateless: holds only the immutable Settings and a clock. The clock is
    injectable so tests can move past expiry without sleeping.
    """

    def __init__(self, settings: Settings, clock: Callable[[], float] = time.time) -> None:
        self._secret_key = settings.secret_key
        self._access_ttl = parse_duration(settings.jwt_expires_in)
        if _DURATION_RE.match(settings.jwt_expires_in) is None:
            logger.warning(
                "JWT_EXPIRES_IN=%r is not a valid duration; using %ds", settings.jwt_expires_in, DEFAULT_EXPIRES_IN
            )
        self._reset_ttl = settings.reset_token_expire_seconds
        self._clock = clock

    @property
    def access_token_ttl(self) -> int:
        return self._access_ttl

    @property
    def reset_token_ttl(self) -> int:
        return self._reset_ttl

    # ------------------------------------------------------------------
    # Access tokens
    # ------------------------------------------------------------------

    def issue_access_token(self, claims: TokenClaims) -> tuple[str, int]:
        """Encode an access token for claims. Returns (token, expires_in_seconds)."""
        iat = int(self._clock())
        payload = {
            "sub": claims.sub,
            "email": claims.email,
            "roles": sorted(role.value for role in claims.roles),
            "iat": iat,
            "exp": iat + self._access_ttl,
        }
        return self._encode(payload), self._access_ttl

    def verify_access_token(self, token: str) -> Result[TokenClaims]:
        """Decode and verify an access token.

        Returns Err(UNAUTHENTICATED) on bad signature, malformed token,
        expiry, missing claims, or a purpose discriminator (reset tokens).
        """
        payload = self._decode(token)
        if payload is None or "type" in payload:
            return Err(ErrorKind.UNAUTHENTICATED, INVALID_TOKEN)
        sub, email, roles = payload.get("sub"), payload.get("email"), payload.get("roles")
        if not isinstance(sub, str) or not isinstance(email, str) or not isinstance(roles, list) or not roles:
            return Err(ErrorKind.UNAUTHENTICATED, INVALID_TOKEN)
        try:
            parsed_roles = frozenset(Role(r) for r in roles)
        except ValueError:
            return Err(ErrorKind.UNAUTHENTICATED, INVALID_TOKEN)
        return Ok(TokenClaims(sub=sub, email=email, roles=parsed_roles, iat=payload["iat"], exp=payload["exp"]))

    # ------------------------------------------------------------------
    # Reset tokens
    # ------------------------------------------------------------------

    def issue_reset_token(self, user_id: str) -> ResetGrant:
        """Encode a reset-purpose token for user_id with a fresh jti."""
        iat = int(self._clock())
        token_id = uuid.uuid4().hex
        payload = {
            "sub": user_id,
            "type": RESET_TOKEN_TYPE,
            "jti": token_id,
            "iat": iat,
            "exp": iat + self._reset_ttl,
        }
        return ResetGrant(user_id=user_id, token_id=token_id, token=self._encode(payload))

    def verify_reset_token(self, token: str) -> Result[ResetGrant]:
        """Decode a reset token. Err(INVALID_INPUT) unless type == "reset"."""
        payload = self._decode(token)
        if payload is None or payload.get("type") != RESET_TOKEN_TYPE:
            return Err(ErrorKind.INVALID_INPUT, INVALID_OR_EXPIRED_TOKEN)
        sub, jti = payload.get("sub"), payload.get("jti")
        if not isinstance(sub, str) or not isinstance(jti, str):
            return Err(ErrorKind.INVALID_INPUT, INVALID_OR_EXPIRED_TOKEN)
        return Ok(ResetGrant(user_id=sub, token_id=jti))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _encode(self, payload: dict) -> str:
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def _decode(self, token: str) -> dict | None:
        """Verify signature and timing claims. None on any failure.

        Expiry is checked here against the injected clock rather than by
        python-jose, which always reads the wall clock.
        """
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError:
            return None
        iat, exp = payload.get("iat"), payload.get("exp")
        if not isinstance(iat, int) or not isinstance(exp, int) or exp <= iat:
            return None
        if int(self._clock()) >= exp:
            return None
        return payload
