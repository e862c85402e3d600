"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for DocKeep happen here. No module should
call os.getenv() or os.environ.get() directly -- build a Settings once at
startup (get_settings()) and pass it into the services that need it.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Only the
      application entry points (api/main.py, main.py) call it; services take
      the Settings instance as a constructor argument.

  Frozen model: Settings is immutable after construction. TokenService and
      PasswordHasher hold a reference to it; nothing can mutate the secret key
      or the token lifetime underneath them.

  @model_validator(mode="before"): runs on the merged env/.env/init values
      before field validation. Implements the DEBUG-conditional SECRET_KEY
      logic: dev mode generates a key with a warning, production mode refuses
      to start without one.

Security notes:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. JWT signing
       relies on key entropy -- a short key weakens every issued token.

  [M7] In production mode (DEBUG not set or false), a missing SECRET_KEY is a
       hard startup failure.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or documents/.
"""

import logging
import secrets
from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("dockeep.config")

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file (provided DEBUG=true or a
    SECRET_KEY is supplied).

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `jwt_expires_in` from JWT_EXPIRES_IN.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = "sqlite:///dockeep.db"

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Duration string: <int><d|h|m|s>. Unparsable values fall back to one day
    # at issue time (see auth.tokens.parse_duration), they never fail startup.
    jwt_expires_in: str = "1d"
    reset_token_expire_seconds: int = Field(default=3600, gt=0)

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    # bcrypt accepts 4..31. 12 is the production default; tests drop to 4.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    password_min_length: int = Field(default=6, ge=1)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    cors_origins: list[str] = ["http://localhost:3000"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("jwt_expires_in")
    @classmethod
    def strip_duration(cls, value: str) -> str:
        return value.strip()

    @model_validator(mode="before")
    @classmethod
    def validate_secret_key(cls, data: Any) -> Any:
        """Enforce SECRET_KEY policy [M7].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters [M6].
        """
        if not isinstance(data, dict):
            return data
        debug = str(data.get("debug", "")).strip().lower() in _TRUTHY
        secret_key = data.get("secret_key") or ""
        if not secret_key:
            if debug:
                data["secret_key"] = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Tokens will not persist across restarts.")
                return data
            raise ValueError(
                "SECRET_KEY is required in production mode. "
                "Set SECRET_KEY in your environment or .env file. "
                "To run in development mode, set DEBUG=true."
            )
        if len(secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return data


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables, or construct Settings(...)
    directly and pass it to create_app().
    """
    return Settings()
