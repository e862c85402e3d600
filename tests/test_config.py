"""
tests/test_config.py -- Unit tests for core.config.Settings.

SECRET_KEY policy: generated in debug mode, required otherwise, and never
shorter than 32 characters. Settings are immutable once built.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings

LONG_KEY = "k" * 32


def test_debug_mode_generates_secret_key() -> None:
    settings = Settings(debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_production_requires_secret_key(monkeypatch) -> None:
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(debug=False, secret_key="")


def test_short_secret_key_rejected() -> None:
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(debug=True, secret_key="too-short")


def test_defaults() -> None:
    settings = Settings(debug=False, secret_key=LONG_KEY, bcrypt_rounds=12, password_min_length=6)
    assert settings.jwt_expires_in == "1d"
    assert settings.reset_token_expire_seconds == 3600
    assert settings.password_min_length == 6


def test_bcrypt_rounds_bounds() -> None:
    with pytest.raises(ValidationError):
        Settings(debug=True, secret_key=LONG_KEY, bcrypt_rounds=3)
    with pytest.raises(ValidationError):
        Settings(debug=True, secret_key=LONG_KEY, bcrypt_rounds=32)


def test_settings_are_frozen() -> None:
    settings = Settings(debug=True, secret_key=LONG_KEY)
    with pytest.raises(ValidationError):
        settings.secret_key = "x" * 40


def test_env_variables_are_read(monkeypatch) -> None:
    monkeypatch.setenv("SECRET_KEY", LONG_KEY)
    monkeypatch.setenv("JWT_EXPIRES_IN", "12h")
    monkeypatch.setenv("DEBUG", "false")
    settings = Settings()
    assert settings.secret_key == LONG_KEY
    assert settings.jwt_expires_in == "12h"
    assert settings.debug is False
