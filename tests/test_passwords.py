"""
tests/test_passwords.py -- Unit tests for auth.passwords.PasswordHasher.

Covers:
  - hash() output is a salted bcrypt string at the configured cost
  - verify() round-trips and rejects wrong passwords
  - verify() returns False (never raises) for empty or malformed hashes
  - dummy_verify() always reports a mismatch
"""

from __future__ import annotations

from auth.passwords import PasswordHasher


def test_hash_is_bcrypt_at_configured_cost(hasher: PasswordHasher) -> None:
    hashed = hasher.hash("secret123")
    assert hashed.startswith("$2b$04$")
    assert hasher.rounds == 4


def test_same_password_hashes_differently(hasher: PasswordHasher) -> None:
    """A fresh salt per call: equal inputs never produce equal hashes."""
    assert hasher.hash("secret123") != hasher.hash("secret123")


def test_verify_accepts_correct_password(hasher: PasswordHasher) -> None:
    hashed = hasher.hash("correct horse")
    assert hasher.verify("correct horse", hashed) is True


def test_verify_rejects_wrong_password(hasher: PasswordHasher) -> None:
    hashed = hasher.hash("correct horse")
    assert hasher.verify("battery staple", hashed) is False


def test_verify_empty_hash_is_false(hasher: PasswordHasher) -> None:
    assert hasher.verify("anything", "") is False
    assert hasher.verify("anything", None) is False


def test_verify_malformed_hash_is_false(hasher: PasswordHasher) -> None:
    assert hasher.verify("anything", "not-a-bcrypt-hash") is False


def test_dummy_verify_never_matches(hasher: PasswordHasher) -> None:
    assert hasher.dummy_verify("dockeep_timing_dummy") is False


def test_unicode_password_round_trips(hasher: PasswordHasher) -> None:
    hashed = hasher.hash("pässwörd-✓")
    assert hasher.verify("pässwörd-✓", hashed) is True
    assert hasher.verify("passwort-✓", hashed) is False
