"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt]: passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

The cost factor comes from Settings.bcrypt_rounds. bcrypt.checkpw compares
digests in constant time, so verify() has no early exit on the first
mismatching byte.

Layer rule: no imports from api/ or documents/.
"""

from __future__ import annotations

import logging

import bcrypt

from core.config import Settings

logger = logging.getLogger("dockeep.auth")


class PasswordHasher:
    """Salted, cost-parameterized password hashing.

    Usage:
        hasher = PasswordHasher(settings)
        stored = hasher.hash("correct horse")
        hasher.verify("correct horse", stored)  # True
    """

    def __init__(self, settings: Settings) -> None:
        self._rounds = settings.bcrypt_rounds
        # Timing equalization dummy hash [C1]. Computed once so the first
        # unknown-email login is not measurably slower than later ones.
        self._dummy_hash = self.hash("dockeep_timing_dummy")

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt hash of plaintext with a fresh random salt.

        Passwords longer than 72 bytes are truncated by bcrypt. The API layer
        caps passwords at 100 characters, so multi-byte input can still cross
        that limit; the truncation is accepted.
        """
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8")[:72], salt).decode("utf-8")

    def verify(self, plaintext: str, hashed: str | None) -> bool:
        """Return True if plaintext matches hashed. Malformed hashes give False."""
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8")[:72], hashed.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed; treating as mismatch")
            return False

    def dummy_verify(self, plaintext: str) -> bool:
        """Burn one verification against the dummy hash. Always returns False.

        Callers use this on the unknown-account path so response time does
        not reveal whether an email is registered [C1].
        """
        self.verify(plaintext, self._dummy_hash)
        return False
