"""
PASSWORD & PIN HASHING
======================

Passwords and the super-admin PIN are stored only as bcrypt digests.

FLOW:
- CredentialHasher.hash() creates a salted digest before storage.
- CredentialHasher.verify() checks a login attempt against a stored digest.
- PINs must match the 6-digit format before any bcrypt work is done.
"""

from __future__ import annotations

import re
from typing import List, Optional

import bcrypt

from uesgm_portal.core.config import Settings

BCRYPT_MAX_INPUT_BYTES = 72
PASSWORD_MIN_LENGTH = 12

PIN_PATTERN = re.compile(r"[0-9]{6}")


def _encode(secret: str) -> bytes:
    # bcrypt only reads the first 72 bytes and newer releases refuse longer input
    return secret.encode("utf-8")[:BCRYPT_MAX_INPUT_BYTES]


def is_valid_pin_format(pin: Optional[str]) -> bool:
    """Return True if `pin` is exactly six ASCII digits."""
    return isinstance(pin, str) and PIN_PATTERN.fullmatch(pin) is not None


class CredentialHasher:
    """bcrypt wrapper with separate cost factors for passwords and PINs."""

    def __init__(self, rounds: int = 12, pin_rounds: int = 10) -> None:
        self.rounds = rounds
        self.pin_rounds = pin_rounds

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialHasher":
        return cls(
            rounds=settings.PASSWORD_HASH_ROUNDS,
            pin_rounds=settings.PIN_HASH_ROUNDS,
        )

    def hash(self, secret: str) -> str:
        return bcrypt.hashpw(_encode(secret), bcrypt.gensalt(self.rounds)).decode()

    def verify(self, secret: str, digest: str) -> bool:
        """
        Check `secret` against a stored bcrypt digest.

        A malformed or empty digest counts as a mismatch.
        """
        if not secret or not digest:
            return False
        try:
            return bcrypt.checkpw(_encode(secret), digest.encode("utf-8"))
        except ValueError:
            return False

    def hash_pin(self, pin: str) -> str:
        if not is_valid_pin_format(pin):
            raise ValueError("PIN must be exactly 6 digits")
        return bcrypt.hashpw(_encode(pin), bcrypt.gensalt(self.pin_rounds)).decode()

    def verify_pin(self, pin: str, digest: str) -> bool:
        if not is_valid_pin_format(pin):
            return False
        return self.verify(pin, digest)


class SecurityPinVerifier:
    """
    Checks the PIN that guards the super-admin portal.

    The configured PIN may be a bcrypt digest or a plain PIN, in which case it
    is hashed once at construction and the plain value is not kept. With no
    PIN configured every check fails.
    """

    def __init__(
        self,
        hasher: CredentialHasher,
        pin_hash: Optional[str] = None,
        plain_pin: Optional[str] = None,
    ) -> None:
        self._hasher = hasher
        if pin_hash is None and plain_pin is not None:
            pin_hash = hasher.hash_pin(plain_pin)
        self._pin_hash = pin_hash

    @classmethod
    def from_settings(
        cls, settings: Settings, hasher: CredentialHasher
    ) -> "SecurityPinVerifier":
        return cls(
            hasher,
            pin_hash=settings.SUPER_ADMIN_PIN_HASH,
            plain_pin=settings.SUPER_ADMIN_PIN,
        )

    @property
    def configured(self) -> bool:
        return self._pin_hash is not None

    def verify(self, pin: str) -> bool:
        if self._pin_hash is None:
            return False
        return self._hasher.verify_pin(pin, self._pin_hash)


def password_policy_violations(password: str) -> List[str]:
    """List every rule of the password policy that `password` breaks."""
    violations = []
    if len(password) < PASSWORD_MIN_LENGTH:
        violations.append(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
        )
    if not re.search(r"[a-z]", password):
        violations.append("Password must contain a lowercase letter")
    if not re.search(r"[A-Z]", password):
        violations.append("Password must contain an uppercase letter")
    if not re.search(r"[0-9]", password):
        violations.append("Password must contain a digit")
    if not re.search(r"[^a-zA-Z0-9]", password):
        violations.append("Password must contain a special character")
    return violations


def validate_password(password: str) -> bool:
    return not password_policy_violations(password)
