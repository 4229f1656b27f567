"""
Field-level AES-256-GCM encryption for sensitive string columns.

Payload format is ``ivHex:authTagHex:cipherTextHex``. Key rotation is not
handled here; callers that need it prefix their own version tag.
"""

from __future__ import annotations

import os
import string
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from uesgm_portal.core.config import Settings
from uesgm_portal.security.monitoring.security_metrics import (
    DECRYPTION_FAILURES_TOTAL,
)
from uesgm_portal.utils.error_handler import DecryptionError, MisconfiguredKeyError
from uesgm_portal.utils.logger import get_logger

logger = get_logger(__name__)

KEY_BYTES = 32
IV_BYTES = 16
TAG_BYTES = 16
SEPARATOR = ":"


def generate_key() -> str:
    """Return a fresh random key as 64 hex characters."""
    return os.urandom(KEY_BYTES).hex()


def _parse_key(key: Union[bytes, str, None]) -> bytes:
    if key is None or len(key) == 0:
        raise MisconfiguredKeyError()
    if isinstance(key, str):
        if len(key) != KEY_BYTES * 2 or any(c not in string.hexdigits for c in key):
            raise MisconfiguredKeyError(
                "ENCRYPTION_KEY must be 64 hexadecimal characters"
            )
        key = bytes.fromhex(key)
    if len(key) != KEY_BYTES:
        raise MisconfiguredKeyError(f"Encryption key must be {KEY_BYTES} bytes")
    return key


def _unhex(field: str, expected_length: Optional[int], name: str) -> bytes:
    if any(c not in string.hexdigits for c in field):
        raise DecryptionError(f"Malformed {name}", reason=f"{name}_not_hex")
    try:
        value = bytes.fromhex(field)
    except ValueError as exc:
        raise DecryptionError(f"Malformed {name}", reason=f"{name}_not_hex") from exc
    if expected_length is not None and len(value) != expected_length:
        raise DecryptionError(f"Malformed {name}", reason=f"{name}_length")
    return value


def _encode(plaintext: str) -> bytes:
    # Lone surrogates (e.g. JSON "\ud800") must survive the round trip
    return plaintext.encode("utf-8", "surrogatepass")


class FieldCipher:
    """
    Authenticated encryption of opaque strings with a single static key.

    Construction fails with MisconfiguredKeyError when no usable key is
    available; there is no plaintext passthrough mode.
    """

    def __init__(self, key: Union[bytes, str, None]) -> None:
        self._aesgcm = AESGCM(_parse_key(key))

    @classmethod
    def from_settings(cls, settings: Settings) -> "FieldCipher":
        return cls(settings.ENCRYPTION_KEY)

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_BYTES)
        sealed = self._aesgcm.encrypt(iv, _encode(plaintext), None)
        ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
        return SEPARATOR.join((iv.hex(), tag.hex(), ciphertext.hex()))

    def decrypt(self, payload: str) -> str:
        """
        Verify and decrypt a payload produced by `encrypt`.

        Raises:
            DecryptionError: the payload is malformed, was encrypted with
                another key, or was tampered with.
        """
        try:
            return self._decrypt(payload)
        except DecryptionError as exc:
            DECRYPTION_FAILURES_TOTAL.labels(reason=exc.reason or "unknown").inc()
            logger.error("decryption_failed", reason=exc.reason)
            raise

    def _decrypt(self, payload: str) -> str:
        if not isinstance(payload, str):
            raise DecryptionError("Payload must be a string", reason="not_a_string")
        parts = payload.split(SEPARATOR)
        if len(parts) != 3:
            raise DecryptionError(
                "Payload must have three fields", reason="field_count"
            )
        iv = _unhex(parts[0], IV_BYTES, "iv")
        tag = _unhex(parts[1], TAG_BYTES, "auth_tag")
        ciphertext = _unhex(parts[2], None, "ciphertext")

        try:
            plaintext = self._aesgcm.decrypt(iv, ciphertext + tag, None)
        except InvalidTag as exc:
            raise DecryptionError(
                "Authentication tag mismatch", reason="invalid_tag"
            ) from exc

        try:
            return plaintext.decode("utf-8", "surrogatepass")
        except UnicodeDecodeError as exc:
            raise DecryptionError(
                "Plaintext is not valid UTF-8", reason="invalid_utf8"
            ) from exc
