#!/usr/bin/env python3
"""
Generates a value for ENCRYPTION_KEY, or a bcrypt digest for SUPER_ADMIN_PIN_HASH.
"""
import sys

from uesgm_portal.core.config import settings
from uesgm_portal.security.auth.credentials import CredentialHasher
from uesgm_portal.security.encryption.field_encryption import generate_key


def generate_pin_hash(pin: str) -> str:
    """
    Hashes a 6-digit PIN with the configured PIN cost factor.
    """
    return CredentialHasher.from_settings(settings).hash_pin(pin)


if __name__ == "__main__":
    if len(sys.argv) == 1:
        print(generate_key())
    elif len(sys.argv) == 3 and sys.argv[1] == "--pin":
        try:
            print(generate_pin_hash(sys.argv[2]))
        except ValueError as exc:
            print(f"Error: {exc}")
            sys.exit(1)
    else:
        print("Usage: python scripts/generate_encryption_key.py [--pin <6-digit PIN>]")
        sys.exit(1)
