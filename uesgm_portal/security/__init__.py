"""
Security package: credential hashing, field encryption, brute-force tracking,
upload and URL validation, HTML sanitization.

The components are independent of each other. Stateful ones (the attempt
tracker) are constructed once by the application factory and handed to route
handlers; nothing here keeps module-level mutable state.
"""
from __future__ import annotations

from uesgm_portal.security.auth.attempt_tracker import (
    AttemptTracker,
    login_delay_seconds,
)
from uesgm_portal.security.auth.credentials import (
    CredentialHasher,
    SecurityPinVerifier,
    is_valid_pin_format,
    validate_password,
)
from uesgm_portal.security.encryption.field_encryption import FieldCipher
from uesgm_portal.security.validation.input_sanitizer import (
    sanitize_html,
    sanitize_object,
    strip_html,
)
from uesgm_portal.security.validation.upload_validator import (
    UploadDescriptor,
    UploadPolicy,
    validate_upload,
)
from uesgm_portal.security.validation.url_validator import (
    is_blocked_address,
    is_safe_external_url,
)

__all__ = [
    "AttemptTracker",
    "CredentialHasher",
    "FieldCipher",
    "SecurityPinVerifier",
    "UploadDescriptor",
    "UploadPolicy",
    "is_blocked_address",
    "is_safe_external_url",
    "is_valid_pin_format",
    "login_delay_seconds",
    "sanitize_html",
    "sanitize_object",
    "strip_html",
    "validate_password",
    "validate_upload",
]
