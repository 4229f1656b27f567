"""
Upload policy: MIME allow-list, per-type size limits and server-side names.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from uesgm_portal.core.config import Settings
from uesgm_portal.security.monitoring.security_metrics import UPLOAD_REJECTIONS_TOTAL
from uesgm_portal.utils.error_handler import (
    FileTooLargeError,
    UnsupportedTypeError,
    UploadValidationError,
)
from uesgm_portal.utils.logger import get_logger

logger = get_logger(__name__)

MIB = 1024 * 1024


@dataclass(frozen=True)
class UploadRule:
    extension: str
    max_bytes: int


@dataclass(frozen=True)
class UploadDescriptor:
    mime_type: str
    size_bytes: int
    extension: str
    generated_name: str


class UploadPolicy:
    """Mapping of accepted MIME types to their extension and size limit."""

    def __init__(self, rules: Mapping[str, UploadRule]) -> None:
        self.rules = MappingProxyType(dict(rules))

    @classmethod
    def default(
        cls, max_image_bytes: int = 5 * MIB, max_pdf_bytes: int = 20 * MIB
    ) -> "UploadPolicy":
        return cls(
            {
                "image/jpeg": UploadRule("jpg", max_image_bytes),
                "image/png": UploadRule("png", max_image_bytes),
                "image/webp": UploadRule("webp", max_image_bytes),
                "application/pdf": UploadRule("pdf", max_pdf_bytes),
            }
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadPolicy":
        return cls.default(
            max_image_bytes=settings.UPLOAD_MAX_IMAGE_BYTES,
            max_pdf_bytes=settings.UPLOAD_MAX_PDF_BYTES,
        )

    def rule_for(self, mime_type: str) -> Optional[UploadRule]:
        return self.rules.get(normalize_mime_type(mime_type))


DEFAULT_POLICY = UploadPolicy.default()


def normalize_mime_type(mime_type: str) -> str:
    """Lowercase a MIME type and drop parameters such as ``; charset=...``."""
    return (mime_type or "").split(";", 1)[0].strip().lower()


def validate_upload(
    mime_type: str, size_bytes: int, policy: Optional[UploadPolicy] = None
) -> UploadDescriptor:
    """
    Check an upload against the policy and pick its storage name.

    The generated name is a random UUID plus the allow-listed extension; the
    client's filename is never used.

    Raises:
        UnsupportedTypeError: MIME type not on the allow-list (any size).
        FileTooLargeError: size above the limit for that type.
        UploadValidationError: negative size.
    """
    policy = policy or DEFAULT_POLICY
    normalized = normalize_mime_type(mime_type)
    rule = policy.rules.get(normalized)

    if rule is None:
        UPLOAD_REJECTIONS_TOTAL.labels(reason="unsupported_type").inc()
        logger.info("upload_rejected", reason="unsupported_type", mime_type=mime_type)
        raise UnsupportedTypeError(mime_type)

    if size_bytes < 0:
        UPLOAD_REJECTIONS_TOTAL.labels(reason="invalid_size").inc()
        raise UploadValidationError(f"Invalid upload size: {size_bytes}")

    if size_bytes > rule.max_bytes:
        UPLOAD_REJECTIONS_TOTAL.labels(reason="too_large").inc()
        logger.info(
            "upload_rejected",
            reason="too_large",
            mime_type=normalized,
            size_bytes=size_bytes,
            limit_bytes=rule.max_bytes,
        )
        raise FileTooLargeError(normalized, size_bytes, rule.max_bytes)

    return UploadDescriptor(
        mime_type=normalized,
        size_bytes=size_bytes,
        extension=rule.extension,
        generated_name=f"{uuid.uuid4()}.{rule.extension}",
    )
