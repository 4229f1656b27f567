"""
Error handling for the UESGM security core.

This module defines the typed failures raised by the security utilities, the
context record used to log them, and the FastAPI exception handlers that turn
them into JSON responses.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from uesgm_portal.utils.logger import add_request_context, get_logger

logger = get_logger(__name__)


class ErrorSeverity(str, Enum):
    """Error severity levels for categorization and alerting"""

    LOW = "low"  # Caller-correctable, logging only
    MEDIUM = "medium"  # Suspicious or repeated, worth a warning
    HIGH = "high"  # Integrity failures, immediate attention
    CRITICAL = "critical"  # Misconfiguration, the service cannot operate safely


class ErrorCategory(str, Enum):
    """Error categories for systematic handling"""

    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    CRYPTOGRAPHY = "cryptography"
    RATE_LIMIT = "rate_limit"
    SYSTEM = "system"


class ErrorContext:
    """Container for error context information"""

    def __init__(
        self,
        error: Exception,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        user_message: Optional[str] = None,
        technical_details: Optional[Dict[str, Any]] = None,
    ):
        self.error = error
        self.severity = severity
        self.category = category
        self.user_message = user_message or self._generate_user_message()
        self.technical_details = technical_details or {}
        self.timestamp = datetime.now(timezone.utc)
        self.error_id = f"err_{uuid4().hex[:12]}"

    def _generate_user_message(self) -> str:
        """Generate user-friendly error message based on error type"""
        if isinstance(self.error, SecurityError):
            return self.error.user_message

        return "An unexpected error occurred. Please try again or contact support."

    def to_dict(self) -> Dict[str, Any]:
        """Convert error context to dictionary for logging/serialization"""
        return {
            "error_id": self.error_id,
            "timestamp": self.timestamp.isoformat(),
            "error_type": type(self.error).__name__,
            "severity": self.severity.value,
            "category": self.category.value,
            "user_message": self.user_message,
            "technical_details": self.technical_details,
        }


# === Custom Exception Classes ===


class SecurityError(Exception):
    """Base exception for failures raised by the security utilities"""

    status_code = 500
    default_user_message = "The request could not be processed."

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        technical_details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.severity = severity
        self.category = category
        self.technical_details = technical_details or {}
        self.user_message = user_message or self.default_user_message


class UploadValidationError(SecurityError):
    """Raised when an upload does not satisfy the upload policy"""

    status_code = 400
    default_user_message = "The uploaded file was rejected."

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            **kwargs,
        )


class UnsupportedTypeError(UploadValidationError):
    """Raised when the MIME type is not on the upload allow-list"""

    default_user_message = "File type not allowed. Use JPEG, PNG, WebP or PDF."

    def __init__(self, mime_type: str, **kwargs):
        super().__init__(
            f"Unsupported upload type: {mime_type!r}",
            technical_details={"mime_type": mime_type},
            **kwargs,
        )
        self.mime_type = mime_type


class FileTooLargeError(UploadValidationError):
    """Raised when an upload exceeds the size limit for its type"""

    def __init__(self, mime_type: str, size_bytes: int, limit_bytes: int, **kwargs):
        super().__init__(
            f"Upload of {size_bytes} bytes exceeds the {limit_bytes} byte limit "
            f"for {mime_type}",
            technical_details={
                "mime_type": mime_type,
                "size_bytes": size_bytes,
                "limit_bytes": limit_bytes,
            },
            user_message=(
                f"File too large. Maximum {limit_bytes // (1024 * 1024)}MB allowed."
            ),
            **kwargs,
        )
        self.mime_type = mime_type
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class DecryptionError(SecurityError):
    """Raised when an encrypted payload is malformed or fails authentication"""

    status_code = 500
    default_user_message = "Stored data could not be decrypted."

    def __init__(self, message: str = "Decryption failed", reason: str = "", **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.CRYPTOGRAPHY,
            technical_details={"reason": reason} if reason else None,
            **kwargs,
        )
        self.reason = reason


class MisconfiguredKeyError(SecurityError):
    """Raised when encryption is attempted without a usable key"""

    status_code = 500
    default_user_message = "The service is not configured correctly."

    def __init__(self, message: str = "ENCRYPTION_KEY is not configured", **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            **kwargs,
        )


class LoginBlockedError(SecurityError):
    """Raised when an identifier has too many recent failed attempts"""

    status_code = 403
    default_user_message = "Too many failed attempts. Please try again later."

    def __init__(self, identifier: str, attempts: int, **kwargs):
        super().__init__(
            f"Identifier blocked after {attempts} failed attempts",
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.AUTHENTICATION,
            technical_details={"identifier": identifier, "attempts": attempts},
            **kwargs,
        )
        self.identifier = identifier
        self.attempts = attempts


class RateLimitExceededError(SecurityError):
    """Raised when a client exceeds a request quota"""

    status_code = 429
    default_user_message = "Too many requests. Please try again later."

    def __init__(
        self,
        message: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.RATE_LIMIT,
            user_message=message,
            **kwargs,
        )
        self.headers = headers or {}


# === Error Handler Class ===


class ErrorHandler:
    """Categorizes and logs errors before they are returned to a client"""

    def handle_error(
        self, error: Exception, context: Optional[Dict[str, Any]] = None
    ) -> ErrorContext:
        context = context or {}
        error_context = self._categorize_error(error, context)
        self._log_error(error_context)
        return error_context

    def _categorize_error(
        self, error: Exception, context: Dict[str, Any]
    ) -> ErrorContext:
        if isinstance(error, SecurityError):
            details = dict(error.technical_details)
            details.update(context)
            return ErrorContext(
                error=error,
                severity=error.severity,
                category=error.category,
                technical_details=details,
            )

        error_mappings = {
            ValueError: (ErrorSeverity.LOW, ErrorCategory.VALIDATION),
            KeyError: (ErrorSeverity.LOW, ErrorCategory.VALIDATION),
            PermissionError: (ErrorSeverity.HIGH, ErrorCategory.AUTHENTICATION),
        }

        severity, category = error_mappings.get(
            type(error), (ErrorSeverity.MEDIUM, ErrorCategory.SYSTEM)
        )

        return ErrorContext(
            error=error,
            severity=severity,
            category=category,
            technical_details=context,
        )

    def _log_error(self, error_context: ErrorContext):
        log_data = {
            "error_id": error_context.error_id,
            "error_type": type(error_context.error).__name__,
            "category": error_context.category.value,
            "severity": error_context.severity.value,
            "technical_details": error_context.technical_details,
        }

        if error_context.severity == ErrorSeverity.CRITICAL:
            logger.critical(error_context.user_message, **log_data)
        elif error_context.severity == ErrorSeverity.HIGH:
            logger.error(error_context.user_message, **log_data)
        elif error_context.severity == ErrorSeverity.MEDIUM:
            logger.warning(error_context.user_message, **log_data)
        else:  # LOW
            logger.info(error_context.user_message, **log_data)


error_handler = ErrorHandler()


# === Utility Functions ===


def create_error_response(
    error: Exception, context: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """Create standardized error response for APIs"""

    error_context = error_handler.handle_error(error, context)
    status_code = getattr(error, "status_code", 500)
    headers = getattr(error, "headers", None)

    return JSONResponse(
        status_code=status_code,
        headers=headers,
        content={
            "error": {
                "id": error_context.error_id,
                "message": error_context.user_message,
                "category": error_context.category.value,
                "severity": error_context.severity.value,
                "timestamp": error_context.timestamp.isoformat(),
            }
        },
    )


async def security_error_handler(request: Request, exc: SecurityError) -> JSONResponse:
    return create_error_response(exc, add_request_context(request))


def register_exception_handlers(app: FastAPI) -> None:
    """Map every SecurityError subclass onto a JSON error response."""
    app.add_exception_handler(SecurityError, security_error_handler)
