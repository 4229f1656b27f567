"""
Tests for the error handling system.

This module tests:
- Custom exception classes and their HTTP mapping
- Error categorization and severity
- Standardized JSON error responses
"""

import json
from datetime import datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from uesgm_portal.utils.error_handler import (
    DecryptionError,
    ErrorCategory,
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    FileTooLargeError,
    LoginBlockedError,
    MisconfiguredKeyError,
    RateLimitExceededError,
    SecurityError,
    UnsupportedTypeError,
    UploadValidationError,
    create_error_response,
    register_exception_handlers,
)


class TestErrorContext:
    """Test cases for ErrorContext class"""

    def test_error_context_creation(self):
        error = ValueError("Test error")
        context = ErrorContext(
            error=error,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.VALIDATION,
        )

        assert context.error == error
        assert context.severity == ErrorSeverity.HIGH
        assert context.category == ErrorCategory.VALIDATION
        assert context.error_id.startswith("err_")
        assert isinstance(context.timestamp, datetime)

    def test_user_message_comes_from_security_error(self):
        context = ErrorContext(error=UnsupportedTypeError("text/html"))
        assert context.user_message.startswith("File type not allowed")

    def test_generic_user_message(self):
        context = ErrorContext(error=RuntimeError("boom"))
        assert "unexpected error" in context.user_message

    def test_to_dict(self):
        context = ErrorContext(
            error=DecryptionError(reason="invalid_tag"),
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.CRYPTOGRAPHY,
        )
        data = context.to_dict()
        assert data["error_type"] == "DecryptionError"
        assert data["severity"] == "high"
        assert data["category"] == "cryptography"


class TestSecurityErrors:
    def test_upload_errors_share_a_base(self):
        assert issubclass(UnsupportedTypeError, UploadValidationError)
        assert issubclass(FileTooLargeError, UploadValidationError)
        assert issubclass(UploadValidationError, SecurityError)

    @pytest.mark.parametrize(
        "error,status_code,severity",
        [
            (UnsupportedTypeError("text/html"), 400, ErrorSeverity.LOW),
            (FileTooLargeError("image/png", 10, 5), 400, ErrorSeverity.LOW),
            (DecryptionError(reason="field_count"), 500, ErrorSeverity.HIGH),
            (MisconfiguredKeyError(), 500, ErrorSeverity.CRITICAL),
            (LoginBlockedError("203.0.113.7", 5), 403, ErrorSeverity.MEDIUM),
            (RateLimitExceededError("slow down"), 429, ErrorSeverity.LOW),
        ],
    )
    def test_status_and_severity(self, error, status_code, severity):
        assert error.status_code == status_code
        assert error.severity == severity

    def test_file_too_large_details(self):
        error = FileTooLargeError("application/pdf", 21 * 1024 * 1024, 20 * 1024 * 1024)
        assert error.technical_details["limit_bytes"] == 20 * 1024 * 1024
        assert error.user_message == "File too large. Maximum 20MB allowed."

    def test_decryption_error_reason(self):
        error = DecryptionError("Authentication tag mismatch", reason="invalid_tag")
        assert error.reason == "invalid_tag"
        assert str(error) == "Authentication tag mismatch"


class TestErrorHandler:
    def test_security_error_keeps_its_classification(self):
        handler = ErrorHandler()
        context = handler.handle_error(
            LoginBlockedError("203.0.113.7", 6), {"path": "/api/v1/security/pin"}
        )
        assert context.category == ErrorCategory.AUTHENTICATION
        assert context.severity == ErrorSeverity.MEDIUM
        assert context.technical_details["attempts"] == 6
        assert context.technical_details["path"] == "/api/v1/security/pin"

    @pytest.mark.parametrize(
        "error,category",
        [
            (ValueError("bad"), ErrorCategory.VALIDATION),
            (KeyError("missing"), ErrorCategory.VALIDATION),
            (PermissionError("nope"), ErrorCategory.AUTHENTICATION),
            (RuntimeError("boom"), ErrorCategory.SYSTEM),
        ],
    )
    def test_standard_exceptions(self, error, category):
        assert ErrorHandler().handle_error(error).category == category


def test_create_error_response():
    response = create_error_response(
        RateLimitExceededError("slow down", headers={"Retry-After": "60"})
    )
    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    body = json.loads(response.body)
    assert body["error"]["message"] == "slow down"
    assert body["error"]["category"] == "rate_limit"


def test_registered_handler_maps_security_errors():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/decrypt")
    def decrypt():
        raise DecryptionError(reason="invalid_tag")

    r = TestClient(app).get("/decrypt")

    assert r.status_code == 500
    error = r.json()["error"]
    assert error["category"] == "cryptography"
    assert error["message"] == "Stored data could not be decrypted."
    assert "invalid_tag" not in r.text
