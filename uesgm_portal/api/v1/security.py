"""Security endpoints used by the admin back-office and the public forms."""

from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from uesgm_portal.core.config import Settings
from uesgm_portal.security.auth.attempt_tracker import (
    AttemptTracker,
    login_delay_seconds,
)
from uesgm_portal.security.auth.credentials import (
    SecurityPinVerifier,
    is_valid_pin_format,
)
from uesgm_portal.security.monitoring.security_metrics import (
    AUTH_FAILURES_TOTAL,
    BLOCKED_REQUESTS_TOTAL,
)
from uesgm_portal.security.validation.input_sanitizer import sanitize_object
from uesgm_portal.security.validation.upload_validator import (
    UploadPolicy,
    validate_upload,
)
from uesgm_portal.security.validation.url_validator import is_safe_external_url
from uesgm_portal.utils.error_handler import LoginBlockedError, RateLimitExceededError
from uesgm_portal.utils.logger import get_logger
from uesgm_portal.utils.rate_limiter import ContactRateLimiter

logger = get_logger(__name__)

router = APIRouter(tags=["security"])


class PinRequest(BaseModel):
    pin: str = Field(..., max_length=64)


class UploadRequest(BaseModel):
    mime_type: str = Field(..., max_length=255)
    size_bytes: int


class UrlRequest(BaseModel):
    url: str = Field(..., max_length=2048)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_attempt_tracker(request: Request) -> AttemptTracker:
    return request.app.state.attempt_tracker


def get_pin_verifier(request: Request) -> SecurityPinVerifier:
    return request.app.state.pin_verifier


def get_upload_policy(request: Request) -> UploadPolicy:
    return request.app.state.upload_policy


def get_contact_limiter(request: Request) -> ContactRateLimiter:
    return request.app.state.contact_limiter


def client_identifier(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def limit_contact_body(
    request: Request, settings: Settings = Depends(get_settings)
) -> None:
    body = await request.body()
    if len(body) > settings.CONTACT_MAX_BODY_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Message too large",
        )


@router.post("/security/pin")
def verify_security_pin(
    body: PinRequest,
    request: Request,
    tracker: AttemptTracker = Depends(get_attempt_tracker),
    verifier: SecurityPinVerifier = Depends(get_pin_verifier),
    settings: Settings = Depends(get_settings),
) -> dict:
    """Unlock the super-admin portal with the 6-digit security PIN."""
    identifier = client_identifier(request)

    if tracker.is_blocked(identifier):
        BLOCKED_REQUESTS_TOTAL.labels(control="attempt_tracker").inc()
        raise LoginBlockedError(identifier, tracker.attempts(identifier))

    if not is_valid_pin_format(body.pin):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="PIN must be exactly 6 digits",
        )

    # Claim the attempt before the slow bcrypt check
    attempts = tracker.reserve_attempt(identifier)
    if attempts is None:
        BLOCKED_REQUESTS_TOTAL.labels(control="attempt_tracker").inc()
        raise LoginBlockedError(identifier, tracker.attempts(identifier))

    if not verifier.verify(body.pin):
        AUTH_FAILURES_TOTAL.labels(reason="invalid_pin").inc()
        logger.warning("security_pin_rejected", client_ip=identifier, attempts=attempts)
        if settings.LOGIN_FAILURE_DELAY_ENABLED:
            time.sleep(login_delay_seconds(attempts - 1))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "message": "Invalid PIN",
                "remaining_attempts": max(0, tracker.threshold - attempts),
            },
        )

    tracker.reset(identifier)
    logger.info("security_pin_accepted", client_ip=identifier)
    return {"verified": True}


@router.post("/uploads/validate")
def validate_upload_request(
    body: UploadRequest, policy: UploadPolicy = Depends(get_upload_policy)
) -> dict:
    descriptor = validate_upload(body.mime_type, body.size_bytes, policy)
    return {
        "mime_type": descriptor.mime_type,
        "size_bytes": descriptor.size_bytes,
        "extension": descriptor.extension,
        "generated_name": descriptor.generated_name,
    }


@router.post("/urls/validate")
def validate_external_url(
    body: UrlRequest, settings: Settings = Depends(get_settings)
) -> dict:
    safe = is_safe_external_url(body.url, settings.URL_ALLOWED_DOMAINS)
    return {"url": body.url, "safe": safe}


@router.post("/contact/sanitize", dependencies=[Depends(limit_contact_body)])
def sanitize_contact_payload(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    limiter: ContactRateLimiter = Depends(get_contact_limiter),
) -> JSONResponse:
    """Apply the contact-form quota, then return the payload with HTML stripped."""
    result = limiter.check(client_identifier(request))
    if not result.allowed:
        BLOCKED_REQUESTS_TOTAL.labels(control="contact_rate_limit").inc()
        raise RateLimitExceededError(result.message, headers=result.headers)
    return JSONResponse(content=sanitize_object(payload), headers=result.headers)
