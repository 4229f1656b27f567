from contextlib import asynccontextmanager
from typing import Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from uesgm_portal.api.v1 import security as security_routes
from uesgm_portal.core.config import Settings, settings as default_settings
from uesgm_portal.security.audit.access_logger import AccessLogMiddleware
from uesgm_portal.security.auth.attempt_tracker import AttemptTracker
from uesgm_portal.security.auth.credentials import (
    CredentialHasher,
    SecurityPinVerifier,
)
from uesgm_portal.security.encryption.field_encryption import FieldCipher
from uesgm_portal.security.validation.security_headers import SecurityHeadersMiddleware
from uesgm_portal.security.validation.upload_validator import UploadPolicy
from uesgm_portal.utils.error_handler import register_exception_handlers
from uesgm_portal.utils.logger import configure_logging, get_logger
from uesgm_portal.utils.rate_limiter import ContactRateLimiter

# Configure logging before anything else
configure_logging()
logger = get_logger(__name__)


def build_security_state(app: FastAPI, settings: Settings) -> None:
    """
    Construct the process-wide security components onto ``app.state``.

    A missing ENCRYPTION_KEY raises MisconfiguredKeyError here, which aborts
    startup.
    """
    hasher = CredentialHasher.from_settings(settings)
    app.state.settings = settings
    app.state.cipher = FieldCipher.from_settings(settings)
    app.state.hasher = hasher
    app.state.pin_verifier = SecurityPinVerifier.from_settings(settings, hasher)
    app.state.attempt_tracker = AttemptTracker.from_settings(settings)
    app.state.upload_policy = UploadPolicy.from_settings(settings)
    app.state.contact_limiter = ContactRateLimiter.from_settings(settings)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        build_security_state(app, settings)
        logger.info(
            "UESGM website starting up",
            app_name=settings.APP_NAME,
            environment=settings.APP_ENV,
            sentry_enabled=bool(settings.SENTRY_DSN),
            pin_configured=app.state.pin_verifier.configured,
        )
        yield
        logger.info("UESGM website shutting down")

    app = FastAPI(
        title=settings.APP_NAME,
        description="Security services for the UESGM association website",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Initialize Sentry if DSN is provided
    if settings.SENTRY_DSN:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.APP_ENV,
            traces_sample_rate=0.1,
            send_default_pii=False,
        )
        logger.info("Sentry initialized", environment=settings.APP_ENV)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS or ["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security middleware (headers + access logs)
    if settings.ENABLE_SECURITY_HEADERS:
        app.add_middleware(SecurityHeadersMiddleware, csp=settings.CSP_POLICY)
    app.add_middleware(AccessLogMiddleware)

    register_exception_handlers(app)
    app.include_router(security_routes.router, prefix="/api/v1")

    if settings.ENABLE_METRICS:
        Instrumentator(
            should_group_status_codes=False,
            excluded_handlers=["/metrics"],
        ).instrument(app).expose(app)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint"""
        return {"status": "ok"}

    return app


app = create_app()
