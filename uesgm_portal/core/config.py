# uesgm_portal/core/config.py
from __future__ import annotations

import string
from typing import Annotated, List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

MIB = 1024 * 1024


class Settings(BaseSettings):
    """
    Application settings, loaded from environment variables and/or .env file.
    """

    # Environment settings
    APP_NAME: str = "UESGM Website"
    APP_ENV: str = "development"

    # Field encryption (AES-256-GCM, 32 bytes as 64 hex characters)
    ENCRYPTION_KEY: Optional[str] = Field(default=None, repr=False)

    # Super-admin portal PIN, preferably as a bcrypt digest
    SUPER_ADMIN_PIN_HASH: Optional[str] = Field(default=None, repr=False)
    SUPER_ADMIN_PIN: Optional[str] = Field(default=None, repr=False)

    # Credential hashing cost factors
    PASSWORD_HASH_ROUNDS: int = 12
    PIN_HASH_ROUNDS: int = 10

    # Brute-force protection
    LOGIN_ATTEMPT_MAX_ENTRIES: int = 1000
    LOGIN_ATTEMPT_TTL_SECONDS: int = 30 * 60
    LOGIN_ATTEMPT_THRESHOLD: int = 5
    LOGIN_FAILURE_DELAY_ENABLED: bool = True

    # Upload policy
    UPLOAD_MAX_IMAGE_BYTES: int = 5 * MIB
    UPLOAD_MAX_PDF_BYTES: int = 20 * MIB

    # Outbound URL policy; empty means any public https host
    URL_ALLOWED_DOMAINS: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        description="Comma-delimited list of domains outbound URLs may target",
    )

    # Contact form rate limits (per client IP)
    CONTACT_SHORT_TERM_LIMIT: int = 5
    CONTACT_SHORT_TERM_WINDOW_SECONDS: int = 10 * 60
    CONTACT_DAILY_LIMIT: int = 20
    CONTACT_DAILY_WINDOW_SECONDS: int = 24 * 3600
    CONTACT_MAX_TRACKED_CLIENTS: int = 1000
    CONTACT_MAX_BODY_BYTES: int = 64 * 1024

    # HTTP hardening
    CORS_ALLOW_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Comma-delimited list of allowed origins",
    )
    ENABLE_SECURITY_HEADERS: bool = True
    CSP_POLICY: str = "default-src 'self'"

    # Observability settings
    SENTRY_DSN: Optional[str] = None
    ENABLE_METRICS: bool = True

    @field_validator("CORS_ALLOW_ORIGINS", "URL_ALLOWED_DOMAINS", mode="before")
    @classmethod
    def _split_csv(cls, value: str | List[str]) -> List[str]:
        """Allow comma-separated strings for list env vars."""
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("ENCRYPTION_KEY", "SUPER_ADMIN_PIN_HASH", "SUPER_ADMIN_PIN")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @model_validator(mode="after")
    def _check_encryption_key(self) -> "Settings":
        """Reject an encryption key that is present but unusable."""
        key = self.ENCRYPTION_KEY
        if key is not None and (
            len(key) != 64 or any(c not in string.hexdigits for c in key)
        ):
            raise ValueError(
                "ENCRYPTION_KEY must be 64 hexadecimal characters (32 bytes). "
                "Generate one with scripts/generate_encryption_key.py."
            )
        return self

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() in ("development", "dev", "local", "test")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


settings = Settings()
