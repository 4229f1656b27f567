import pytest
from pydantic import ValidationError

from uesgm_portal.core.config import Settings


def test_defaults_match_policy():
    settings = Settings()
    assert settings.LOGIN_ATTEMPT_MAX_ENTRIES == 1000
    assert settings.LOGIN_ATTEMPT_TTL_SECONDS == 1800
    assert settings.LOGIN_ATTEMPT_THRESHOLD == 5
    assert settings.UPLOAD_MAX_IMAGE_BYTES == 5 * 1024 * 1024
    assert settings.UPLOAD_MAX_PDF_BYTES == 20 * 1024 * 1024
    assert settings.URL_ALLOWED_DOMAINS == []


@pytest.mark.parametrize("key", ["abc", "z" * 64, "0" * 63])
def test_malformed_encryption_key_rejected(key: str):
    with pytest.raises(ValidationError):
        Settings(ENCRYPTION_KEY=key)


def test_blank_secrets_become_none():
    settings = Settings(ENCRYPTION_KEY="  ", SUPER_ADMIN_PIN="", SUPER_ADMIN_PIN_HASH=" ")
    assert settings.ENCRYPTION_KEY is None
    assert settings.SUPER_ADMIN_PIN is None
    assert settings.SUPER_ADMIN_PIN_HASH is None


def test_secrets_hidden_from_repr():
    settings = Settings(ENCRYPTION_KEY="ab" * 32)
    assert "ab" * 32 not in repr(settings)


def test_comma_separated_lists_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("URL_ALLOWED_DOMAINS", "uesgm.ma, cloudinary.com,")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://uesgm.ma")
    settings = Settings()
    assert settings.URL_ALLOWED_DOMAINS == ["uesgm.ma", "cloudinary.com"]
    assert settings.CORS_ALLOW_ORIGINS == ["https://uesgm.ma"]
