"""Tests for Settings validation."""

import pytest
from pydantic import SecretStr, ValidationError

from app.core.config import Settings

_STRONG_SECRET = "s" * 48  # nosec B105


def _production(**overrides) -> Settings:
    fields = {
        "environment": "production",
        "database_password": "a-real-database-password",
        "auth_secret": SecretStr(_STRONG_SECRET),
    }
    fields.update(overrides)
    return Settings(_env_file=None, **fields)


class TestProductionSecurity:
    """Production refuses insecure defaults."""

    def test_valid_production_settings(self):
        assert _production().environment == "production"

    def test_auth_secret_required(self):
        with pytest.raises(ValidationError, match="AUTH_SECRET must be set"):
            _production(auth_secret=SecretStr(""))

    def test_short_auth_secret_rejected(self):
        with pytest.raises(ValidationError, match="at least"):
            _production(auth_secret=SecretStr("short"))

    def test_default_database_password_rejected(self):
        with pytest.raises(ValidationError, match="default database password"):
            _production(database_password="railx_dev_password")

    def test_wildcard_origin_rejected(self):
        with pytest.raises(ValidationError, match="wildcard"):
            Settings(_env_file=None, allowed_origins=["*"])


class TestSessionIdentity:
    """Identity always comes from the session cookie."""

    def test_no_single_user_mode(self):
        settings = Settings(_env_file=None)

        assert not hasattr(settings, "auth_enabled")
        assert not hasattr(settings, "default_user_id")
