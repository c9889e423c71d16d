"""Application configuration loaded from environment variables.

Settings for database, API, authentication, billing, object storage and
scheduled jobs. Uses pydantic-settings for validation and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "railx_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "rail_exchange"
    database_user: str = "railx_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD
    # Full async DSN; overrides the individual parts above when set
    database_dsn: str = ""
    database_pool_size: int = 5
    database_max_overflow: int = 10
    # Log every SQL statement (noisy; local debugging only)
    database_echo: bool = False

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    # CRITICAL: Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Authentication: every request is identified by the JWT session cookie
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "rail-exchange"
    auth_audience: str = "rail-exchange"
    auth_cookie_name: str = "railx.session-token"
    auth_cookie_secure: bool = True
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    auth_cookie_domain: str = ""

    # Email
    email_from: str = "noreply@therailexchange.com"
    resend_api_key: SecretStr = SecretStr("")

    # Frontend URL (checkout success/cancel redirects, email links)
    frontend_url: str = "http://localhost:3000"

    # Scheduled jobs
    # Empty secret means every cron call is rejected (fail closed).
    cron_secret: SecretStr = SecretStr("")

    # Stripe
    stripe_secret_key: SecretStr = SecretStr("")
    stripe_webhook_secret: SecretStr = SecretStr("")
    stripe_price_elite_placement: str = ""
    stripe_price_ai_enhancement: str = ""
    stripe_price_spec_sheet: str = ""
    stripe_price_verified_badge: str = ""
    stripe_price_seller_analytics: str = ""
    stripe_price_seller_verified: str = ""
    stripe_price_premium_seller_verified: str = ""
    stripe_price_buyer_verification: str = ""

    # Object storage (S3)
    aws_region: str = "us-east-1"
    aws_s3_bucket: str = "railexchange-uploads"
    aws_access_key_id: str = ""
    aws_secret_access_key: SecretStr = SecretStr("")
    s3_presign_expires_seconds: int = 3600

    # Image proxy URL cache
    image_url_cache_ttl_seconds: int = 55 * 60
    image_url_cache_max_entries: int = 500

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_inquiries: str = "20/hour"
    rate_limit_uploads: str = "30/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        if self.database_dsn:
            return self.database_dsn
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate production security requirements.

        Security: Prevents deployment with known insecure defaults.
        Checks:
        - SameSite=None requires Secure flag (browser requirement)
        - CORS must not use wildcard origin (incompatible with credentials)
        - Image URL cache bounds must be positive
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        """
        if self.auth_cookie_samesite == "none" and not self.auth_cookie_secure:
            msg = (
                "AUTH_COOKIE_SECURE must be true when AUTH_COOKIE_SAMESITE=none. "
                "Browsers reject SameSite=None cookies without the Secure flag."
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.image_url_cache_max_entries <= 0:
            msg = (
                "IMAGE_URL_CACHE_MAX_ENTRIES must be positive. "
                f"Got: {self.image_url_cache_max_entries}"
            )
            raise ValueError(msg)
        if self.image_url_cache_ttl_seconds >= self.s3_presign_expires_seconds:
            msg = (
                "IMAGE_URL_CACHE_TTL_SECONDS must be shorter than "
                "S3_PRESIGN_EXPIRES_SECONDS so cached URLs never outlive "
                "their signature."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if not secret_value:
                msg = (
                    "AUTH_SECRET must be set in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters for adequate security."
                )
                raise ValueError(msg)

        return self


settings = Settings()
