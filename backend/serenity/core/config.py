"""Application configuration loaded from environment variables.

Settings for database, API, authentication, email delivery, uploads and the
onboarding workflow tunables. Uses pydantic-settings for validation and .env
file support.
"""

import uuid

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "serenity_dev_password"  # nosec B105

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
    database_name: str = "serenity"
    database_user: str = "serenity_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    # Never set to ["*"]: the API authenticates with cookies.
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Authentication
    # Local-first mode: DEFAULT_USER_ID provides user context without JWT
    # Hosted mode: auth_enabled=True, JWT cookie required on every request
    default_user_id: uuid.UUID | None = None
    auth_enabled: bool = False
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "serenity"
    auth_audience: str = "serenity"
    auth_cookie_name: str = "serenity.session-token"

    # Email
    email_from: str = "onboarding@insightserenity.com"
    resend_api_key: SecretStr = SecretStr("")
    frontend_url: str = "http://localhost:3000"

    # Uploads (onboarding documents)
    upload_dir: str = "uploads"
    upload_max_size_mb: int = 10
    upload_base_url: str = "/uploads"

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_uploads: str = "20/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    # Onboarding workflow
    onboarding_stalled_threshold_days: int = 7
    onboarding_recommendation_limit: int = 5

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants.

        Checks:
        - Onboarding tunables are positive (all environments)
        - CORS must not use wildcard origin (all environments)
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars when auth is enabled in production
        """
        if self.onboarding_stalled_threshold_days < 1:
            msg = (
                "ONBOARDING_STALLED_THRESHOLD_DAYS must be at least 1. "
                f"Got: {self.onboarding_stalled_threshold_days}"
            )
            raise ValueError(msg)
        if self.onboarding_recommendation_limit < 1:
            msg = (
                "ONBOARDING_RECOMMENDATION_LIMIT must be at least 1. "
                f"Got: {self.onboarding_recommendation_limit}"
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            if self.auth_enabled:
                secret_value = self.auth_secret.get_secret_value()
                if not secret_value:
                    msg = "AUTH_SECRET must be set when AUTH_ENABLED=true in production."
                    raise ValueError(msg)
                if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                    msg = (
                        f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                        "characters for adequate security."
                    )
                    raise ValueError(msg)

        return self


settings = Settings()
