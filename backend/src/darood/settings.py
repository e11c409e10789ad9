"""Application settings and configuration."""

import sys

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_JWT_DEFAULTS = {"change-me-in-production", "secret", "your_jwt_secret_key_here_at_least_32_characters"}


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "darood"
    env: str = "development"
    log_level: str = "INFO"
    log_format: str = "console"  # console | json
    allowed_origins: str = "http://localhost:5173"

    # JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_expire_hours: int = 24

    # Database
    database_url: str = "sqlite:///./darood.db"
    database_echo: bool = False

    # Referral program
    referral_default_points: int = 100
    referral_max_account_age_days: int = 7  # Referral must be applied within a week of signup
    referral_max_referrals: int = 10_000  # Abuse cap per referrer
    referral_code_length: int = 8
    referral_transaction_attempts: int = 5

    # Rate Limiting
    referral_apply_rate_limit: str = "10/minute"
    referral_validate_rate_limit: str = "30/minute"


# Global settings instance
settings = Settings()

# ── Security validation ──────────────────────────────────────────────
if settings.env == "production":
    if settings.jwt_secret_key in _INSECURE_JWT_DEFAULTS or len(settings.jwt_secret_key) < 32:
        print(
            "\n❌  FATAL: JWT_SECRET_KEY is insecure or too short (min 32 chars).\n"
            "   Set a strong random value:  openssl rand -hex 32\n",
            file=sys.stderr,
        )
        sys.exit(1)
