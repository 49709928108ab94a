"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly. Clover credentials acquired through
the OAuth callback are stored in the database and take precedence over the
values configured here (see ``clover_sync.services.credential_service``).
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Database - defaults to relative path for Docker, override via env for local dev
    database_url: str = "sqlite:///./clover_sync.db"

    # ==========================================================================
    # Clover POS
    # ==========================================================================
    clover_client_id: str = ""
    clover_client_secret: str = ""
    clover_access_token: str = ""
    clover_merchant_id: str = ""
    clover_environment: Literal["sandbox", "production"] = "sandbox"
    clover_redirect_uri: str = "http://localhost:8000/api/v1/clover/oauth/callback"
    clover_auto_print: bool = True
    clover_debug_mode: bool = False
    # Truncation is what existing POS-side reconciliation expects
    clover_round_currency: bool = False
    clover_http_timeout: float = 20.0

    # ==========================================================================
    # WooCommerce
    # ==========================================================================
    woocommerce_webhook_secret: Optional[str] = None

    # Admin endpoints (logs, re-sync, OAuth)
    admin_api_key: Optional[str] = None

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Sync log entries older than this are purged on startup
    log_retention_days: int = 90

    # Rate limiting
    rate_limit_enabled: bool = True
    webhook_rate_limit: str = "120/minute"

    @field_validator("clover_http_timeout")
    @classmethod
    def validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("CLOVER_HTTP_TIMEOUT must be positive")
        if v > 60:
            import warnings
            warnings.warn(
                "CLOVER_HTTP_TIMEOUT above 60s holds the webhook request open "
                "long enough for WooCommerce to redeliver it.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @property
    def clover_sandbox(self) -> bool:
        return self.clover_environment == "sandbox"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
