"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly.
"""

from decimal import Decimal
from functools import lru_cache
from typing import List, Literal, Optional

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

    # Database - defaults to a local SQLite file, override via env for PostgreSQL
    database_url: str = "sqlite:///./stockrecon.db"

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Business day boundaries are computed in this timezone
    timezone: str = "UTC"
    currency_label: str = "KES"

    # ==========================================================================
    # PosterPOS Integration
    # ==========================================================================
    poster_api_url: Optional[str] = None  # e.g. https://myshop.joinposter.com
    poster_api_token: Optional[str] = None
    poster_timeout_seconds: float = 30.0

    # ==========================================================================
    # Telegram sale notifications
    # ==========================================================================
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    sale_notification_max_age_minutes: int = 60

    # ==========================================================================
    # Transaction sync
    # ==========================================================================
    sync_enabled: bool = True
    sync_interval_seconds: int = 300  # 5 minutes
    scheduler_tick_seconds: int = 30
    default_backfill_days: int = 14

    # ==========================================================================
    # Reconciliation controls
    # ==========================================================================
    variance_tolerance: Decimal = Decimal("0.01")
    par_alert_ratio: Decimal = Decimal("1.0")
    enforce_unique_daily_counts: bool = False

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_sync: str = "10/minute"

    @field_validator("variance_tolerance", "par_alert_ratio")
    @classmethod
    def validate_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("sync_interval_seconds", "scheduler_tick_seconds")
    @classmethod
    def validate_positive_interval(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("interval must be positive")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def poster_configured(self) -> bool:
        return bool(self.poster_api_url and self.poster_api_token)

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
