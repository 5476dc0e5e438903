"""Configuration management for FocusShield."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import FREE_TIER_REPORT_WEEKS, REPORT_WEEKS


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = Field(default="sqlite:///./focusshield.db", validation_alias="DATABASE_URL")

    # Auth provider (tokens are issued elsewhere, we only verify them)
    auth_jwt_secret: str | None = Field(default=None, validation_alias="AUTH_JWT_SECRET")
    auth_jwt_algorithm: str = Field(default="HS256", validation_alias="AUTH_JWT_ALGORITHM")

    # Client side
    data_dir: Path = Field(default=Path.home() / ".focusshield", validation_alias="FOCUSSHIELD_DATA_DIR")
    api_url: str | None = Field(default=None, validation_alias="FOCUSSHIELD_API_URL")
    token: str | None = Field(default=None, validation_alias="FOCUSSHIELD_TOKEN")
    timezone: str | None = Field(default=None, validation_alias="FOCUSSHIELD_TIMEZONE")
    log_level: str = Field(default="INFO", validation_alias="FOCUSSHIELD_LOG_LEVEL")

    free_tier_report_weeks: int = Field(default=FREE_TIER_REPORT_WEEKS, validation_alias="FREE_TIER_REPORT_WEEKS")
    report_weeks: int = Field(default=REPORT_WEEKS, validation_alias="REPORT_WEEKS")

    # Payments
    stripe_secret_key: str | None = Field(default=None, validation_alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: str | None = Field(default=None, validation_alias="STRIPE_WEBHOOK_SECRET")
    stripe_pro_price_id: str | None = Field(default=None, validation_alias="STRIPE_PRO_PRICE_ID")
    stripe_pro_plus_price_id: str | None = Field(default=None, validation_alias="STRIPE_PRO_PLUS_PRICE_ID")
    app_url: str = Field(default="https://focus-timer-app.vercel.app", validation_alias="APP_URL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "FOCUSSHIELD_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        try:
            ZoneInfo(value.strip())
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"FOCUSSHIELD_TIMEZONE is not a known timezone: {value}") from exc
        return value.strip()

    @field_validator("free_tier_report_weeks", "report_weeks")
    @classmethod
    def _validate_weeks(cls, value: int) -> int:
        if value < 1:
            raise ValueError("week counts must be >= 1")
        return value

    @property
    def remote_configured(self) -> bool:
        return bool(self.api_url and self.token)

    @property
    def payments_configured(self) -> bool:
        return bool(self.stripe_secret_key)

    def tz(self) -> tzinfo | None:
        """Timezone used for week and day bucketing. None means the system local zone."""
        return ZoneInfo(self.timezone) if self.timezone else None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
