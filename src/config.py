from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str
    cors_allow_origins: str = "https://marcoswift.com"
    trust_forwarded_for: bool = False

    resend_api_key: str | None = None
    email_from: str = "marcoswift.com <noreply@marcoswift.com>"
    notification_email_to: str = "decunningham@marcoswift.com"
    notification_subject: str = "📚 New Prologue Download!"
    notification_timezone: str = "America/New_York"
    notification_formats: str = "Audiobook, ePub, PDF"
    email_http_timeout_seconds: float = 10.0

    signup_rate_limit_max: int = 5
    signup_rate_limit_window_hours: float = 1.0
    rate_limit_retention_hours: float = 24.0
    signup_success_redirect: str = "/download"
    ensure_schema_on_startup: bool = True

    log_level: str = "INFO"

    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout_seconds: int = 30
    db_echo_sql: bool = False

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("DATABASE_URL must be provided")
        return value

    @field_validator(
        "signup_rate_limit_max",
        "signup_rate_limit_window_hours",
        "rate_limit_retention_hours",
    )
    @classmethod
    def validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("rate limit settings must be positive")
        return value

    def cors_allow_origin_list(self) -> list[str]:
        return [item.strip() for item in self.cors_allow_origins.split(",") if item.strip()]

    def notifications_enabled(self) -> bool:
        return bool(self.resend_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
