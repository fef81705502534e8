"""
Deployment settings for EventSync Finance.

Read from environment variables prefixed with EVENTSYNC_ (or a .env file) so the
same build runs in development, CI and production without code changes.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class FinanceSettings(BaseSettings):
    """Application settings."""

    # Storage
    db_path: Path = Path(".eventsync-finance.db")

    # Runtime
    environment: str = "development"
    log_level: str = "INFO"
    json_logs: bool = False

    # Security (JWT bearer tokens)
    jwt_secret: str = "change-me-in-production-at-least-32-characters"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # HTTP
    api_host: str = "127.0.0.1"
    api_port: int = 8080
    metrics_port: int | None = None

    model_config = SettingsConfigDict(
        env_prefix="EVENTSYNC_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> FinanceSettings:
    """Process-wide settings, read once"""
    return FinanceSettings()
