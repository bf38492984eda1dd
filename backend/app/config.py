"""Configuration settings for the HomeXpert backend."""

from datetime import timedelta
from functools import lru_cache

from pydantic_settings import BaseSettings

from homexpert.engagement import EngagementConfig


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # JWT (tokens are issued by the auth service; we only verify them)
    jwt_secret_key: str  # Required - no default for security
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 1 week

    # Storage: SQLite file, or in-memory when unset
    database_path: str | None = None

    # Engagement rules
    lock_duration_days: float = 7
    acceptance_lock_days: float = 30
    request_ttl_days: float = 14
    lock_wait_timeout_seconds: float = 5.0
    redact_contact_details: bool = True
    auto_finalize_on_accept: bool = False

    # Rate limiting
    rate_limit_enabled: bool = True
    # Peers allowed to set X-Forwarded-For (JSON list in the environment)
    trusted_proxy_cidrs: list[str] = [
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "127.0.0.0/8",
        "::1/128",
    ]

    # App
    debug: bool = False
    # CORS: Allowed origins for cross-origin requests
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8081",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars not in model

    def to_engagement_config(self) -> EngagementConfig:
        """Engagement tunables for the core."""
        return EngagementConfig(
            default_lock_duration=timedelta(days=self.lock_duration_days),
            acceptance_lock_duration=timedelta(days=self.acceptance_lock_days),
            request_ttl=timedelta(days=self.request_ttl_days),
            lock_wait_timeout=self.lock_wait_timeout_seconds,
            redact_contact_details=self.redact_contact_details,
            auto_finalize_on_accept=self.auto_finalize_on_accept,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
