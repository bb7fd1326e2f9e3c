"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str | None = None

    # Connection pool
    db_pool_size: int = 10
    db_max_overflow: int = 5
    db_pool_timeout_s: float = 30.0
    db_echo: bool = False

    # Row-level security: role switched to inside every scoped transaction.
    # Must not have BYPASSRLS. Empty string disables the role switch.
    rls_role: str = "app_user"

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
