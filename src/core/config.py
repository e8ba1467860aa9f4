"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when the application is wired with missing or invalid inputs."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Secret used to sign CSRF tokens and hash remember tokens
    csrf_key: str = Field(min_length=16, validation_alias="CSRF_KEY")
    csrf_timeout_seconds: int = Field(default=3600, validation_alias="CSRF_TIMEOUT_SECONDS")

    # Base URL used to mint absolute identifiers in the Atom feed
    public_url: str = Field(default="http://localhost:8080", validation_alias="PUBLIC_URL")

    session_duration_days: int = Field(default=30, validation_alias="SESSION_DURATION_DAYS")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # One-off feed retrieval when subscribing
    feed_fetch_timeout: float = Field(default=10.0, validation_alias="FEED_FETCH_TIMEOUT")
    feed_user_agent: str = Field(
        default="Mozilla/5.0 (compatible; SparkleMuffin/1.0)",
        validation_alias="FEED_USER_AGENT",
    )

    @field_validator("database_url")
    @classmethod
    def use_asyncpg_driver(cls, v: str) -> str:
        """Rewrite plain PostgreSQL URLs to use the asyncpg driver."""
        for prefix in ("postgres://", "postgresql://"):
            if v.startswith(prefix):
                return "postgresql+asyncpg://" + v[len(prefix):]
        return v

    @field_validator("public_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Public URLs are joined with absolute paths."""
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lowercase log level names."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
