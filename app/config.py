"""
Swipematch — Application Configuration

Loads all configuration from environment variables (and an optional .env file)
using Pydantic Settings.  A cached ``get_settings()`` helper is provided so that
FastAPI dependency-injection (and any other call-site) always receives the same
validated instance without re-parsing the environment on every request.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Central configuration for the Swipematch service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Database – PostgreSQL (asyncpg) or SQLite (aiosqlite) for local dev
    # ------------------------------------------------------------------ #
    DATABASE_URL: str
    DB_USER: str = "swipematch_user"
    DB_PASSWORD: str = ""
    DB_NAME: str = "swipematch"

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_RECYCLE: int = 1800
    DB_STATEMENT_TIMEOUT_SECONDS: float = 10.0
    DB_AUTO_CREATE_SCHEMA: bool = False  # Alembic owns the schema otherwise
    DB_CONNECT_ATTEMPTS: int = 5

    # ------------------------------------------------------------------ #
    # Cloud SQL connector (optional, production)
    # ------------------------------------------------------------------ #
    CLOUD_SQL_INSTANCE_CONNECTION: str = ""
    CLOUD_SQL_USE_UNIX_SOCKET: bool = True

    # ------------------------------------------------------------------ #
    # Conversation rules
    # ------------------------------------------------------------------ #
    MESSAGE_MAX_LENGTH: int = 2000
    ENFORCE_MATCH_MEMBERSHIP: bool = True

    # ------------------------------------------------------------------ #
    # Runtime environment
    # ------------------------------------------------------------------ #
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    SHUTDOWN_DRAIN_SECONDS: float = 15.0
    PORT: int = 8000

    # ------------------------------------------------------------------ #
    # CORS
    # ------------------------------------------------------------------ #
    ALLOWED_ORIGINS: str = "*"

    # ------------------------------------------------------------------ #
    # Derived helpers
    # ------------------------------------------------------------------ #
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list split on commas."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @field_validator(
        "DB_POOL_TIMEOUT",
        "DB_STATEMENT_TIMEOUT_SECONDS",
        "REQUEST_TIMEOUT_SECONDS",
        "SHUTDOWN_DRAIN_SECONDS",
        "MESSAGE_MAX_LENGTH",
        "DB_POOL_SIZE",
        "DB_CONNECT_ATTEMPTS",
    )
    @classmethod
    def _must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Value must be positive, got {v}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def _known_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {_LOG_LEVELS}, got {v!r}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached, validated ``Settings`` instance.

    Using ``@lru_cache`` guarantees the .env file is read and validated
    exactly once per process lifetime.  Import this function anywhere you
    need access to configuration::

        from app.config import get_settings
        settings = get_settings()
    """
    return Settings()  # type: ignore[call-arg]
