# tablekit/config.py
"""
Centralized application configuration using pydantic-settings.

All settings are read from environment variables or .env file.
"""

import os
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Priority: environment variables > .env file > defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )

    # --- Database ---
    DB_URL: str = Field(
        default="postgresql://localhost:5432/tablekit",
        description="PostgreSQL connection URL (saved views)"
    )

    # --- Redis ---
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (suggestion cache)"
    )

    # --- Server ---
    HOST: str = Field(
        default="127.0.0.1",
        description="Server bind host"
    )
    PORT: int = Field(
        default=8888,
        description="Server bind port"
    )

    # --- Saved-view suggestions ---
    SUGGESTION_DEBOUNCE_SECONDS: float = Field(
        default=0.3,
        ge=0,
        description="Delay before a view-name suggestion request is issued"
    )
    SUGGESTION_CACHE_TTL: int = Field(
        default=600,
        ge=1,
        description="Seconds a suggestion stays cached by summary signature"
    )

    # --- Debug / Logging ---
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    OTEL_ENABLED: bool = Field(
        default=False,
        description="Instrument FastAPI and SQLAlchemy with OpenTelemetry"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v_upper


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance (singleton pattern)."""
    return Settings()


# --- Singleton instance for easy import ---
settings = get_settings()


# --- Module-level exports ---

# Database
DATABASE_URL: str = settings.DB_URL

# Server
HOST: str = settings.HOST
PORT: int = settings.PORT
DEBUG: bool = settings.DEBUG
LOG_LEVEL: str = settings.LOG_LEVEL
OTEL_ENABLED: bool = settings.OTEL_ENABLED

# Redis
REDIS_URL: str = settings.REDIS_URL

# Saved-view suggestions
SUGGESTION_DEBOUNCE_SECONDS: float = settings.SUGGESTION_DEBOUNCE_SECONDS
SUGGESTION_CACHE_TTL: int = settings.SUGGESTION_CACHE_TTL

# --- Paths (computed, not from env) ---
PROJECT_ROOT: str = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
LOGS_PATH: str = os.path.join(PROJECT_ROOT, "logs")
