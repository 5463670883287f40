"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log line format: structured JSON or plain text",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where to write logs",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Rate limiting policies and HTTP presentation.

    The engine validates its own configuration as well; the ``ge=1`` bounds
    here only surface bad environment values at startup.
    """

    enabled: bool = Field(True, description="Enable rate limiting on /api routes")
    max_requests: int = Field(
        100,
        description="Global limit: requests allowed per window, per client",
        ge=1,
    )
    window_ms: int = Field(
        15 * 60 * 1000,
        description="Global limit: sliding window length in milliseconds",
        ge=1,
    )
    message: str = Field(
        "Too many requests from this IP, please try again later.",
        description="Message returned when the global limit is exceeded",
    )
    strict_max_requests: int = Field(
        5,
        description="Strict limit (sensitive endpoints): requests per window",
        ge=1,
    )
    strict_window_ms: int = Field(
        60 * 1000,
        description="Strict limit: sliding window length in milliseconds",
        ge=1,
    )
    strict_message: str = Field(
        "Rate limit exceeded for this endpoint. Please wait before trying again.",
        description="Message returned when the strict limit is exceeded",
    )
    sweep_interval_ms: int = Field(
        5 * 60 * 1000,
        description="How often stale client records are evicted",
        ge=1,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )
    status_code: int = Field(
        429,
        description="HTTP status used when a request is rejected",
        ge=400,
        le=599,
    )
    trust_forwarded_for: bool = Field(
        True,
        description="Derive the client key from the first X-Forwarded-For entry",
    )
    reset_format: Literal["iso", "epoch"] = Field(
        "iso",
        description="X-RateLimit-Reset as ISO-8601 timestamp or epoch seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    name: str = Field("Rate Limiter API", description="Service display name")
    version: str = Field("0.1.0", description="Service version")
    debug: bool = Field(False, description="Enable debug mode with verbose logging")
    host: str = Field("0.0.0.0", description="Bind address for the bundled server")
    port: int = Field(3000, description="Listen port for the bundled server")

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
