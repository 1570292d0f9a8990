"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from throttle.adapters.rate_limit.factory import SUPPORTED_ALGORITHMS


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

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


KEY_STRATEGIES = ("ip", "api_key", "user", "api_key_or_ip")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "plain")
LOG_OUTPUTS = ("stdout", "file")


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) populates values from environment variables, but
    static type checkers treat required fields as constructor arguments,
    which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    """Build rate limit settings from environment."""

    return RateLimitSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class ScopeOverride(BaseModel):
    """Per-scope quota override; unset fields inherit the global quota."""

    window_ms: int | None = Field(None, ge=1)
    max_requests: int | None = Field(None, ge=1)
    key_strategy: str | None = None

    @field_validator("key_strategy")
    @classmethod
    def _known_strategy(cls, value: str | None) -> str | None:
        if value is not None and value not in KEY_STRATEGIES:
            raise ValueError(f"key_strategy must be one of {KEY_STRATEGIES}")
        return value


def _default_overrides() -> dict[str, ScopeOverride]:
    """The data endpoint is stricter than the per-IP global quota."""

    return {"data": ScopeOverride(max_requests=20)}


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration shared by every scope.

    ``overrides`` is a JSON object in the environment, e.g.
    ``RATE_LIMIT_OVERRIDES='{"data": {"max_requests": 2000}}'``.
    """

    enabled: bool = Field(
        True,
        description="Enable rate limiting on protected routes",
    )
    algorithm: str = Field(
        "sliding_window",
        description="Limiter algorithm: sliding_window or fixed_window",
    )
    window_ms: int = Field(
        60_000,
        description="Rolling window length in milliseconds",
        ge=1,
    )
    max_requests: int = Field(
        100,
        description="Maximum admitted requests per key per window",
        ge=1,
    )
    key_strategy: str = Field(
        "api_key_or_ip",
        description="Default key extraction strategy (ip, api_key, user, api_key_or_ip)",
    )
    max_tracked_keys: int = Field(
        10_000,
        description="Upper bound on distinct keys tracked per scope (0 = unbounded)",
        ge=0,
    )
    sweep_every: int = Field(
        1_000,
        description="Purge expired keys every N checks (0 disables)",
        ge=0,
    )
    sweep_interval_seconds: float = Field(
        60.0,
        description="Background sweep period in seconds (0 disables)",
        ge=0,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )
    trust_forwarded_headers: bool = Field(
        False,
        description="Derive client IP from X-Forwarded-For / CF-Connecting-IP",
    )
    overrides: dict[str, ScopeOverride] = Field(
        default_factory=_default_overrides,
        description=(
            "Per-scope quota overrides keyed by scope name; setting this "
            "replaces the defaults entirely"
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )

    @field_validator("algorithm")
    @classmethod
    def _known_algorithm(cls, value: str) -> str:
        value = value.lower()
        if value not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"algorithm must be one of {SUPPORTED_ALGORITHMS}")
        return value

    @field_validator("key_strategy")
    @classmethod
    def _known_strategy(cls, value: str) -> str:
        if value not in KEY_STRATEGIES:
            raise ValueError(f"key_strategy must be one of {KEY_STRATEGIES}")
        return value


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and echo the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"level must be one of {LOG_LEVELS}")
        return value

    @field_validator("format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in LOG_FORMATS:
            raise ValueError(f"format must be one of {LOG_FORMATS}")
        return value

    @field_validator("output")
    @classmethod
    def _known_output(cls, value: str) -> str:
        value = value.lower()
        if value not in LOG_OUTPUTS:
            raise ValueError(f"output must be one of {LOG_OUTPUTS}")
        return value


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
