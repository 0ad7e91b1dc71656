"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

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


DEFAULT_PROBE_MODELS = (
    "sonar,sonar-small-online,sonar-medium-online,sonar-small-chat,"
    "llama-3.1-sonar-small-128k-online,pplx-7b-online,pplx-70b-online"
)


def _build_upstream_settings() -> "UpstreamSettings":
    """Build upstream settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return UpstreamSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_upstream_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class UpstreamSettings(BaseSettings):
    """Perplexity chat-completions configuration.

    The API key is optional at startup: a missing key is reported per
    request (HTTP 500) rather than preventing the app from booting.
    """

    api_key: str | None = Field(
        None,
        description="Bearer token for the Perplexity API (PERPLEXITY_API_KEY)",
    )
    base_url: str = Field(
        "https://api.perplexity.ai",
        description="Base URL of the OpenAI-compatible chat completions API",
    )
    model: str = Field(
        "sonar",
        description="Model used for chat answers",
    )
    timeout_seconds: float = Field(
        30.0,
        description="Request timeout in seconds",
        gt=0,
    )
    max_tokens: int = Field(
        1200,
        description="Maximum completion tokens",
        ge=1,
    )
    temperature: float = Field(
        0.0,
        description="Sampling temperature",
        ge=0,
    )
    top_p: float = Field(
        0.8,
        description="Nucleus sampling parameter",
        gt=0,
        le=1,
    )
    return_citations: bool = Field(
        True,
        description="Ask the upstream API to return citations",
    )
    search_recency_filter: str | None = Field(
        "month",
        description="Restrict web search to recent results (day, week, month, year)",
    )
    probe_models: str = Field(
        DEFAULT_PROBE_MODELS,
        description="Comma-separated model names tried by the diagnostics endpoint",
    )
    probe_timeout_seconds: float = Field(
        10.0,
        description="Timeout for each diagnostics probe request",
        gt=0,
    )
    probe_max_tokens: int = Field(
        50,
        description="Completion token budget for diagnostics probes",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="PERPLEXITY_",
        case_sensitive=False,
    )

    @property
    def probe_model_list(self) -> list[str]:
        return [name.strip() for name in self.probe_models.split(",") if name.strip()]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    follow_up_max_chars: int = Field(
        50,
        description="Queries up to this length are accepted on a follow-up keyword alone",
        ge=0,
    )
    diagnostics_enabled: bool = Field(
        True,
        description="Expose the upstream diagnostics endpoint",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable rate limiting per client address",
    )
    rate_limit_requests: int = Field(
        5,
        description="Maximum number of requests allowed per window (per client)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        300,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and propagate request ids",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    upstream: UpstreamSettings = Field(default_factory=_build_upstream_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
