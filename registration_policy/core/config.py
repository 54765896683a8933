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


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty items.

    Order is preserved and duplicates are dropped.
    """

    if not value:
        return []
    items: list[str] = []
    for raw in value.split(","):
        item = raw.strip()
        if item and item not in items:
            items.append(item)
    return items


class AppSettings(BaseSettings):
    """Service-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether callers of /v1 endpoints must present an API key",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class PolicySettings(BaseSettings):
    """Registration policy rule set and evaluation behavior."""

    failure_mode: Literal["closed", "open"] = Field(
        "closed",
        description=(
            "What a rule resolves to when its dependency is unavailable: "
            "'closed' denies with evaluation_unavailable, 'open' passes"
        ),
    )
    evaluation_timeout_seconds: float = Field(
        0.25,
        description="Upper bound for a single reputation increment-and-check call",
        gt=0,
    )
    allowed_custom_schemes: str | None = Field(
        None,
        description="Comma-separated custom redirect URI schemes (e.g. com.example.app)",
    )
    allow_loopback_http_redirects: bool = Field(
        True,
        description="Accept http:// redirect URIs whose host is a loopback address",
    )
    allowed_grant_types: str = Field(
        "authorization_code,refresh_token,urn:ietf:params:oauth:grant-type:device_code,client_credentials",
        description="Comma-separated grant types a client may register",
    )
    client_name_max_length: int = Field(
        255,
        description="Maximum number of characters allowed in client_name",
        ge=1,
    )
    blocked_user_agent_patterns: str = Field(
        "curl/*,wget/*,python-requests/*,python-urllib/*,go-http-client/*,libwww-perl/*",
        description="Comma-separated glob patterns for scripted user agents to flag",
    )
    rate_limit_threshold: int = Field(
        10,
        description="Registration attempts allowed per requester within the reputation window",
        ge=1,
    )
    rate_limit_key_strategy: Literal["ip", "ip_user_agent"] = Field(
        "ip",
        description="Requester identity used for rate limiting",
    )

    model_config = SettingsConfigDict(
        env_prefix="POLICY_",
        case_sensitive=False,
    )


class ReputationSettings(BaseSettings):
    """Requester reputation store configuration."""

    backend: Literal["memory", "redis"] = Field(
        "memory",
        description="Reputation store backend",
    )
    window_seconds: int = Field(
        60,
        description="Length of the per-requester counting window in seconds",
        ge=1,
    )
    redis_url: str | None = Field(
        None,
        description="Redis connection URL (required when backend=redis)",
    )
    key_prefix: str = Field(
        "regpolicy:reputation:",
        description="Namespace prepended to every reputation key in Redis",
    )
    sweep_interval_seconds: float = Field(
        30.0,
        description="Interval for reclaiming stale in-memory entries (0 disables the sweeper)",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="REPUTATION_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        0,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def _build_app_settings() -> AppSettings:
    # BaseSettings fields come from the environment, not constructor args.
    return AppSettings()  # type: ignore[call-arg]


def _build_policy_settings() -> PolicySettings:
    return PolicySettings()  # type: ignore[call-arg]


def _build_reputation_settings() -> ReputationSettings:
    return ReputationSettings()  # type: ignore[call-arg]


def _build_log_settings() -> LogSettings:
    return LogSettings()  # type: ignore[call-arg]


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
    app: AppSettings = Field(default_factory=_build_app_settings)
    policy: PolicySettings = Field(default_factory=_build_policy_settings)
    reputation: ReputationSettings = Field(default_factory=_build_reputation_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
