"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Converting `LOGDASH_*` environment variables into a typed, immutable settings model.
- Validating values up front so misconfiguration fails at build time, not on send.
"""

from __future__ import annotations

import os
from typing import TypeVar
from urllib.parse import urlsplit

import dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

_T = TypeVar("_T", int, float)

DEFAULT_BASE_URL = "https://api.logdash.io"

MIN_API_KEY_LENGTH = 3
MAX_API_KEY_LENGTH = 256


def _get_env_str(name: str, default: str | None) -> str | None:
    """Read an optional string env var, treating blank as unset."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


def _get_env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    normalized = raw.strip().lower()
    if normalized in {"true", "1", "yes", "y", "on"}:
        return True
    if normalized in {"false", "0", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (true/false). Got: {raw!r}")


def _get_env_number(name: str, default: _T, cast: type[_T]) -> _T:
    """Read an int/float env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a {cast.__name__}. Got: {raw!r}") from exc


class LogdashConfig(BaseModel):
    """Settings consumed by the SDK. Read once; never changes for a transport's lifetime."""

    model_config = ConfigDict(frozen=True)

    api_key: str | None = Field(default=None, description="Project API key; absent means console-only mode")
    base_url: str = Field(default=DEFAULT_BASE_URL, description="Logdash API base URL")
    enable_console_output: bool = Field(default=True, description="Echo logs and metrics to stdout")
    enable_verbose_logging: bool = Field(default=False, description="Emit SDK diagnostics")

    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    retry_delay_ms: int = Field(default=500, ge=0, description="Base delay for exponential backoff")
    request_timeout_ms: int = Field(default=15_000, gt=0, description="Per-request HTTP timeout")
    shutdown_timeout_ms: int = Field(default=10_000, gt=0, description="Max wait for in-flight work on shutdown")
    max_concurrent_requests: int = Field(default=10, gt=0, description="Max simultaneous HTTP requests")

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str | None) -> str | None:
        """Normalize blank keys to None and bound the length of real ones."""
        if v is None or not v.strip():
            return None
        if not MIN_API_KEY_LENGTH <= len(v) <= MAX_API_KEY_LENGTH:
            raise ValueError(
                f"API key length must be between {MIN_API_KEY_LENGTH} and {MAX_API_KEY_LENGTH} characters"
            )
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an absolute http(s) URL."""
        if not v or not v.strip():
            raise ValueError("Base URL cannot be blank")
        try:
            parts = urlsplit(v.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid base URL: {v!r}") from exc
        if parts.scheme.lower() not in {"http", "https"}:
            raise ValueError(f"Invalid base URL: {v!r} (unsupported scheme {parts.scheme!r})")
        if not parts.netloc:
            raise ValueError(f"Invalid base URL: {v!r} (missing host)")
        return v.strip()

    @property
    def has_api_key(self) -> bool:
        return self.api_key is not None


def load_config() -> LogdashConfig:
    """Load SDK configuration from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - Raises `ValueError` with actionable messages for malformed values.
    """
    dotenv.load_dotenv()

    return LogdashConfig(
        api_key=_get_env_str("LOGDASH_API_KEY", None),
        base_url=_get_env_str("LOGDASH_BASE_URL", DEFAULT_BASE_URL),
        enable_console_output=_get_env_bool("LOGDASH_ENABLE_CONSOLE_OUTPUT", True),
        enable_verbose_logging=_get_env_bool("LOGDASH_ENABLE_VERBOSE_LOGGING", False),
        max_retries=_get_env_number("LOGDASH_MAX_RETRIES", 3, int),
        retry_delay_ms=_get_env_number("LOGDASH_RETRY_DELAY_MS", 500, int),
        request_timeout_ms=_get_env_number("LOGDASH_REQUEST_TIMEOUT_MS", 15_000, int),
        shutdown_timeout_ms=_get_env_number("LOGDASH_SHUTDOWN_TIMEOUT_MS", 10_000, int),
        max_concurrent_requests=_get_env_number("LOGDASH_MAX_CONCURRENT_REQUESTS", 10, int),
    )
