"""Event models shipped by the SDK.

Both event types are immutable and validated on construction:
- `LogEntry`: one log line with level, timestamp, sequence number and context.
- `MetricEntry`: one metric update (absolute set or signed delta).
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

MAX_MESSAGE_LENGTH = 100_000
MAX_CONTEXT_ENTRIES = 100

_TRUNCATION_RESERVE = 50


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(tz=timezone.utc)


class LogLevel(str, Enum):
    """Log severity levels, valued by their wire string."""

    ERROR = "error"
    WARN = "warning"
    INFO = "info"
    HTTP = "http"
    VERBOSE = "verbose"
    DEBUG = "debug"
    SILLY = "silly"

    def __str__(self) -> str:
        return self.value


class MetricType(str, Enum):
    """How the server applies a metric value.

    SET replaces the current value; MUTATE adds the (signed) value to it.
    """

    SET = "set"
    MUTATE = "change"

    def __str__(self) -> str:
        return self.value


class _Model(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


def _limit_context(context: Mapping[str, Any] | None) -> dict[str, Any]:
    """Copy a context mapping, capping it at `MAX_CONTEXT_ENTRIES` entries.

    Oversized contexts keep their first 99 entries plus a `_truncated` marker.
    """
    if not context:
        return {}
    if len(context) <= MAX_CONTEXT_ENTRIES:
        return dict(context)

    limited: dict[str, Any] = {}
    for key, value in context.items():
        if len(limited) >= MAX_CONTEXT_ENTRIES - 1:
            break
        limited[key] = value
    limited["_truncated"] = f"Context limited to {MAX_CONTEXT_ENTRIES} entries from original {len(context)}"
    return limited


class LogEntry(_Model):
    """A single log event.

    `context` is copied on construction and every read returns a fresh copy,
    so neither the caller nor earlier readers can mutate the entry.
    """

    message: str
    level: LogLevel
    sequence_number: int
    created_at: datetime = Field(default_factory=utc_now)

    _context: dict[str, Any] = PrivateAttr(default_factory=dict)

    def __init__(self, *, context: Mapping[str, Any] | None = None, **data: Any) -> None:
        if data.get("created_at") is None:
            data.pop("created_at", None)
        super().__init__(**data)
        self._context = _limit_context(context)

    @field_validator("message", mode="before")
    @classmethod
    def _truncate_message(cls, value: Any) -> Any:
        if isinstance(value, str) and len(value) > MAX_MESSAGE_LENGTH:
            return (
                value[: MAX_MESSAGE_LENGTH - _TRUNCATION_RESERVE]
                + f" ... [TRUNCATED: original length was {len(value)} chars]"
            )
        return value

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)


class MetricEntry(_Model):
    """A single metric update."""

    name: str
    value: int | float
    operation: MetricType

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Metric name cannot be blank")
        return value
