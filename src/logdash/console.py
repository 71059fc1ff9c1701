"""Console rendering shared by the logger echo and the console-only transport."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .models import LogLevel

RESET = "\033[0m"
RED = "\033[31m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
GREEN = "\033[32m"
PURPLE = "\033[35m"
CYAN = "\033[36m"
GRAY = "\033[90m"

LEVEL_COLORS: dict[LogLevel, str] = {
    LogLevel.ERROR: RED,
    LogLevel.WARN: YELLOW,
    LogLevel.INFO: BLUE,
    LogLevel.HTTP: GREEN,
    LogLevel.VERBOSE: PURPLE,
    LogLevel.DEBUG: CYAN,
    LogLevel.SILLY: GRAY,
}


def timestamp() -> str:
    """Local time with millisecond precision and UTC offset."""
    return datetime.now().astimezone().isoformat(timespec="milliseconds")


def format_context(context: Mapping[str, Any]) -> str:
    if not context:
        return ""
    return "{" + ", ".join(f"{key}={value}" for key, value in context.items()) + "}"


def format_log_line(level: LogLevel, message: str, context: Mapping[str, Any]) -> str:
    suffix = f" {format_context(context)}" if context else ""
    return f"{timestamp()} [{LEVEL_COLORS[level]}{level.value}{RESET}] {message}{suffix}"
