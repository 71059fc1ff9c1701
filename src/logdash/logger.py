"""Caller-facing logging API."""

from __future__ import annotations

import json
import threading
from collections.abc import Mapping
from concurrent.futures import Future
from typing import Any

from .config import LogdashConfig
from .console import format_log_line
from .models import LogEntry, LogLevel
from .transport.base import LogdashTransport

MAX_SEQUENCE_NUMBER = 2**63 - 1


def _context_json(context: Mapping[str, Any]) -> str:
    """Render context as compact JSON for inclusion in the shipped message."""
    try:
        return json.dumps(dict(context), separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        # Non-string keys or circular values: fall back to the repr.
        return str(dict(context))


class LogdashLogger:
    """Builds log entries, optionally echoes them to stdout, and hands them to a transport.

    Sequence numbers start at 1, increase by one per call in call order, and wrap
    back to 1 (never 0) after `MAX_SEQUENCE_NUMBER`.
    """

    def __init__(self, config: LogdashConfig, transport: LogdashTransport) -> None:
        self._config = config
        self._transport = transport
        self._sequence_lock = threading.Lock()
        self._sequence_number = 0

    def error(self, message: str, context: Mapping[str, Any] | None = None) -> Future[None]:
        return self.log(LogLevel.ERROR, message, context)

    def warn(self, message: str, context: Mapping[str, Any] | None = None) -> Future[None]:
        return self.log(LogLevel.WARN, message, context)

    def info(self, message: str, context: Mapping[str, Any] | None = None) -> Future[None]:
        return self.log(LogLevel.INFO, message, context)

    def http(self, message: str, context: Mapping[str, Any] | None = None) -> Future[None]:
        return self.log(LogLevel.HTTP, message, context)

    def verbose(self, message: str, context: Mapping[str, Any] | None = None) -> Future[None]:
        return self.log(LogLevel.VERBOSE, message, context)

    def debug(self, message: str, context: Mapping[str, Any] | None = None) -> Future[None]:
        return self.log(LogLevel.DEBUG, message, context)

    def silly(self, message: str, context: Mapping[str, Any] | None = None) -> Future[None]:
        return self.log(LogLevel.SILLY, message, context)

    def log(self, level: LogLevel, message: str, context: Mapping[str, Any] | None = None) -> Future[None]:
        """Emit one entry. Raises `ValueError` for a missing message or level."""
        if message is None:
            raise ValueError("Message cannot be null")
        context = context or {}
        entry = LogEntry(
            message=f"{message} {_context_json(context)}" if context else message,
            level=level,
            sequence_number=self._next_sequence_number(),
            context=context,
        )

        if self._config.enable_console_output:
            print(format_log_line(entry.level, message, context))

        return self._transport.send_log(entry)

    def _next_sequence_number(self) -> int:
        with self._sequence_lock:
            if self._sequence_number >= MAX_SEQUENCE_NUMBER:
                self._sequence_number = 1
            else:
                self._sequence_number += 1
            return self._sequence_number
