"""JSON payload encoding for log and metric entries.

The serializer is total: malformed or edge-case data degrades the payload
(sanitized strings, zeroed non-finite numbers, or a hand-built fallback with an
`_error` field) but never raises into the transport.
"""

from __future__ import annotations

import json
import math
import re
from datetime import datetime, timezone
from typing import Any

from .models import LogEntry, MetricEntry

# Control characters except tab, newline and carriage return.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def _encode(payload: dict[str, Any]) -> str:
    """Encode a payload as compact JSON with stable (alphabetical) key order."""
    return json.dumps(payload, separators=(",", ":"), sort_keys=True, allow_nan=False)


def _sanitize_string(value: str | None) -> str:
    if value is None:
        return ""
    return _CONTROL_CHARS.sub("", value)


def _sanitize_number(value: int | float) -> int | float:
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return value


def _format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with microsecond precision and a `Z` suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _escape_json_string(value: Any) -> str:
    """Escape text for hand-built JSON; output is always ASCII."""
    out: list[str] = []
    for ch in _sanitize_string(str(value)):
        code = ord(ch)
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif code < 0x80:
            out.append(ch)
        elif code <= 0xFFFF:
            out.append(f"\\u{code:04x}")
        else:
            code -= 0x10000
            out.append(f"\\u{0xD800 + (code >> 10):04x}\\u{0xDC00 + (code & 0x3FF):04x}")
    return "".join(out)


class JsonSerializer:
    """Converts SDK entries to wire JSON."""

    def serialize(self, entry: LogEntry | MetricEntry) -> str:
        if isinstance(entry, MetricEntry):
            return self.serialize_metric(entry)
        return self.serialize_log(entry)

    def serialize_log(self, entry: LogEntry) -> str:
        try:
            return _encode(
                {
                    "createdAt": _format_timestamp(entry.created_at),
                    "level": entry.level.value,
                    "message": _sanitize_string(entry.message),
                    "sequenceNumber": int(entry.sequence_number),
                }
            )
        except Exception as exc:  # noqa: BLE001 - degrade output, never availability
            return self._fallback_log(entry, exc)

    def serialize_metric(self, entry: MetricEntry) -> str:
        try:
            return _encode(
                {
                    "name": _sanitize_string(entry.name),
                    "operation": entry.operation.value,
                    "value": _sanitize_number(entry.value),
                }
            )
        except Exception as exc:  # noqa: BLE001 - degrade output, never availability
            return self._fallback_metric(entry, exc)

    def _fallback_log(self, entry: LogEntry, error: Exception) -> str:
        try:
            created_at = _format_timestamp(entry.created_at)
        except Exception:  # noqa: BLE001
            created_at = str(entry.created_at)
        try:
            sequence_number = int(entry.sequence_number)
        except Exception:  # noqa: BLE001
            sequence_number = 0
        return (
            '{"_error":"Serialization failed: %s","createdAt":"%s","level":"%s","message":"%s","sequenceNumber":%d}'
            % (
                _escape_json_string(error),
                _escape_json_string(created_at),
                _escape_json_string(getattr(entry.level, "value", entry.level)),
                _escape_json_string(entry.message),
                sequence_number,
            )
        )

    def _fallback_metric(self, entry: MetricEntry, error: Exception) -> str:
        return '{"_error":"Serialization failed: %s","name":"%s","operation":"%s","value":0}' % (
            _escape_json_string(error),
            _escape_json_string(entry.name),
            _escape_json_string(getattr(entry.operation, "value", entry.operation)),
        )
