"""SDK error types.

Configuration and event-construction problems surface as `ValueError`
(pydantic `ValidationError`). The types below describe delivery failures,
which stay inside the transport and are never raised to callers.
"""

from __future__ import annotations


class LogdashError(RuntimeError):
    """Base class for SDK-internal failures."""


class LogdashHttpError(LogdashError):
    """Non-2xx response returned by the Logdash API."""

    def __init__(self, *, status_code: int, body: str | None = None):
        """Create an error capturing the HTTP status code and (truncated) body."""
        self.status_code = status_code
        self.body = body
        super().__init__(f"Logdash API HTTP {status_code}: {body}")
