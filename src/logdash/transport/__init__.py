"""Delivery backends.

- `HttpTransport`: ships entries to the Logdash API (bounded concurrency, retries).
- `NoOpTransport`: console-only fallback with nothing to drain.
"""

from .base import LogdashTransport, completed_future
from .http import HttpTransport, TransportState
from .noop import NoOpTransport

__all__ = [
    "HttpTransport",
    "LogdashTransport",
    "NoOpTransport",
    "TransportState",
    "completed_future",
]
