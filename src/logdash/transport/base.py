"""Transport interface.

The facade depends on this small interface so the delivery backend (network or
console-only) can be swapped without changing logger/metrics code.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Protocol

from ..models import LogEntry, MetricEntry


def completed_future() -> Future[None]:
    """Return a future that has already resolved successfully."""
    fut: Future[None] = Future()
    fut.set_result(None)
    return fut


class LogdashTransport(Protocol):
    def send_log(self, entry: LogEntry) -> Future[None]:
        """Deliver a log entry in the background; never blocks or raises."""

    def send_metric(self, entry: MetricEntry) -> Future[None]:
        """Deliver a metric entry in the background; never blocks or raises."""

    def shutdown(self) -> Future[None] | None:
        """Begin a graceful drain.

        Returns None when the transport has nothing to drain.
        """

    def close(self) -> None:
        """Release resources immediately. Safe to call more than once."""
