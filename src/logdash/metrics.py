"""Caller-facing metrics API."""

from __future__ import annotations

import logging
from concurrent.futures import Future

from .config import LogdashConfig
from .models import MetricEntry, MetricType
from .transport.base import LogdashTransport

logger = logging.getLogger(__name__)


class LogdashMetrics:
    """Builds metric entries and forwards them to a transport."""

    def __init__(self, config: LogdashConfig, transport: LogdashTransport) -> None:
        self._config = config
        self._transport = transport

    def set(self, name: str, value: int | float) -> Future[None]:
        """Replace the metric's server-side value."""
        return self._send(MetricEntry(name=name, value=value, operation=MetricType.SET))

    def mutate(self, name: str, delta: int | float) -> Future[None]:
        """Add a signed delta to the metric's server-side value."""
        return self._send(MetricEntry(name=name, value=delta, operation=MetricType.MUTATE))

    def increment(self, name: str, value: int | float = 1) -> Future[None]:
        return self.mutate(name, value)

    def decrement(self, name: str, value: int | float = 1) -> Future[None]:
        return self.mutate(name, -value)

    def _send(self, metric: MetricEntry) -> Future[None]:
        if self._config.enable_verbose_logging:
            logger.info("Metric: %s %s %s", metric.operation.value, metric.name, metric.value)
        return self._transport.send_metric(metric)
