"""Console-only transport used when no API key is configured (or HTTP setup fails)."""

from __future__ import annotations

import logging
from concurrent.futures import Future

from ..config import LogdashConfig
from ..console import CYAN, RESET, YELLOW, timestamp
from ..models import LogEntry, MetricEntry
from .base import completed_future

logger = logging.getLogger(__name__)


class NoOpTransport:
    """Prints entries to stdout instead of shipping them. Nothing to drain."""

    def __init__(self, config: LogdashConfig) -> None:
        self.config = config
        self._closed = False
        if config.enable_verbose_logging:
            logger.info("Logdash NoOp transport initialized (console-only mode)")

    def send_log(self, entry: LogEntry) -> Future[None]:
        if not self._closed and self.config.enable_console_output:
            print(
                f"{timestamp()} [{CYAN}LOG{RESET}] {entry.level.value.upper()}: "
                f"{entry.message} (seq={entry.sequence_number})"
            )
        return completed_future()

    def send_metric(self, entry: MetricEntry) -> Future[None]:
        if not self._closed and self.config.enable_console_output:
            print(
                f"{timestamp()} [{YELLOW}METRIC{RESET}] {entry.operation.value.upper()} "
                f"{entry.name} = {entry.value}"
            )
        return completed_future()

    def shutdown(self) -> None:
        return None

    def close(self) -> None:
        self._closed = True
        if self.config.enable_verbose_logging:
            logger.info("Logdash NoOp transport closed")
