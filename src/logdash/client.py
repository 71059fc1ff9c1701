"""Top-level SDK handle.

`Logdash` wires a configuration to a transport and exposes the logger and
metrics APIs. It owns the transport lifecycle:

- Picks `HttpTransport` when an API key is configured, otherwise (or if the
  HTTP transport cannot be built) falls back to the console-only `NoOpTransport`.
- Tracks every open instance so pending requests get a bounded drain when the
  interpreter exits. Explicit `close()` stops tracking the instance.

Example:
    >>> with Logdash.create("your-api-key") as logdash:
    ...     logdash.logger.info("Application started")
    ...     logdash.metrics.mutate("app.starts", 1)
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from typing import Any

from .config import LogdashConfig
from .logger import LogdashLogger
from .metrics import LogdashMetrics
from .transport.base import LogdashTransport
from .transport.http import HttpTransport
from .transport.noop import NoOpTransport

logger = logging.getLogger(__name__)

EXIT_HOOK_TIMEOUT_MS = 3_000


_open_clients: set[Logdash] = set()
_open_clients_lock = threading.Lock()
_exit_hook_installed = False


def _drain_open_clients() -> None:
    """Interpreter-exit drain for every instance that was never closed."""
    with _open_clients_lock:
        clients = list(_open_clients)
        _open_clients.clear()
    for client in clients:
        client._exit_hook()


def _track(client: Logdash) -> None:
    """Remember an open instance and install the exit drain on first use.

    The drain is registered with `threading._register_atexit`, which runs before
    `concurrent.futures` stops accepting work at interpreter exit. Plain `atexit`
    callbacks run after that point, when the HTTP worker pool refuses new calls.
    """
    global _exit_hook_installed
    with _open_clients_lock:
        if not _exit_hook_installed:
            try:
                threading._register_atexit(_drain_open_clients)  # type: ignore[attr-defined]
            except RuntimeError:
                # Interpreter already shutting down; only an explicit close() drains now.
                logger.debug("Exit drain unavailable during interpreter shutdown")
            else:
                _exit_hook_installed = True
        _open_clients.add(client)


def _untrack(client: Logdash) -> None:
    with _open_clients_lock:
        _open_clients.discard(client)


def _host_logging_configured() -> bool:
    return bool(logging.getLogger().handlers)


def _enable_verbose_output() -> None:
    """Route `logdash.*` diagnostics to stderr unless the host already configured logging.

    When the host (or the root logger) has handlers, diagnostics propagate to
    them instead, so nothing is printed twice.
    """
    sdk_logger = logging.getLogger("logdash")
    if sdk_logger.handlers:
        return
    if _host_logging_configured():
        if sdk_logger.level == logging.NOTSET:
            sdk_logger.setLevel(logging.DEBUG)
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [logdash] %(levelname)s %(message)s"))
    sdk_logger.addHandler(handler)
    sdk_logger.setLevel(logging.DEBUG)


class Logdash:
    """Entry point for shipping logs and metrics to Logdash."""

    def __init__(self, config: LogdashConfig | None = None) -> None:
        self._config = config or LogdashConfig()
        if self._config.enable_verbose_logging:
            _enable_verbose_output()

        self._transport = self._create_transport(self._config)
        self._logger = LogdashLogger(self._config, self._transport)
        self._metrics = LogdashMetrics(self._config, self._transport)

        self._closed = False
        self._close_lock = threading.Lock()
        _track(self)

    @classmethod
    def create(cls, api_key: str | None = None, **options: Any) -> Logdash:
        """Build an instance from an API key plus any `LogdashConfig` field overrides."""
        return cls(LogdashConfig(api_key=api_key, **options))

    @property
    def config(self) -> LogdashConfig:
        return self._config

    @property
    def transport(self) -> LogdashTransport:
        return self._transport

    @property
    def logger(self) -> LogdashLogger:
        self._check_not_closed()
        return self._logger

    @property
    def metrics(self) -> LogdashMetrics:
        self._check_not_closed()
        return self._metrics

    @property
    def closed(self) -> bool:
        return self._closed

    def flush(self) -> None:
        """Block (bounded by `shutdown_timeout_ms`) until in-flight requests finish.

        Best-effort: never raises, and is a no-op for transports without flush.
        """
        flush = getattr(self._transport, "flush", None)
        if self._closed or flush is None:
            return
        self._verbose("Flushing pending requests...")
        try:
            flush().result(timeout=self._config.shutdown_timeout_ms / 1000)
        except Exception as exc:  # noqa: BLE001 - flushing must not break the host app
            self._verbose("Flush failed: %s", exc, level=logging.WARNING)
        else:
            self._verbose("Flush completed")

    def close(self) -> None:
        """Drain (bounded) and release the transport. Safe to call multiple times."""
        _untrack(self)
        self._shutdown(self._config.shutdown_timeout_ms)

    async def aflush(self) -> None:
        """Async variant of `flush()` that does not block the running event loop."""
        await asyncio.to_thread(self.flush)

    async def aclose(self) -> None:
        """Async variant of `close()` that does not block the running event loop."""
        await asyncio.to_thread(self.close)

    def __enter__(self) -> Logdash:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _exit_hook(self) -> None:
        try:
            self._verbose("Shutting down Logdash SDK via exit hook...")
            self._shutdown(min(self._config.shutdown_timeout_ms, EXIT_HOOK_TIMEOUT_MS))
        except Exception as exc:  # noqa: BLE001 - never fail interpreter shutdown
            self._verbose("Error during exit hook cleanup: %s", exc, level=logging.WARNING)

    def _shutdown(self, timeout_ms: int) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self._verbose("Shutting down Logdash SDK...")
        try:
            pending = self._transport.shutdown()
            if pending is not None:
                try:
                    pending.result(timeout=timeout_ms / 1000)
                except Exception as exc:  # noqa: BLE001 - drain is best-effort
                    self._verbose("Graceful shutdown timeout: %s", exc, level=logging.WARNING)
        finally:
            self._transport.close()
            self._verbose("Logdash SDK shutdown completed")

    def _check_not_closed(self) -> None:
        if self._closed:
            raise RuntimeError("Logdash instance has been closed")

    def _create_transport(self, config: LogdashConfig) -> LogdashTransport:
        if not config.has_api_key:
            self._verbose("No API key provided, using console-only mode")
            return NoOpTransport(config)
        try:
            return HttpTransport(config)
        except Exception as exc:  # noqa: BLE001 - degrade to console-only mode
            if config.enable_verbose_logging:
                logger.warning("Failed to create HTTP transport, falling back to console-only: %s", exc, exc_info=True)
            return NoOpTransport(config)

    def _verbose(self, msg: str, *args: Any, level: int = logging.INFO) -> None:
        if self._config.enable_verbose_logging:
            logger.log(level, msg, *args)


def create(api_key: str | None = None, **options: Any) -> Logdash:
    """Shorthand for `Logdash.create(...)`."""
    return Logdash.create(api_key, **options)
