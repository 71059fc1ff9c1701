"""Async HTTP delivery engine for the Logdash API.

This transport implements a small fire-and-forget delivery framework:

- Public `send_*` methods serialize the entry, schedule a unit of work on a
  private asyncio event loop (running in a daemon thread) and immediately return
  a `concurrent.futures.Future`.
- A semaphore bounds in-flight requests. A request that cannot get a permit
  within 200ms is dropped instead of queued.
- The HTTP call uses `requests` executed through `asyncio.to_thread` on a bounded
  thread pool, and is retried with capped exponential backoff plus jitter.
- An active-request counter and a per-batch completion event back `flush()` and
  `shutdown()`.

Every future returned to callers resolves with `None`; delivery problems are only
visible through verbose diagnostics and `stats()`.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import os
import random
import threading
from collections.abc import Callable, Coroutine
from concurrent.futures import Future, ThreadPoolExecutor
from enum import IntEnum
from typing import Any, Final

import requests

from ..config import LogdashConfig
from ..exceptions import LogdashHttpError
from ..models import LogEntry, MetricEntry
from ..serializer import JsonSerializer
from .base import completed_future

logger = logging.getLogger(__name__)

LOGS_ENDPOINT: Final[str] = "/logs"
METRICS_ENDPOINT: Final[str] = "/metrics"

API_KEY_HEADER: Final[str] = "project-api-key"
USER_AGENT: Final[str] = "logdash-python-sdk/0.2.0"
CONTENT_TYPE: Final[str] = "application/json"

PERMIT_WAIT_S: Final[float] = 0.2
MAX_BACKOFF_MS: Final[int] = 5_000
MAX_JITTER_MS: Final[int] = 100
FLUSH_WAIT_CAP_MS: Final[int] = 5_000
SHUTDOWN_WAIT_CAP_MS: Final[int] = 3_000
CLOSE_GRACE_S: Final[float] = 0.5
MAX_CONNECT_TIMEOUT_S: Final[float] = 10.0


class TransportState(IntEnum):
    ACTIVE = 0
    SHUTDOWN_INITIATED = 1
    CLOSED = 2


def _resolve(result: Future[None]) -> None:
    if not result.done():
        result.set_result(None)


def _in_running_loop() -> bool:
    """True when called from a thread that is already running an event loop."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def _mask_api_key(api_key: str | None) -> str:
    if api_key is None or len(api_key) <= 8:
        return "***"
    return f"{api_key[:4]}...{api_key[-4:]}"


def _pool_size(config: LogdashConfig) -> int:
    """Size the HTTP worker pool from the CPU count and the concurrency limit."""
    core = max(4, os.cpu_count() or 1)
    return max(config.max_concurrent_requests, core * 2)


class HttpTransport:
    """Ships entries to the Logdash API with bounded concurrency and retries.

    Members:
    - Config: `config` (read once, never changes)
    - Event loop: `_loop`, run forever by the `logdash-transport` daemon thread
    - Worker pool: `_executor` (loop default executor for blocking HTTP calls)
    - Permits: `_permits` (admission control for in-flight requests)
    - Completion signal: `_idle` (replaced whenever active requests go 0 -> 1)

    `_permits`, `_active_requests`, `_idle`, `_tasks` and `_stats` are only
    touched from the loop thread, so the send path takes no locks.
    """

    def __init__(self, config: LogdashConfig):
        """Start the delivery loop for the given configuration."""
        if config.api_key is None:
            raise ValueError("HttpTransport requires an API key")

        self.config = config
        self._serializer = JsonSerializer()
        self._base_url = config.base_url.rstrip("/")
        self._headers = {
            "Content-Type": CONTENT_TYPE,
            API_KEY_HEADER: config.api_key,
            "User-Agent": USER_AGENT,
        }
        request_timeout_s = config.request_timeout_ms / 1000
        self._timeout = (min(request_timeout_s, MAX_CONNECT_TIMEOUT_S), request_timeout_s)

        self._state = TransportState.ACTIVE
        self._state_lock = threading.Lock()
        self._torn_down = False
        self._request_ids = itertools.count(1)

        self._permits = asyncio.Semaphore(config.max_concurrent_requests)
        self._active_requests = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._stats = {
            "dispatched_requests": 0,
            "http_attempts": 0,
            "succeeded_requests": 0,
            "failed_requests": 0,
            "dropped_requests": 0,
        }

        self._executor = ThreadPoolExecutor(max_workers=_pool_size(config), thread_name_prefix="logdash-http")
        self._loop = asyncio.new_event_loop()
        self._loop.set_default_executor(self._executor)
        self._thread = threading.Thread(target=self._run_loop, name="logdash-transport", daemon=True)
        self._thread.start()

        self._verbose(logging.INFO, "HTTP transport initialized for %s", self._base_url)

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def active_requests(self) -> int:
        return self._active_requests

    def stats(self) -> dict[str, int]:
        """Return a point-in-time snapshot of delivery counters."""
        snapshot = dict(self._stats)
        snapshot["active_requests"] = self._active_requests
        return snapshot

    def send_log(self, entry: LogEntry) -> Future[None]:
        if self._state is not TransportState.ACTIVE:
            return completed_future()
        try:
            payload = self._serializer.serialize_log(entry)
        except Exception as exc:  # noqa: BLE001 - a bad entry must not reach the caller
            self._report_error("Failed to serialize log entry", exc)
            return completed_future()
        return self._dispatch(LOGS_ENDPOINT, "POST", payload)

    def send_metric(self, entry: MetricEntry) -> Future[None]:
        if self._state is not TransportState.ACTIVE:
            return completed_future()
        try:
            payload = self._serializer.serialize_metric(entry)
        except Exception as exc:  # noqa: BLE001 - a bad entry must not reach the caller
            self._report_error("Failed to serialize metric entry", exc)
            return completed_future()
        return self._dispatch(METRICS_ENDPOINT, "PUT", payload)

    def flush(self) -> Future[None]:
        """Wait (bounded) for the requests in flight when the wait starts."""
        timeout_s = min(self.config.shutdown_timeout_ms, FLUSH_WAIT_CAP_MS) / 1000
        return self._schedule(lambda: self._wait_idle(timeout_s, "Flush"), name="logdash-flush")

    def shutdown(self) -> Future[None]:
        """Stop accepting work and drain in-flight requests. Only the first call drains."""
        if not self._advance(TransportState.SHUTDOWN_INITIATED):
            return completed_future()
        self._verbose(logging.INFO, "Initiating HTTP transport shutdown...")
        timeout_s = min(self.config.shutdown_timeout_ms, SHUTDOWN_WAIT_CAP_MS) / 1000
        return self._schedule(lambda: self._drain_and_close(timeout_s), name="logdash-shutdown")

    def close(self) -> None:
        """Abort outstanding work and tear down the loop and worker pool.

        Safe to call multiple times and after `shutdown()`.
        """
        with self._state_lock:
            if self._torn_down:
                return
            self._torn_down = True
            self._state = TransportState.CLOSED

        if self._thread.is_alive():
            pending = asyncio.run_coroutine_threadsafe(self._cancel_outstanding(), self._loop)
            try:
                pending.result(timeout=CLOSE_GRACE_S)
            except Exception:  # noqa: BLE001 - teardown continues regardless
                self._verbose(logging.WARNING, "Forcing HTTP transport shutdown")
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=CLOSE_GRACE_S)

        if not self._thread.is_alive():
            # Resolve anything scheduled while the loop was stopping.
            if not _in_running_loop():
                self._loop.run_until_complete(self._cancel_outstanding())
            self._loop.close()
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._verbose(logging.INFO, "HTTP transport closed")

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _advance(self, target: TransportState) -> bool:
        """Move the state machine forward; returns False if already at/after `target`."""
        with self._state_lock:
            if self._state >= target:
                return False
            self._state = target
            return True

    def _dispatch(self, endpoint: str, method: str, payload: str) -> Future[None]:
        request_id = next(self._request_ids)
        return self._schedule(
            lambda: self._deliver(endpoint, method, payload, request_id),
            name=f"logdash-request-{request_id}",
        )

    def _schedule(self, make_coro: Callable[[], Coroutine[Any, Any, None]], *, name: str) -> Future[None]:
        """Run a coroutine on the delivery loop; the returned future always resolves to None."""
        result: Future[None] = Future()

        def _start() -> None:
            task = self._loop.create_task(make_coro(), name=name)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            task.add_done_callback(lambda _task: _resolve(result))

        try:
            self._loop.call_soon_threadsafe(_start)
        except RuntimeError:
            # Loop already closed.
            _resolve(result)
        return result

    async def _deliver(self, endpoint: str, method: str, payload: str, request_id: int) -> None:
        """One unit of work: admission, retries, and bookkeeping. Never raises."""
        self._stats["dispatched_requests"] += 1
        try:
            if not await self._acquire_permit():
                self._stats["dropped_requests"] += 1
                self._verbose(logging.WARNING, "Request #%d rejected due to concurrency limit timeout", request_id)
                return
            try:
                self._begin_request()
                try:
                    await self._send_with_retries(endpoint, method, payload, request_id)
                finally:
                    self._end_request()
            finally:
                self._permits.release()
        except asyncio.CancelledError:
            self._verbose(logging.DEBUG, "Request #%d aborted by transport close", request_id)
        except Exception as exc:  # noqa: BLE001 - nothing escapes a unit of work
            self._report_error(f"Request #{request_id} failed unexpectedly", exc)

    async def _acquire_permit(self) -> bool:
        if not self._permits.locked():
            await self._permits.acquire()
            return True
        try:
            await asyncio.wait_for(self._permits.acquire(), timeout=PERMIT_WAIT_S)
        except TimeoutError:
            return False
        return True

    def _begin_request(self) -> None:
        self._active_requests += 1
        if self._active_requests == 1:
            self._idle = asyncio.Event()

    def _end_request(self) -> None:
        self._active_requests -= 1
        if self._active_requests == 0:
            self._idle.set()

    async def _send_with_retries(self, endpoint: str, method: str, payload: str, request_id: int) -> bool:
        """Send with capped exponential backoff; returns whether delivery succeeded."""
        total_attempts = self.config.max_retries + 1
        last_exc: Exception | None = None

        for attempt in range(1, total_attempts + 1):
            try:
                await self._send_request(endpoint, method, payload, request_id, attempt)
            except Exception as exc:  # noqa: BLE001 - every delivery failure is retryable
                last_exc = exc
                self._verbose(
                    logging.WARNING,
                    "Request #%d failed: %s (attempt %d/%d)",
                    request_id,
                    exc,
                    attempt,
                    total_attempts,
                )
                # Once shutdown begins, remaining attempts run without backoff.
                if attempt < total_attempts and self._state is TransportState.ACTIVE:
                    await asyncio.sleep(self._backoff_delay(attempt))
            else:
                self._stats["succeeded_requests"] += 1
                return True

        self._stats["failed_requests"] += 1
        self._report_error(f"Request #{request_id} failed permanently after {total_attempts} attempts", last_exc)
        return False

    def _backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (1-based)."""
        delay_ms = min(self.config.retry_delay_ms * (2 ** (attempt - 1)), MAX_BACKOFF_MS)
        delay_ms += random.uniform(0.0, MAX_JITTER_MS)
        return delay_ms / 1000

    async def _send_request(self, endpoint: str, method: str, payload: str, request_id: int, attempt: int) -> None:
        """Perform one HTTP attempt.

        Raises:
        - `LogdashHttpError` for non-2xx responses
        - `requests.RequestException` for transport errors
        """
        url = self._base_url + endpoint
        body = payload.encode("utf-8")
        self._verbose(
            logging.DEBUG,
            "Sending HTTP %s request #%d to %s (attempt %d): %s=%s, bodySize=%d",
            method,
            request_id,
            endpoint,
            attempt,
            API_KEY_HEADER,
            _mask_api_key(self.config.api_key),
            len(body),
        )
        self._stats["http_attempts"] += 1

        def _do_request() -> int:
            """Execute the HTTP request synchronously (runs in a worker thread)."""
            resp = requests.request(method, url, headers=self._headers, data=body, timeout=self._timeout)
            if 200 <= resp.status_code < 300:
                return resp.status_code
            raise LogdashHttpError(status_code=resp.status_code, body=(resp.text or "")[:512])

        status_code = await asyncio.to_thread(_do_request)
        self._verbose(
            logging.DEBUG, "Successfully sent request #%d to %s (status=%d)", request_id, endpoint, status_code
        )

    async def _wait_idle(self, timeout_s: float, label: str) -> None:
        """Wait for the completion signal current at call time, up to `timeout_s`."""
        if self._active_requests == 0:
            return
        idle = self._idle
        self._verbose(logging.INFO, "%s: waiting for %d pending HTTP requests...", label, self._active_requests)
        try:
            await asyncio.wait_for(idle.wait(), timeout=timeout_s)
        except TimeoutError:
            self._verbose(logging.WARNING, "%s timeout, %d requests still pending", label, self._active_requests)
        else:
            self._verbose(logging.INFO, "%s: all pending requests completed", label)

    async def _drain_and_close(self, timeout_s: float) -> None:
        try:
            await self._wait_idle(timeout_s, "Shutdown")
        finally:
            self._advance(TransportState.CLOSED)

    async def _cancel_outstanding(self) -> None:
        # Let start callbacks already queued on the loop create their tasks first.
        await asyncio.sleep(0)
        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _verbose(self, level: int, msg: str, *args: Any) -> None:
        if self.config.enable_verbose_logging:
            logger.log(level, msg, *args)

    def _report_error(self, message: str, cause: BaseException | None) -> None:
        if self.config.enable_verbose_logging:
            logger.warning("Logdash transport error: %s (cause: %s)", message, cause)
