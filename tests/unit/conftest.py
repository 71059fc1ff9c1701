from __future__ import annotations

import json
import threading
import time
from collections.abc import Iterator
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any

import pytest

from logdash.config import LogdashConfig
from logdash.models import LogEntry, MetricEntry
from logdash.transport.base import completed_future
from logdash.transport.http import HttpTransport


@dataclass(frozen=True)
class RecordedCall:
    method: str
    url: str
    headers: dict[str, str]
    body: dict[str, Any]
    timeout: Any


class _FakeResponse:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        self.text = "" if status_code < 300 else "server error"


class FakeApi:
    """Stand-in for `requests.request` that records calls.

    `responses` is consumed in order (status codes or exceptions to raise); once
    exhausted, `default_status` is returned. `delay_s` simulates a slow server.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.calls: list[RecordedCall] = []
        self.completed = 0
        self.responses: list[int | Exception] = []
        self.default_status = 200
        self.delay_s = 0.0

    def __call__(self, method: str, url: str, *, headers: dict[str, str], data: bytes, timeout: Any) -> _FakeResponse:
        with self._lock:
            self.calls.append(RecordedCall(method, url, dict(headers), json.loads(data), timeout))
            index = len(self.calls) - 1
            outcome = self.responses[index] if index < len(self.responses) else self.default_status
        if self.delay_s:
            time.sleep(self.delay_s)
        with self._lock:
            self.completed += 1
        if isinstance(outcome, Exception):
            raise outcome
        return _FakeResponse(outcome)

    def wait_for_calls(self, count: int, timeout_s: float = 2.0) -> None:
        deadline = time.monotonic() + timeout_s
        while time.monotonic() < deadline:
            if len(self.calls) >= count:
                return
            time.sleep(0.005)
        raise AssertionError(f"expected {count} calls, saw {len(self.calls)}")


def _make_config(**overrides: Any) -> LogdashConfig:
    values: dict[str, Any] = {
        "api_key": "test-key",
        "base_url": "http://logdash.test",
        "enable_console_output": False,
        "retry_delay_ms": 10,
    }
    values.update(overrides)
    return LogdashConfig(**values)


@pytest.fixture
def fake_api(monkeypatch: pytest.MonkeyPatch) -> FakeApi:
    api = FakeApi()
    monkeypatch.setattr("logdash.transport.http.requests.request", api)
    return api


@pytest.fixture
def make_transport() -> Iterator[Any]:
    """Factory for `HttpTransport` instances that are always closed after the test."""
    created: list[HttpTransport] = []

    def _make(**overrides: Any) -> HttpTransport:
        transport = HttpTransport(_make_config(**overrides))
        created.append(transport)
        return transport

    yield _make
    for transport in created:
        transport.close()


@pytest.fixture
def make_config() -> Any:
    return _make_config


class RecordingTransport:
    """In-memory transport that keeps every entry it is handed."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.logs: list[LogEntry] = []
        self.metrics: list[MetricEntry] = []

    def send_log(self, entry: LogEntry) -> Future[None]:
        with self._lock:
            self.logs.append(entry)
        return completed_future()

    def send_metric(self, entry: MetricEntry) -> Future[None]:
        with self._lock:
            self.metrics.append(entry)
        return completed_future()

    def shutdown(self) -> None:
        return None

    def close(self) -> None:
        pass


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()
