from __future__ import annotations

from datetime import datetime, timezone

import pytest

from logdash.models import MAX_MESSAGE_LENGTH, LogEntry, LogLevel, MetricEntry, MetricType


def test_log_level_wire_values():
    assert [level.value for level in LogLevel] == [
        "error",
        "warning",
        "info",
        "http",
        "verbose",
        "debug",
        "silly",
    ]
    assert str(LogLevel.WARN) == "warning"


def test_metric_type_wire_values():
    assert MetricType.SET.value == "set"
    assert MetricType.MUTATE.value == "change"


def test_log_entry_defaults():
    before = datetime.now(tz=timezone.utc)
    entry = LogEntry(message="hello", level=LogLevel.INFO, sequence_number=1)

    assert entry.message == "hello"
    assert entry.level is LogLevel.INFO
    assert entry.context == {}
    assert entry.created_at >= before
    assert entry.created_at.tzinfo is not None


def test_log_entry_accepts_wire_level_and_naive_timestamp():
    entry = LogEntry(message="m", level="debug", sequence_number=7, created_at=datetime(2024, 1, 2, 3, 4, 5))

    assert entry.level is LogLevel.DEBUG
    assert entry.created_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.mark.parametrize("field", ["message", "level"])
def test_log_entry_requires_message_and_level(field: str):
    values = {"message": "m", "level": LogLevel.INFO, "sequence_number": 1}
    values[field] = None
    with pytest.raises(ValueError):
        LogEntry(**values)


def test_log_entry_truncates_long_messages():
    original = "x" * (MAX_MESSAGE_LENGTH + 10)
    entry = LogEntry(message=original, level=LogLevel.INFO, sequence_number=1)

    assert entry.message.startswith("x" * 1000)
    assert entry.message.endswith(f"[TRUNCATED: original length was {len(original)} chars]")
    assert len(entry.message) <= MAX_MESSAGE_LENGTH


def test_log_entry_keeps_message_at_limit():
    message = "y" * MAX_MESSAGE_LENGTH
    assert LogEntry(message=message, level=LogLevel.INFO, sequence_number=1).message == message


def test_log_entry_caps_context_at_100_entries():
    context = {f"key{i}": i for i in range(150)}
    entry = LogEntry(message="m", level=LogLevel.INFO, sequence_number=1, context=context)

    result = entry.context
    assert len(result) == 100
    assert result["_truncated"] == "Context limited to 100 entries from original 150"
    assert list(result)[:99] == [f"key{i}" for i in range(99)]


def test_log_entry_context_is_isolated_from_caller_and_readers():
    context = {"user": "alice"}
    entry = LogEntry(message="m", level=LogLevel.INFO, sequence_number=1, context=context)

    context["user"] = "mallory"
    first_read = entry.context
    first_read["injected"] = True

    assert entry.context == {"user": "alice"}


def test_log_entry_is_immutable():
    entry = LogEntry(message="m", level=LogLevel.INFO, sequence_number=1)
    with pytest.raises(ValueError):
        entry.message = "changed"  # type: ignore[misc]


def test_metric_entry_fields():
    metric = MetricEntry(name="cpu_usage", value=75.5, operation=MetricType.SET)
    assert metric.name == "cpu_usage"
    assert metric.value == 75.5
    assert metric.operation is MetricType.SET

    assert MetricEntry(name="requests", value=3, operation=MetricType.MUTATE).value == 3


@pytest.mark.parametrize(
    "values",
    [
        {"name": None, "value": 1, "operation": MetricType.SET},
        {"name": "", "value": 1, "operation": MetricType.SET},
        {"name": "   ", "value": 1, "operation": MetricType.SET},
        {"name": "m", "value": None, "operation": MetricType.SET},
        {"name": "m", "value": 1, "operation": None},
    ],
)
def test_metric_entry_validation(values: dict):
    with pytest.raises(ValueError):
        MetricEntry(**values)
