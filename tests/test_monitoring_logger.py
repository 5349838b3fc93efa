#tests/test_monitoring_logger.py
"""
Tests for monitoring.logger.JsonFileLogger and log_event.

Covers:
- one JSON object per line with the event type stored by name
- non-JSON payload values degrade to repr
- close() stops writing
- log_event without a bus is a no-op
"""

from __future__ import annotations

import json
from pathlib import Path

from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import JsonFileLogger, log_event


def read_lines(path: Path) -> list:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_json_file_logger_writes_jsonl(tmp_path: Path):
    bus = EventBus()
    path = tmp_path / "nested" / "events.jsonl"
    sink = JsonFileLogger(path, bus)

    log_event(
        bus=bus,
        module="agent.reconnect",
        event_type=EventType.RECONNECT_SCHEDULED,
        message="Reconnect in 10.0s",
        payload={"attempt": 1, "delay_s": 10.0},
        correlation_id="3",
    )
    log_event(
        bus=bus,
        module="agent.controller",
        event_type=EventType.BOT_PHASE_CHANGE,
        message="CONNECTING -> ACTIVE",
    )
    sink.close()

    first, second = read_lines(path)
    assert first["module"] == "agent.reconnect"
    assert first["event_type"] == "RECONNECT_SCHEDULED"
    assert first["payload"] == {"attempt": 1, "delay_s": 10.0}
    assert first["correlation_id"] == "3"
    assert isinstance(first["ts"], (int, float))
    assert second["event_type"] == "BOT_PHASE_CHANGE"
    assert second["payload"] == {}
    assert second["correlation_id"] is None


def test_unserializable_payload_uses_repr(tmp_path: Path):
    bus = EventBus()
    path = tmp_path / "events.jsonl"
    sink = JsonFileLogger(path, bus)

    log_event(
        bus=bus,
        module="agent.controller",
        event_type=EventType.SESSION_ERROR,
        message="Session error",
        payload={"error": RuntimeError("boom")},
    )
    sink.close()

    (line,) = read_lines(path)
    assert "boom" in line["payload"]["error"]


def test_close_unsubscribes(tmp_path: Path):
    bus = EventBus()
    path = tmp_path / "events.jsonl"
    sink = JsonFileLogger(path, bus)
    sink.close()

    log_event(bus=bus, module="m", event_type=EventType.WANDER_ACTION, message="after close")

    assert path.read_text(encoding="utf-8") == ""


def test_log_event_without_bus_is_noop():
    log_event(bus=None, module="m", event_type=EventType.AI_QUERY, message="dropped")
