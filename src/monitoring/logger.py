# JSON logger subscribing to EventBus
"""
Structured event logging.

Provides:
- JsonFileLogger: subscribes to an EventBus and writes MonitoringEvents as JSONL.
- log_event: convenience helper for publishing MonitoringEvents via the EventBus.

Usage:

    bus = EventBus()
    sink = JsonFileLogger(Path("logs/events.jsonl"), bus)

    log_event(
        bus=bus,
        module="agent.reconnect",
        event_type=EventType.RECONNECT_SCHEDULED,
        message="Reconnect in 10.0s",
        payload={"attempt": 1, "delay_s": 10.0},
    )
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .bus import EventBus
from .events import EventType, MonitoringEvent

log = logging.getLogger(__name__)


class JsonFileLogger:
    """
    JSON-lines logger for MonitoringEvent instances.

    - Subscribes to an EventBus and writes one JSON object per line.
    - UTF-8, append mode; parent directory created on demand.
    """

    def __init__(self, path: Path, bus: EventBus) -> None:
        self._path = path
        self._bus = bus
        path.parent.mkdir(parents=True, exist_ok=True)
        self._file = path.open("a", encoding="utf-8")
        bus.subscribe(self._on_event)

    @property
    def path(self) -> Path:
        return self._path

    def _on_event(self, event: MonitoringEvent) -> None:
        line = json.dumps(event.to_dict(), ensure_ascii=False, default=repr)
        try:
            self._file.write(line + "\n")
            self._file.flush()
        except (OSError, ValueError):
            # Disk full or closed handle: report once per event, keep running.
            log.warning("Dropping monitoring event %s (write failed)", event.event_type.name)

    def close(self) -> None:
        """Unsubscribe and close the underlying file handle."""
        self._bus.unsubscribe(self._on_event)
        self._file.close()


def log_event(
    bus: Optional[EventBus],
    module: str,
    event_type: EventType,
    message: str,
    payload: Optional[Dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> None:
    """
    Create and publish a MonitoringEvent.

    ``bus`` may be None, in which case this is a no-op; components accept an
    optional bus so they can be used standalone in tests.
    """
    if bus is None:
        return
    event = MonitoringEvent(
        ts=time.time(),
        module=module,
        event_type=event_type,
        message=message,
        payload=payload or {},
        correlation_id=correlation_id,
    )
    bus.publish(event)
