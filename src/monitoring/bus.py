# EventBus for monitoring events
"""
Event bus for bot monitoring.

Provides a minimal, thread-safe, in-process pub/sub mechanism:

- Subscribers receive MonitoringEvent objects.
- Used by:
    - File-based JSONL logger
    - BotController / ReconnectPolicy / CommandDispatcher instrumentation
    - Tests
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, List

from .events import MonitoringEvent

log = logging.getLogger(__name__)


SubscriberFn = Callable[[MonitoringEvent], None]


class EventBus:
    """
    Simple in-process event bus for monitoring events.

    Mineflayer callbacks arrive on the bridge thread while the controller
    runs on the asyncio loop, so the subscriber list is guarded by a Lock.
    Each publish iterates over a snapshot of subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: List[SubscriberFn] = []
        self._lock = Lock()

    def subscribe(self, fn: SubscriberFn) -> None:
        """Register a subscriber to receive MonitoringEvent instances."""
        with self._lock:
            self._subscribers.append(fn)

    def unsubscribe(self, fn: SubscriberFn) -> None:
        """
        Remove a previously registered subscriber.

        Safe to call even if `fn` is not present.
        """
        with self._lock:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

    def publish(self, event: MonitoringEvent) -> None:
        """
        Publish a MonitoringEvent to all subscribers.

        Takes a snapshot of subscribers under the lock, then iterates without
        holding the lock so subscribers may call back into the bus.
        A failing subscriber is logged and skipped; the rest still run.
        """
        with self._lock:
            subscribers = list(self._subscribers)

        for fn in subscribers:
            try:
                fn(event)
            except Exception:
                log.exception("Monitoring subscriber %r failed", fn)

    def clear(self) -> None:
        """Drop all subscribers. Mostly useful for tests."""
        with self._lock:
            self._subscribers.clear()
