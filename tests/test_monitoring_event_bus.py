#tests/test_monitoring_event_bus.py
"""
Tests for monitoring.bus.EventBus

Covers:
- Publish/subscribe and unsubscribe
- Ordering guarantees
- A failing subscriber does not starve the others
- Publishing from the bridge thread and the loop thread at once
"""

from __future__ import annotations

import threading
from typing import List

from monitoring.bus import EventBus
from monitoring.events import EventType, MonitoringEvent


def make_event(ts: float, event_type: EventType = EventType.WANDER_ACTION, msg: str = "msg") -> MonitoringEvent:
    return MonitoringEvent(
        ts=ts,
        module="agent.scheduler",
        event_type=event_type,
        message=msg,
        payload={},
    )


def test_event_bus_delivers_in_publish_order():
    bus = EventBus()
    seen: List[str] = []
    bus.subscribe(lambda evt: seen.append(evt.message))

    for msg in ("forward=on", "jump", "forward=off"):
        bus.publish(make_event(1.0, msg=msg))

    assert seen == ["forward=on", "jump", "forward=off"]


def test_event_bus_unsubscribe_is_safe_and_effective():
    bus = EventBus()
    received: List[MonitoringEvent] = []

    def subscriber(evt: MonitoringEvent) -> None:
        received.append(evt)

    bus.subscribe(subscriber)
    bus.unsubscribe(subscriber)
    # second call is a no-op
    bus.unsubscribe(subscriber)

    bus.publish(make_event(1.0))

    assert received == []


def test_failing_subscriber_does_not_block_others():
    bus = EventBus()
    received: List[EventType] = []

    def broken(evt: MonitoringEvent) -> None:
        raise RuntimeError("sink offline")

    bus.subscribe(broken)
    bus.subscribe(lambda evt: received.append(evt.event_type))

    bus.publish(make_event(1.0, EventType.RECONNECT_SCHEDULED))

    assert received == [EventType.RECONNECT_SCHEDULED]


def test_subscriber_may_unsubscribe_during_publish():
    bus = EventBus()
    calls: List[int] = []

    def once(evt: MonitoringEvent) -> None:
        calls.append(1)
        bus.unsubscribe(once)

    bus.subscribe(once)
    bus.publish(make_event(1.0))
    bus.publish(make_event(2.0))

    assert calls == [1]


def test_clear_drops_all_subscribers():
    bus = EventBus()
    received: List[MonitoringEvent] = []
    bus.subscribe(received.append)

    bus.clear()
    bus.publish(make_event(1.0))

    assert received == []


def test_event_bus_concurrent_publishers():
    """
    Session events are published from the bridge thread while the loop
    publishes scheduler events; nothing may be lost.
    """
    bus = EventBus()
    count = 100

    received: List[MonitoringEvent] = []
    lock = threading.Lock()

    def subscriber(evt: MonitoringEvent) -> None:
        with lock:
            received.append(evt)

    bus.subscribe(subscriber)

    def publisher(event_type: EventType) -> None:
        for i in range(count):
            bus.publish(make_event(float(i), event_type))

    threads = [
        threading.Thread(target=publisher, args=(EventType.SESSION_ERROR,)),
        threading.Thread(target=publisher, args=(EventType.WANDER_ACTION,)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(received) == 2 * count
