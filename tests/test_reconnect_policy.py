# tests/test_reconnect_policy.py
"""
Tests for agent.reconnect.ReconnectPolicy.

Covers:
- fixed and exponential delays
- exactly one outstanding reconnect timer
- terminal give-up after max_attempts
- counter reset and optional delay cap
"""

from __future__ import annotations

from typing import List, Tuple

from agent.reconnect import ReconnectPolicy
from bot_core.testing.fakes import FakeTimers
from env.schema import ReconnectConfig
from monitoring.bus import EventBus
from monitoring.events import EventType, MonitoringEvent


def make_policy(**cfg) -> Tuple[ReconnectPolicy, FakeTimers, List[float]]:
    timers = FakeTimers()
    calls: List[float] = []
    policy = ReconnectPolicy(
        ReconnectConfig(**cfg),
        timers,
        lambda: calls.append(timers.now),
    )
    return policy, timers, calls


def test_fixed_delay_produces_one_callback() -> None:
    policy, timers, calls = make_policy(strategy="fixed", delay_s=10.0)

    assert policy.schedule_reconnect() is True
    assert policy.attempts == 1
    assert timers.delays() == [10.0]

    timers.advance(9.9)
    assert calls == []

    timers.advance(0.1)
    assert calls == [10.0]
    assert timers.active_count == 0


def test_exponential_delay_is_base_times_two_to_the_attempt() -> None:
    policy, _, _ = make_policy(strategy="exponential", base_s=5.0)

    for attempt in range(0, 8):
        assert policy.delay_for(attempt) == 5.0 * 2 ** attempt


def test_exponential_schedule_uses_incremented_counter() -> None:
    policy, timers, _ = make_policy(strategy="exponential", base_s=5.0)

    policy.schedule_reconnect()
    assert timers.delays() == [10.0]

    timers.advance(10.0)
    policy.schedule_reconnect()
    assert timers.delays() == [20.0]


def test_exponential_delay_is_unbounded_by_default() -> None:
    policy, _, _ = make_policy(strategy="exponential", base_s=30.0)
    assert policy.delay_for(10) == 30.0 * 1024


def test_max_delay_caps_exponential_growth() -> None:
    policy, _, _ = make_policy(strategy="exponential", base_s=30.0, max_delay_s=600.0)
    assert policy.delay_for(2) == 120.0
    assert policy.delay_for(10) == 600.0


def test_rescheduling_keeps_a_single_timer() -> None:
    policy, timers, calls = make_policy(delay_s=5.0)

    policy.on_disconnected("server closed")
    policy.on_error(RuntimeError("boom"))

    assert timers.active_count == 1
    timers.advance(60.0)
    assert len(calls) == 1


def test_gives_up_after_max_attempts_over_fake_clock() -> None:
    timers = FakeTimers()
    connects: List[float] = []
    holder: dict = {}

    def failing_connect() -> None:
        connects.append(timers.now)
        # every attempt fails straight away
        holder["policy"].schedule_reconnect()

    policy = ReconnectPolicy(
        ReconnectConfig(strategy="fixed", delay_s=5.0, max_attempts=3),
        timers,
        failing_connect,
    )
    holder["policy"] = policy

    policy.schedule_reconnect()
    # N + 1 periods: the fourth never produces a callback
    for _ in range(4):
        timers.advance(5.0)

    assert connects == [5.0, 10.0, 15.0]
    assert policy.exhausted
    assert timers.active_count == 0

    timers.advance(1000.0)
    assert len(connects) == 3
    assert policy.schedule_reconnect() is False


def test_unbounded_attempts_never_exhaust() -> None:
    policy, timers, calls = make_policy(delay_s=1.0, max_attempts=None)

    for _ in range(50):
        assert policy.schedule_reconnect()
        timers.advance(1.0)

    assert len(calls) == 50
    assert not policy.exhausted


def test_reset_returns_counter_to_zero() -> None:
    policy, timers, _ = make_policy(strategy="exponential", base_s=5.0, max_attempts=2)

    policy.schedule_reconnect()
    policy.schedule_reconnect()
    assert policy.attempts == 2

    policy.reset()
    assert policy.attempts == 0
    assert policy.schedule_reconnect() is True
    assert timers.delays() == [10.0]


def test_cancel_drops_pending_callback() -> None:
    policy, timers, calls = make_policy(delay_s=3.0)

    policy.schedule_reconnect()
    assert policy.pending
    policy.cancel()
    assert not policy.pending

    timers.advance(10.0)
    assert calls == []


def test_events_published_for_schedule_and_exhaustion() -> None:
    bus = EventBus()
    seen: List[MonitoringEvent] = []
    bus.subscribe(seen.append)

    timers = FakeTimers()
    policy = ReconnectPolicy(
        ReconnectConfig(delay_s=2.0, max_attempts=1),
        timers,
        lambda: None,
        bus=bus,
    )

    policy.schedule_reconnect()
    policy.schedule_reconnect()

    types = [e.event_type for e in seen]
    assert types == [EventType.RECONNECT_SCHEDULED, EventType.RECONNECT_EXHAUSTED]
    assert seen[0].payload == {"attempt": 1, "delay_s": 2.0}
