# src/agent/timers.py
"""
One-shot delayed callbacks.

The controller, scheduler, reconnect policy and dispatcher never touch the
event loop directly; they go through a Timers object so tests can swap in a
fake clock (bot_core.testing.fakes.FakeTimers).
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Timers(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run `callback` once after `delay` seconds."""
        ...


class LoopTimers:
    """Timers backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._loop.call_later(max(0.0, delay), callback)


class TimerSlot:
    """
    Holds at most one outstanding timer for a logical stream.

    `set()` cancels whatever is pending before arming the new timer, so a
    stream can never have two timers live at once.
    """

    def __init__(self, timers: Timers) -> None:
        self._timers = timers
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def set(self, delay: float, callback: Callable[[], None]) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            callback()

        self._handle = self._timers.call_later(delay, fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
