# src/agent/reconnect.py
"""
Reconnect policy.

Decides how long to wait before the next connection attempt and arms
exactly one one-shot callback for it.

    fixed:        delay = delay_s
    exponential:  delay = base_s * 2 ** attempt

`attempt` is the counter value after incrementing, so the first reconnect
after a drop uses attempt 1. The counter resets to zero on spawn. When it
passes `max_attempts` the policy gives up for good: no more callbacks, and
`exhausted` stays True for the rest of the process.

Exponential delays are not capped unless `max_delay_s` is configured.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from env.schema import ReconnectConfig
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event

from .timers import TimerSlot, Timers

log = logging.getLogger(__name__)

# Delays above this are legal but almost certainly not what the operator wants.
LONG_DELAY_WARNING_S = 300.0


class ReconnectPolicy:
    def __init__(
        self,
        config: ReconnectConfig,
        timers: Timers,
        connect: Callable[[], None],
        *,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._cfg = config
        self._slot = TimerSlot(timers)
        self._connect = connect
        self._bus = bus
        self._attempts = 0
        self._exhausted = False

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def pending(self) -> bool:
        return self._slot.pending

    def delay_for(self, attempt: int) -> float:
        """Delay before connection attempt number `attempt`."""
        if self._cfg.strategy == "exponential":
            delay = self._cfg.base_s * (2 ** attempt)
        else:
            delay = self._cfg.delay_s
        if self._cfg.max_delay_s is not None:
            delay = min(delay, self._cfg.max_delay_s)
        return float(delay)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def on_disconnected(self, reason: Any) -> bool:
        log.info("Bot disconnected! Reason: %r", reason)
        return self.schedule_reconnect()

    def on_error(self, err: BaseException) -> bool:
        log.info("Scheduling reconnect after session error.")
        return self.schedule_reconnect()

    def schedule_reconnect(self) -> bool:
        """
        Arm the next connection attempt.

        Returns True when a callback was scheduled, False once the policy has
        given up.
        """
        if self._exhausted:
            return False

        self._attempts += 1
        max_attempts = self._cfg.max_attempts
        if max_attempts is not None and self._attempts > max_attempts:
            self._exhausted = True
            self._slot.cancel()
            log.error(
                "Giving up after %d reconnect attempts; bot stays offline.",
                max_attempts,
            )
            log_event(
                bus=self._bus,
                module="agent.reconnect",
                event_type=EventType.RECONNECT_EXHAUSTED,
                message="Reconnect attempts exhausted",
                payload={"attempts": self._attempts, "max_attempts": max_attempts},
            )
            return False

        delay = self.delay_for(self._attempts)
        if delay > LONG_DELAY_WARNING_S:
            log.warning(
                "Reconnect delay is %.0fs (attempt %d); consider reconnect.max_delay_s.",
                delay,
                self._attempts,
            )
        log.info("Reconnecting in %.1f seconds (attempt %d)...", delay, self._attempts)
        self._slot.set(delay, self._connect)
        log_event(
            bus=self._bus,
            module="agent.reconnect",
            event_type=EventType.RECONNECT_SCHEDULED,
            message=f"Reconnect in {delay:.1f}s",
            payload={"attempt": self._attempts, "delay_s": delay},
        )
        return True

    def reset(self) -> None:
        """Successful spawn: start counting from zero again."""
        self._attempts = 0

    def cancel(self) -> None:
        self._slot.cancel()
