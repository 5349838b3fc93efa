# src/agent/scheduler.py
"""
Activity scheduler: periodic wandering so the bot looks alive.

Each tick, after a random delay in [interval_min_s, interval_max_s]:
  - no session or no known position -> do nothing, schedule the next tick
  - pathfinder mode and still navigating -> let the goal finish
  - otherwise pick one WanderAction and apply it

start() is cancel-then-start, so repeated or racing starts never leave two
tick timers alive. stop() is idempotent.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from bot_core.actions import ActionKind, ActionPicker, apply_action, reset_controls
from bot_core.session import GameSession
from env.schema import MovementConfig
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event

from .timers import TimerSlot, Timers

log = logging.getLogger(__name__)


class ActivityScheduler:
    def __init__(
        self,
        config: MovementConfig,
        timers: Timers,
        *,
        rng: Optional[random.Random] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._cfg = config
        self._rng = rng or random.Random()
        self._picker = ActionPicker(config, self._rng)
        self._tick_slot = TimerSlot(timers)
        self._bus = bus
        self._session: Optional[GameSession] = None
        self.ticks = 0
        self.actions_applied = 0

    # ------------------------------------------------------------------
    # Session binding
    # ------------------------------------------------------------------

    @property
    def session(self) -> Optional[GameSession]:
        return self._session

    def attach(self, session: GameSession) -> None:
        self._session = session

    def detach(self) -> None:
        """Stop and forget the session (called when it is discarded)."""
        self.stop()
        self._session = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        """True while a tick timer is outstanding."""
        return self._tick_slot.pending

    def start(self) -> None:
        self._schedule_next()

    def stop(self) -> None:
        """Cancel the pending tick and bring the bot to a standstill."""
        self._tick_slot.cancel()
        session = self._session
        if session is None:
            return
        try:
            reset_controls(session)
            session.clear_goal()
        except Exception:
            # The session may already be gone; nothing left to stop.
            log.warning("Could not reset movement on stop", exc_info=True)
        log.debug("Bot movement stopped.")

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    def next_interval(self) -> float:
        return self._rng.uniform(self._cfg.interval_min_s, self._cfg.interval_max_s)

    def _schedule_next(self) -> None:
        self._tick_slot.set(self.next_interval(), self._tick)

    def _tick(self) -> None:
        self.ticks += 1
        try:
            self._step()
        finally:
            self._schedule_next()

    def _step(self) -> None:
        session = self._session
        if session is None:
            log.debug("No session; skipping wander tick.")
            return

        try:
            origin = session.position()
        except Exception:
            log.warning("Position query failed; skipping wander tick.", exc_info=True)
            return
        if origin is None:
            log.info("Bot not ready for random movement. Skipping.")
            return

        try:
            if self._picker.uses_pathfinder and session.is_navigating():
                log.debug("Still navigating; not issuing a new goal.")
                return

            action = self._picker.pick(origin, can_navigate=session.supports_navigation)
            if action.kind is ActionKind.CONTROL:
                # Clean slate so exactly one control is active afterwards.
                reset_controls(session)
            apply_action(session, action)
        except Exception:
            log.exception("Wander action failed")
            return

        self.actions_applied += 1
        log.info("Executing random movement action: %s", action.describe())
        log_event(
            bus=self._bus,
            module="agent.scheduler",
            event_type=EventType.WANDER_ACTION,
            message=action.describe(),
            payload={"kind": action.kind.name},
        )
