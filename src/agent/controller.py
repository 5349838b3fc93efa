# src/agent/controller.py
"""
BotController: the single owner of connection state.

State machine:

    DISCONNECTED --connect()--> CONNECTING --spawn--> ACTIVE
         ^                          |                   |
         |                      end / error         end / error
         |                          v                   v
         +------ reconnect timer -- DISCONNECTED <------+
                                    |
                          attempts exhausted
                                    v
                                DEGRADED (terminal; no session)

Every session event carries the emitting session. Events from anything but
the current session are ignored, which also de-duplicates the error -> end
pair mineflayer emits for a single failure.
"""

from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum, auto
from typing import Any, Optional, Set

from bot_core.session import GameSession, SessionFactory
from env.schema import BotProfile
from llm_stack.backend import TextBackend
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event

from .dispatcher import CommandDispatcher
from .reconnect import ReconnectPolicy
from .scheduler import ActivityScheduler
from .timers import Timers

log = logging.getLogger(__name__)


class BotPhase(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    ACTIVE = auto()
    DEGRADED = auto()


def describe_error(err: BaseException) -> Optional[str]:
    """Return an operator hint for well-known transport failures, if any."""
    name = getattr(err, "name", None) or type(err).__name__
    code = getattr(err, "code", None)
    if name == "PartialReadError":
        return (
            "PartialReadError: this strongly suggests a server version mismatch "
            "or a malformed packet. Consider pinning server.version."
        )
    if code == "ECONNRESET":
        return (
            "ECONNRESET: connection reset by peer. Usually a server crash/restart "
            "or network instability."
        )
    if code == "ECONNREFUSED":
        return "ECONNREFUSED: the server is not accepting connections (offline?)."
    return None


class BotController:
    def __init__(
        self,
        profile: BotProfile,
        session_factory: SessionFactory,
        backend: TextBackend,
        timers: Timers,
        *,
        bus: Optional[EventBus] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._profile = profile
        self._factory = session_factory
        self._bus = bus

        self._session: Optional[GameSession] = None
        self._session_id = 0
        self._phase = BotPhase.DISCONNECTED
        self._closed = False
        self._tasks: Set["asyncio.Task[None]"] = set()

        self.scheduler = ActivityScheduler(profile.movement, timers, rng=rng, bus=bus)
        self.reconnect = ReconnectPolicy(profile.reconnect, timers, self.connect, bus=bus)
        self.dispatcher = CommandDispatcher(
            profile.chat,
            backend,
            self.scheduler,
            timers,
            self.is_current,
            bus=bus,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def phase(self) -> BotPhase:
        return self._phase

    @property
    def session(self) -> Optional[GameSession]:
        return self._session

    @property
    def session_id(self) -> int:
        return self._session_id

    def is_current(self, session: GameSession) -> bool:
        return session is not None and session is self._session

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self.connect()

    def connect(self) -> None:
        """Create a fresh session. Invoked at start-up and by the reconnect timer."""
        if self._closed or self._phase is BotPhase.DEGRADED:
            return

        self._discard_session()
        self._session_id += 1
        self._set_phase(BotPhase.CONNECTING)

        srv = self._profile.server
        log.info(
            "Attempting to connect to %s:%d as %s (Minecraft v%s)...",
            srv.host,
            srv.port,
            srv.username,
            srv.version or "Auto-Detect",
        )
        log_event(
            bus=self._bus,
            module="agent.controller",
            event_type=EventType.CONNECT_ATTEMPT,
            message="Connecting",
            payload={"host": srv.host, "port": srv.port, "attempt": self.reconnect.attempts},
            correlation_id=str(self._session_id),
        )

        try:
            self._session = self._factory(srv, self)
        except Exception as exc:
            log.error("Failed to create session: %s", exc, exc_info=True)
            self._lose_session()
            self._after_loss(self.reconnect.on_error(exc))

    def shutdown(self) -> None:
        """Stop everything; no further reconnects."""
        self._closed = True
        self.reconnect.cancel()
        self.dispatcher.reset()
        self._discard_session(reason="shutdown")
        for task in list(self._tasks):
            task.cancel()
        self._set_phase(BotPhase.DISCONNECTED)

    # ------------------------------------------------------------------
    # SessionListener
    # ------------------------------------------------------------------

    def on_login(self, session: GameSession) -> None:
        if not self.is_current(session):
            return
        log.info(
            "%s logged in successfully! Detected server version: %s",
            session.username,
            session.version,
        )
        log_event(
            bus=self._bus,
            module="agent.controller",
            event_type=EventType.SESSION_LOGIN,
            message="Logged in",
            payload={"version": session.version},
            correlation_id=str(self._session_id),
        )
        if self._profile.chat.greeting:
            self.dispatcher.send(session, self._profile.chat.greeting)

    def on_spawn(self, session: GameSession) -> None:
        if not self.is_current(session):
            return
        log.info("Bot spawned! Starting random movement.")
        self.reconnect.reset()
        self._set_phase(BotPhase.ACTIVE)
        log_event(
            bus=self._bus,
            module="agent.controller",
            event_type=EventType.SESSION_SPAWN,
            message="Spawned",
            correlation_id=str(self._session_id),
        )
        # Respawns fire spawn again; restart cleanly each time.
        self.dispatcher.reset()
        self.scheduler.attach(session)
        self.scheduler.stop()
        self.scheduler.start()

    def on_chat(
        self, session: GameSession, sender: str, text: str
    ) -> Optional["asyncio.Task[None]"]:
        if not self.is_current(session):
            return None
        task = asyncio.get_running_loop().create_task(
            self.dispatcher.on_chat(session, sender, text)
        )
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def on_kicked(self, session: GameSession, reason: Any) -> None:
        if not self.is_current(session):
            return
        # mineflayer follows up with "end", which drives the reconnect.
        log.warning("Bot was kicked: %s", reason)
        log_event(
            bus=self._bus,
            module="agent.controller",
            event_type=EventType.SESSION_KICKED,
            message="Kicked",
            payload={"reason": str(reason)},
            correlation_id=str(self._session_id),
        )

    def on_end(self, session: GameSession, reason: Any) -> None:
        if not self.is_current(session):
            return
        log_event(
            bus=self._bus,
            module="agent.controller",
            event_type=EventType.SESSION_ENDED,
            message="Disconnected",
            payload={"reason": str(reason)},
            correlation_id=str(self._session_id),
        )
        self._lose_session()
        self._after_loss(self.reconnect.on_disconnected(reason))

    def on_error(self, session: GameSession, err: BaseException) -> None:
        if not self.is_current(session):
            return
        log.error("Bot error: %s", err)
        hint = describe_error(err)
        if hint:
            log.error(hint)
        log_event(
            bus=self._bus,
            module="agent.controller",
            event_type=EventType.SESSION_ERROR,
            message="Session error",
            payload={"error": repr(err), "hint": hint},
            correlation_id=str(self._session_id),
        )
        self._lose_session()
        self._after_loss(self.reconnect.on_error(err))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _task_done(self, task: "asyncio.Task[None]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Chat handler failed", exc_info=exc)

    def _set_phase(self, phase: BotPhase) -> None:
        if phase is self._phase:
            return
        previous, self._phase = self._phase, phase
        log.debug("Bot phase %s -> %s", previous.name, phase.name)
        log_event(
            bus=self._bus,
            module="agent.controller",
            event_type=EventType.BOT_PHASE_CHANGE,
            message=f"{previous.name} -> {phase.name}",
            payload={"from": previous.name, "to": phase.name},
            correlation_id=str(self._session_id),
        )

    def _discard_session(self, reason: str = "") -> None:
        """Stop timers for the current session and close it."""
        session = self._session
        self.scheduler.detach()
        self.dispatcher.reset()
        self._session = None
        if session is None:
            return
        try:
            session.quit(reason)
        except Exception:
            log.warning("Error while closing session", exc_info=True)

    def _lose_session(self) -> None:
        self._discard_session()
        self._set_phase(BotPhase.DISCONNECTED)

    def _after_loss(self, scheduled: bool) -> None:
        if not scheduled and self.reconnect.exhausted:
            log.error(
                "Reconnect attempts exhausted. The bot is idle; only the health "
                "endpoint is still serving."
            )
            self._set_phase(BotPhase.DEGRADED)
