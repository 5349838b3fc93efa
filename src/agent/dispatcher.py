# src/agent/dispatcher.py
"""
Chat command dispatcher.

Recognised commands (prefixes configurable in the `chat` section):

    !ai <prompt>   ask the AI backend; reply goes back to chat
    !follow        walk to the sender (pathfinder sessions only)
    !stop          halt wandering/navigation, resume wandering shortly after

Anything else, and anything the bot said itself, is ignored.

The AI round trip always stops the activity scheduler first and resumes it
`resume_delay_s` after the call settles, success or failure. Resumption goes
through a single timer slot, so overlapping requests collapse into one
pending resume.
While following a player nothing resumes wandering until !stop.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from bot_core.session import GameSession
from env.schema import ChatConfig
from llm_stack.backend import TextBackend
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event

from .scheduler import ActivityScheduler
from .timers import TimerSlot, Timers

log = logging.getLogger(__name__)


def truncate(message: str, limit: int) -> str:
    """Clip an outbound chat line to the server's message length limit."""
    if len(message) <= limit:
        return message
    return message[:limit]


def match_command(text: str, command: str) -> Optional[str]:
    """
    Return the argument text if `text` invokes `command`, else None.

    ``"!ai"`` and ``"!ai   "`` both match with an empty argument;
    ``"!aix"`` does not match.
    """
    stripped = text.strip()
    if stripped == command:
        return ""
    if stripped.startswith(command + " "):
        return stripped[len(command):].strip()
    return None


class CommandDispatcher:
    def __init__(
        self,
        config: ChatConfig,
        backend: TextBackend,
        scheduler: ActivityScheduler,
        timers: Timers,
        is_current: Callable[[GameSession], bool],
        *,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._cfg = config
        self._backend = backend
        self._scheduler = scheduler
        self._resume_slot = TimerSlot(timers)
        self._is_current = is_current
        self._bus = bus
        self._following = False

    @property
    def resume_pending(self) -> bool:
        return self._resume_slot.pending

    @property
    def following(self) -> bool:
        """True between !follow and the next !stop (or session change)."""
        return self._following

    # ------------------------------------------------------------------
    # Outbound chat
    # ------------------------------------------------------------------

    def send(self, session: GameSession, message: str) -> bool:
        """
        Send one chat line through `session`, truncated to the length limit.

        Failed or impossible sends (stale session, open menu, client error)
        are logged and dropped; there is no retry queue.
        """
        message = truncate(message, self._cfg.max_message_length)
        if not self._is_current(session):
            log.debug("Dropping chat for a discarded session: %r", message)
            return False

        try:
            if not session.can_chat():
                log.warning(
                    "Cannot send chat right now (disconnected or in a menu): %r", message
                )
                return False
            session.chat(message)
        except Exception as exc:
            log.error("Error sending chat message: %s. Message: %r", exc, message)
            log_event(
                bus=self._bus,
                module="agent.dispatcher",
                event_type=EventType.CHAT_SEND_FAILED,
                message="Chat send failed",
                payload={"error": repr(exc), "text": message},
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Inbound chat
    # ------------------------------------------------------------------

    async def on_chat(self, session: GameSession, sender: str, text: str) -> None:
        if sender == session.username:
            return

        log.info("[%s] %s", sender, text)

        prompt = match_command(text, self._cfg.ai_prefix)
        if prompt is not None:
            await self._handle_ai(session, sender, prompt)
            return

        if match_command(text, self._cfg.follow_command) is not None:
            self._handle_follow(session, sender)
            return

        if match_command(text, self._cfg.stop_command) is not None:
            self._handle_stop(session, sender)

    async def _handle_ai(self, session: GameSession, sender: str, prompt: str) -> None:
        if not prompt:
            self.send(
                session,
                f"{sender}, please provide a question after {self._cfg.ai_prefix}, "
                f"e.g., {self._cfg.ai_prefix} Tell me a joke.",
            )
            return

        # Movement must be fully stopped while the reply is pending. A follow
        # goal is left alone; wandering is already off.
        self._resume_slot.cancel()
        if not self._following:
            self._scheduler.stop()
        self.send(session, f'Thinking about "{prompt}"...')
        log_event(
            bus=self._bus,
            module="agent.dispatcher",
            event_type=EventType.AI_QUERY,
            message="AI query",
            payload={"sender": sender, "prompt": prompt},
        )

        try:
            reply = await self._backend.generate(prompt)
        except Exception as exc:
            log.error("Error calling AI backend: %s", exc, exc_info=True)
            log_event(
                bus=self._bus,
                module="agent.dispatcher",
                event_type=EventType.AI_FAILURE,
                message="AI query failed",
                payload={"sender": sender, "error": repr(exc)},
            )
            detail = str(exc) or "Unknown error"
            self.send(
                session,
                f"{sender}, I'm sorry, I encountered an error while processing "
                f"your request: {detail}.",
            )
        else:
            log_event(
                bus=self._bus,
                module="agent.dispatcher",
                event_type=EventType.AI_RESPONSE,
                message="AI reply",
                payload={"sender": sender, "length": len(reply)},
            )
            self.send(session, f"{sender}, AI says: {reply}")
        finally:
            self.schedule_resume(session)

    def _handle_follow(self, session: GameSession, sender: str) -> None:
        if not session.supports_navigation:
            self.send(session, f"{sender}, I can't follow anyone without pathfinding.")
            return

        target = session.player_position(sender)
        if target is None:
            self.send(session, f"{sender}, I can't see you.")
            return

        # Wandering stays off until !stop.
        self._following = True
        self._resume_slot.cancel()
        self._scheduler.stop()
        session.set_goal(target, self._cfg.follow_tolerance)
        self.send(session, f"Coming to you, {sender}!")

    def _handle_stop(self, session: GameSession, sender: str) -> None:
        self._following = False
        self._scheduler.stop()
        self.send(session, f"Stopping, {sender}.")
        self.schedule_resume(session)

    # ------------------------------------------------------------------
    # Resumption
    # ------------------------------------------------------------------

    def schedule_resume(self, session: GameSession) -> None:
        if not self._is_current(session):
            return
        if self._following:
            log.debug("Following a player; not resuming wandering.")
            return
        delay = self._cfg.resume_delay_s
        log.info("Scheduling resumption of movement in %.1f seconds.", delay)

        def resume() -> None:
            if not self._is_current(session):
                log.debug("Session changed before resume; skipping.")
                return
            if self._following:
                return
            self._scheduler.start()

        self._resume_slot.set(delay, resume)

    def reset(self) -> None:
        """Drop follow state and any pending resume (new session or shutdown)."""
        self._following = False
        self._resume_slot.cancel()
