# mineflayer-backed GameSession
# src/bot_core/mineflayer_session.py
"""
GameSession backed by mineflayer, driven through the `javascript` bridge.

The bridge delivers mineflayer events on its own thread. Every event is
marshalled onto the asyncio loop with `loop.call_soon_threadsafe`, so the
listener (BotController) only ever runs on the loop thread.

The `javascript` import is lazy: it spawns a Node.js process on first use,
which tests and config tooling never need.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from env.schema import ServerConfig

from .session import (
    Control,
    GameSession,
    Position,
    SessionError,
    SessionFactory,
    SessionListener,
    TransportError,
)

log = logging.getLogger(__name__)


def _to_position(vec: Any) -> Optional[Position]:
    if vec is None:
        return None
    return Position(float(vec.x), float(vec.y), float(vec.z))


def _to_transport_error(err: Any) -> TransportError:
    message = str(getattr(err, "message", None) or err)
    return TransportError(
        message,
        name=getattr(err, "name", None),
        code=getattr(err, "code", None),
    )


class MineflayerSession:
    """
    One mineflayer bot instance.

    Construction connects immediately (mineflayer.createBot starts the
    handshake); the outcome arrives as login/spawn or error/end events.
    """

    def __init__(
        self,
        server: ServerConfig,
        listener: SessionListener,
        loop: asyncio.AbstractEventLoop,
        *,
        with_pathfinder: bool = False,
    ) -> None:
        self._server = server
        self._listener = listener
        self._loop = loop
        self._ended = False
        self._goals: Any = None
        self._bot: Any = None

        try:
            from javascript import On, require

            mineflayer = require("mineflayer")
            # Resolve plugins first: createBot starts connecting immediately.
            pathfinder = require("mineflayer-pathfinder") if with_pathfinder else None
            self._bot = mineflayer.createBot(
                {
                    "host": server.host,
                    "port": server.port,
                    "username": server.username,
                    "auth": server.auth,
                    # false lets mineflayer auto-detect the server version
                    "version": server.version if server.version else False,
                    "hideErrors": False,
                }
            )
            if pathfinder is not None:
                self._bot.loadPlugin(pathfinder.pathfinder)
                self._goals = pathfinder.goals
                self._movements_cls = pathfinder.Movements
            self._register_handlers(On)
        except Exception as exc:
            self._abandon_bot()
            raise SessionError(
                code="create_failed",
                details={"host": server.host, "port": server.port, "exception": repr(exc)},
            ) from exc

    def _abandon_bot(self) -> None:
        """Close a half-initialised bot so a failed construction leaves no live connection."""
        bot, self._bot = self._bot, None
        if bot is None:
            return
        self._ended = True
        try:
            bot.quit("disconnect.quitting")
        except Exception:
            log.warning("Could not close half-initialised bot", exc_info=True)

    # ------------------------------------------------------------------
    # Event wiring
    # ------------------------------------------------------------------

    def _post(self, fn: Callable[..., None], *args: Any) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(fn, *args)

    def _register_handlers(self, On: Callable[..., Any]) -> None:
        bot = self._bot
        listener = self._listener

        @On(bot, "login")
        def handle_login(this, *args):
            self._post(listener.on_login, self)

        @On(bot, "spawn")
        def handle_spawn(this, *args):
            if self._goals is not None:
                # Movements needs the registry, which only exists after spawn.
                bot.pathfinder.setMovements(self._movements_cls(bot))
            self._post(listener.on_spawn, self)

        @On(bot, "chat")
        def handle_chat(this, username, message, *args):
            self._post(listener.on_chat, self, str(username), str(message))

        @On(bot, "kicked")
        def handle_kicked(this, reason, *args):
            self._post(listener.on_kicked, self, str(reason))

        @On(bot, "end")
        def handle_end(this, reason=None, *args):
            self._ended = True
            self._post(listener.on_end, self, str(reason) if reason is not None else "")

        @On(bot, "error")
        def handle_error(this, err, *args):
            self._post(listener.on_error, self, _to_transport_error(err))

    # ------------------------------------------------------------------
    # GameSession protocol
    # ------------------------------------------------------------------

    @property
    def username(self) -> str:
        name = getattr(self._bot, "username", None)
        return str(name) if name else self._server.username

    @property
    def version(self) -> Optional[str]:
        version = getattr(self._bot, "version", None)
        return str(version) if version else None

    @property
    def supports_navigation(self) -> bool:
        return self._goals is not None

    def position(self) -> Optional[Position]:
        entity = self._bot.entity
        if entity is None:
            return None
        return _to_position(entity.position)

    def player_position(self, name: str) -> Optional[Position]:
        players = self._bot.players
        if players is None:
            return None
        player = players[name]
        if player is None or player.entity is None:
            return None
        return _to_position(player.entity.position)

    def set_control_state(self, control: Control, state: bool) -> None:
        self._bot.setControlState(control.value, bool(state))

    def set_goal(self, target: Position, tolerance: float) -> None:
        if self._goals is None:
            raise SessionError(code="navigation_unavailable", details={})
        goal = self._goals.GoalNear(target.x, target.y, target.z, tolerance)
        self._bot.pathfinder.setGoal(goal)

    def clear_goal(self) -> None:
        if self._goals is None:
            return
        self._bot.pathfinder.setGoal(None)

    def is_navigating(self) -> bool:
        if self._goals is None:
            return False
        return bool(self._bot.pathfinder.isMoving())

    def look(self, yaw: float, pitch: float) -> None:
        self._bot.look(yaw, pitch)

    def can_chat(self) -> bool:
        return not self._ended and self._bot.currentWindow is None

    def chat(self, message: str) -> None:
        self._bot.chat(message)

    def quit(self, reason: str = "") -> None:
        if self._ended:
            return
        self._ended = True
        self._bot.quit(reason or "disconnect.quitting")


def make_mineflayer_factory(
    loop: asyncio.AbstractEventLoop,
    *,
    with_pathfinder: bool = False,
) -> SessionFactory:
    """Return a SessionFactory producing MineflayerSessions bound to `loop`."""

    def factory(server: ServerConfig, listener: SessionListener) -> GameSession:
        return MineflayerSession(server, listener, loop, with_pathfinder=with_pathfinder)

    return factory
