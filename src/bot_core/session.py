# src/bot_core/session.py
"""
Session abstraction for the game client.

Defines the GameSession protocol the controller drives, the listener
protocol a session reports lifecycle events to, plus the small value types
(Control, Position) shared by the scheduler and dispatcher.

Implementations:
- MineflayerSession (mineflayer over the `javascript` bridge)
- FakeGameSession (bot_core.testing.fakes, in-memory)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from env.schema import ServerConfig


class Control(str, Enum):
    """Discrete movement control states, each settable true/false."""

    FORWARD = "forward"
    BACK = "back"
    LEFT = "left"
    RIGHT = "right"
    JUMP = "jump"
    SNEAK = "sneak"
    SPRINT = "sprint"


ALL_CONTROLS: tuple[Control, ...] = tuple(Control)


@dataclass(frozen=True)
class Position:
    x: float
    y: float
    z: float

    def offset(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0) -> "Position":
        return Position(self.x + dx, self.y + dy, self.z + dz)



@dataclass
class SessionError(RuntimeError):
    """
    Domain-level error for session failures outside the event stream.

    Examples:
        - the client library failed to construct a bot
        - the bridge to the client runtime is unavailable
    """

    code: str
    details: dict[str, Any]

    def __str__(self) -> str:
        return f"SessionError(code={self.code!r}, details={self.details!r})"


class TransportError(RuntimeError):
    """
    Error reported by the client library for a live session.

    `name` and `code` mirror the library's error metadata (for example
    ``PartialReadError`` or ``ECONNRESET``) and are used only to pick a log hint.
    """

    def __init__(
        self,
        message: str,
        *,
        name: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.name = name
        self.code = code


class GameSession(Protocol):
    """One live connection to the game server. Never reused after it ends."""

    @property
    def username(self) -> str:
        """The identity the server knows this bot by."""
        ...

    @property
    def version(self) -> Optional[str]:
        """Protocol version negotiated with the server, once known."""
        ...

    @property
    def supports_navigation(self) -> bool:
        """True when a pathfinding goal interface is available."""
        ...

    def position(self) -> Optional[Position]:
        """Current position, or None while the bot has no entity yet."""
        ...

    def player_position(self, name: str) -> Optional[Position]:
        """Position of another visible player, or None."""
        ...

    def set_control_state(self, control: Control, state: bool) -> None:
        ...

    def set_goal(self, target: Position, tolerance: float) -> None:
        """Start navigating to within `tolerance` blocks of `target`."""
        ...

    def clear_goal(self) -> None:
        ...

    def is_navigating(self) -> bool:
        ...

    def look(self, yaw: float, pitch: float) -> None:
        ...

    def can_chat(self) -> bool:
        """False while disconnected or while a window (menu) is open."""
        ...

    def chat(self, message: str) -> None:
        ...

    def quit(self, reason: str = "") -> None:
        """Close the connection. Safe to call more than once."""
        ...


class SessionListener(Protocol):
    """
    Receiver for session lifecycle events.

    Every callback receives the emitting session first so the receiver can
    drop events from sessions it has already discarded.
    """

    def on_login(self, session: GameSession) -> None:
        ...

    def on_spawn(self, session: GameSession) -> None:
        ...

    def on_chat(self, session: GameSession, sender: str, text: str) -> None:
        ...

    def on_kicked(self, session: GameSession, reason: Any) -> None:
        ...

    def on_end(self, session: GameSession, reason: Any) -> None:
        ...

    def on_error(self, session: GameSession, err: BaseException) -> None:
        ...


# Builds a fresh session for one connection attempt.
SessionFactory = Callable[[ServerConfig, SessionListener], GameSession]
