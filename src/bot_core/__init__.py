# bot_core package
# src/bot_core/__init__.py
"""
bot_core package: the game-client side of the bot.

Exports:
    - GameSession / SessionListener / SessionFactory: session contracts
    - Control, Position: movement value types
    - SessionError, TransportError: session failure types
"""

from __future__ import annotations

from .session import (
    ALL_CONTROLS,
    Control,
    GameSession,
    Position,
    SessionError,
    SessionFactory,
    SessionListener,
    TransportError,
)

__all__ = [
    "ALL_CONTROLS",
    "Control",
    "GameSession",
    "Position",
    "SessionError",
    "SessionFactory",
    "SessionListener",
    "TransportError",
]
