# path: src/monitoring/events.py
"""
Event schema for bot monitoring.

This module defines:
- EventType enum
- MonitoringEvent (structured lifecycle events)

All events are JSON-serializable via `.to_dict()` and are intended
for use with monitoring.bus.EventBus and monitoring.logger.JsonFileLogger.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum, auto
from typing import Any, Dict, Optional


# ============================================================
# Event Types
# ============================================================

class EventType(Enum):
    """Typed monitoring events emitted by the bot controller and friends."""

    # Controller state machine (Disconnected, Connecting, Active, Degraded)
    BOT_PHASE_CHANGE = auto()

    # Connection lifecycle
    CONNECT_ATTEMPT = auto()
    SESSION_LOGIN = auto()
    SESSION_SPAWN = auto()
    SESSION_KICKED = auto()
    SESSION_ENDED = auto()
    SESSION_ERROR = auto()

    # Reconnect policy
    RECONNECT_SCHEDULED = auto()
    RECONNECT_EXHAUSTED = auto()

    # Activity scheduler
    WANDER_ACTION = auto()

    # Command dispatcher / AI collaborator
    AI_QUERY = auto()
    AI_RESPONSE = auto()
    AI_FAILURE = auto()
    CHAT_SEND_FAILED = auto()


# ============================================================
# Monitoring Event Structure
# ============================================================

@dataclass
class MonitoringEvent:
    """
    Runtime event emitted by the controller, scheduler, dispatcher or
    reconnect policy.

    All fields must be JSON-safe.
    """

    ts: float                   # UNIX timestamp (seconds)
    module: str                 # Source module string ("agent.controller", ...)
    event_type: EventType
    message: str                # Short human-readable description
    payload: Dict[str, Any]     # Structured data (reason, delay, attempt, ...)
    correlation_id: Optional[str] = None  # session id the event belongs to

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dict for loggers."""
        data = asdict(self)
        data["event_type"] = self.event_type.name  # store name, not enum
        return data
