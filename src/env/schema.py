# BotProfile and section dataclasses
# src/env/schema.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


class ConfigError(ValueError):
    """Raised when the resolved configuration is missing or inconsistent."""


@dataclass
class ServerConfig:
    """Where and as whom the bot connects."""
    host: str
    port: int = 25565
    username: str = "AIBot"
    version: Optional[str] = None   # None means auto-detect
    auth: str = "offline"           # "offline" or "microsoft"


@dataclass
class AIConfig:
    """Hosted text-completion settings."""
    api_key: Optional[str] = None
    model: str = "gemini-2.0-flash"
    mode: str = "single"            # "single" or "chat"
    history_limit: Optional[int] = None
    system_prompt: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None


@dataclass
class MovementConfig:
    """Wandering behaviour."""
    mode: str = "controls"          # "controls" or "pathfinder"
    interval_min_s: float = 5.0
    interval_max_s: float = 10.0
    wander_radius: float = 10.0
    arrival_tolerance: float = 1.0
    flourish_chance: float = 0.0


@dataclass
class ReconnectConfig:
    """Delay policy between connection attempts."""
    strategy: str = "fixed"         # "fixed" or "exponential"
    delay_s: float = 10.0
    base_s: float = 5.0
    max_attempts: Optional[int] = None
    max_delay_s: Optional[float] = None


@dataclass
class ChatConfig:
    """Chat command handling."""
    ai_prefix: str = "!ai"
    follow_command: str = "!follow"
    stop_command: str = "!stop"
    max_message_length: int = 256
    resume_delay_s: float = 3.0
    follow_tolerance: float = 2.0
    greeting: Optional[str] = (
        "Hello, world! I am your AI bot, ready to assist. "
        "Type !ai <your_question> to chat with me."
    )


@dataclass
class HealthConfig:
    """Liveness endpoint for the hosting platform."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 3000
    body: str = "Aternos Bot is running!"


@dataclass
class LoggingConfig:
    level: str = "INFO"
    events_path: Optional[str] = None


@dataclass
class BotProfile:
    """Fully resolved configuration, read once at startup."""
    server: ServerConfig
    ai: AIConfig = field(default_factory=AIConfig)
    movement: MovementConfig = field(default_factory=MovementConfig)
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
