"""
llm_stack package.

Exports:
    - TextBackend: protocol the command dispatcher talks to
    - GeminiBackend / GeminiChatBackend: hosted Gemini implementations
    - create_backend: factory keyed on the ai config section
"""

from __future__ import annotations

from .backend import (
    GeminiBackend,
    GeminiChatBackend,
    LLMError,
    TextBackend,
    UnconfiguredBackend,
    create_backend,
)
from .config import ModelConfig
from .history import ChatHistory

__all__ = [
    "ChatHistory",
    "GeminiBackend",
    "GeminiChatBackend",
    "LLMError",
    "ModelConfig",
    "TextBackend",
    "UnconfiguredBackend",
    "create_backend",
]
