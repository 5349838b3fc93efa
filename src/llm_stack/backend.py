# src/llm_stack/backend.py
"""
Backend interface and concrete implementations for hosted text generation.
Currently backed by Google Gemini through the google-genai SDK.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol

from google import genai
from google.genai import types

from env.schema import AIConfig

from .config import ModelConfig
from .history import ChatHistory

log = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """The text backend could not produce a reply."""


class TextBackend(Protocol):
    """Simple interface around a hosted text generation service."""

    async def generate(self, prompt: str) -> str:
        """Generate a reply for the given prompt. May raise."""
        ...


class GeminiBackend:
    """
    Single-turn Gemini backend: every prompt is answered on its own.

    This is intentionally minimal: config in, text out.
    """

    def __init__(self, cfg: ModelConfig, client: Optional[Any] = None) -> None:
        self._cfg = cfg
        self._client = client if client is not None else genai.Client(api_key=cfg.api_key)

    @property
    def model(self) -> str:
        return self._cfg.model

    def _generation_config(self) -> Optional[types.GenerateContentConfig]:
        kwargs: dict[str, Any] = {}
        if self._cfg.system_prompt:
            kwargs["system_instruction"] = self._cfg.system_prompt
        if self._cfg.temperature is not None:
            kwargs["temperature"] = self._cfg.temperature
        if self._cfg.max_output_tokens is not None:
            kwargs["max_output_tokens"] = self._cfg.max_output_tokens
        if not kwargs:
            return None
        return types.GenerateContentConfig(**kwargs)

    async def _complete(self, contents: Any) -> str:
        response = await self._client.aio.models.generate_content(
            model=self._cfg.model,
            contents=contents,
            config=self._generation_config(),
        )
        text = getattr(response, "text", None)
        if not text or not text.strip():
            raise LLMError("Empty response from model")
        return text.strip()

    async def generate(self, prompt: str) -> str:
        return await self._complete(prompt)


class GeminiChatBackend(GeminiBackend):
    """
    Multi-turn Gemini backend.

    Each call sends the accumulated ChatHistory plus the new prompt; the
    exchange is recorded only when the model answers.
    """

    def __init__(
        self,
        cfg: ModelConfig,
        client: Optional[Any] = None,
        history: Optional[ChatHistory] = None,
    ) -> None:
        super().__init__(cfg, client)
        self.history = history if history is not None else ChatHistory(limit=cfg.history_limit)

    def _contents(self, prompt: str) -> List[types.Content]:
        contents = [
            types.Content(role=role, parts=[types.Part(text=text)])
            for role, text in self.history.entries
        ]
        contents.append(types.Content(role="user", parts=[types.Part(text=prompt)]))
        return contents

    async def generate(self, prompt: str) -> str:
        reply = await self._complete(self._contents(prompt))
        self.history.append_exchange(prompt, reply)
        return reply


class UnconfiguredBackend:
    """Stand-in used when no API key is configured; every call fails."""

    async def generate(self, prompt: str) -> str:
        raise LLMError("AI is not configured (missing GEMINI_API_KEY)")


def create_backend(ai: AIConfig, client: Optional[Any] = None) -> TextBackend:
    """Build the backend selected by `ai.mode`."""
    if client is None and not ai.api_key:
        log.warning("No AI API key configured; !ai requests will be answered with an apology.")
        return UnconfiguredBackend()

    cfg = ModelConfig.from_ai_config(ai)
    if ai.mode == "chat":
        return GeminiChatBackend(cfg, client)
    return GeminiBackend(cfg, client)
