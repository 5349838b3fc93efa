# src/llm_stack/config.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from env.schema import AIConfig


@dataclass
class ModelConfig:
    """Minimal model config used by the Gemini backends."""

    model: str = "gemini-2.0-flash"
    api_key: Optional[str] = None

    # generation parameters; None leaves the service default
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None

    # prompt shaping
    system_prompt: Optional[str] = None

    # chat mode only: keep at most this many user/model exchanges
    history_limit: Optional[int] = None

    @classmethod
    def from_ai_config(cls, ai: AIConfig) -> "ModelConfig":
        return cls(
            model=ai.model,
            api_key=ai.api_key,
            temperature=ai.temperature,
            max_output_tokens=ai.max_output_tokens,
            system_prompt=ai.system_prompt,
            history_limit=ai.history_limit,
        )
