# src/llm_stack/history.py
"""Ordered (role, text) buffer for multi-turn conversations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

USER = "user"
MODEL = "model"


@dataclass
class ChatHistory:
    """
    Append-only conversation history.

    With `limit=None` the buffer grows for the life of the process. With a
    limit, only the most recent `limit` exchanges (user + model pairs) are
    kept; older ones are dropped from the front.
    """

    limit: Optional[int] = None
    entries: List[Tuple[str, str]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def append_exchange(self, prompt: str, reply: str) -> None:
        self.entries.append((USER, prompt))
        self.entries.append((MODEL, reply))
        if self.limit is not None:
            keep = self.limit * 2
            if len(self.entries) > keep:
                del self.entries[: len(self.entries) - keep]

    def clear(self) -> None:
        self.entries.clear()
