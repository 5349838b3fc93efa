# src/agent/logging_config.py
"""
Central logging configuration for the bot runtime.

Call configure_logging() from your main entrypoint once, for example:

    from agent.logging_config import configure_logging
    configure_logging("INFO")

Console output goes through rich's RichHandler.
"""

from __future__ import annotations

import logging
from typing import Union

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure root logging if no handlers are attached yet.

    Args:
        level: logging level (e.g. logging.INFO or "DEBUG")
    """
    root = logging.getLogger()

    # Don't duplicate handlers if someone already configured logging.
    if root.handlers:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter(fmt="%(name)s: %(message)s", datefmt="[%X]"))
    root.addHandler(handler)
    root.setLevel(level)
