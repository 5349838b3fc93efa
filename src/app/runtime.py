# src/app/runtime.py
"""
Process entrypoint: wire config, logging, health endpoint and controller
onto one asyncio loop and run until SIGINT/SIGTERM.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional, Sequence

from agent.controller import BotController
from agent.logging_config import configure_logging
from agent.timers import LoopTimers
from bot_core.mineflayer_session import make_mineflayer_factory
from bot_core.session import SessionFactory
from env.loader import load_environment
from env.schema import BotProfile, ConfigError
from llm_stack.backend import TextBackend, create_backend
from monitoring.bus import EventBus
from monitoring.logger import JsonFileLogger

from .health import HealthServer

log = logging.getLogger(__name__)


async def run_bot(
    profile: BotProfile,
    *,
    session_factory: Optional[SessionFactory] = None,
    backend: Optional[TextBackend] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """Run the bot until `stop_event` is set (or a termination signal arrives)."""
    loop = asyncio.get_running_loop()
    stop = stop_event or asyncio.Event()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Windows / non-main thread: fall back to KeyboardInterrupt.
            pass

    bus = EventBus()
    event_sink: Optional[JsonFileLogger] = None
    if profile.logging.events_path:
        event_sink = JsonFileLogger(Path(profile.logging.events_path), bus)

    health = HealthServer(profile.health) if profile.health.enabled else None
    if health is not None:
        await health.start()

    if session_factory is None:
        session_factory = make_mineflayer_factory(
            loop, with_pathfinder=profile.movement.mode == "pathfinder"
        )
    if backend is None:
        backend = create_backend(profile.ai)

    controller = BotController(
        profile,
        session_factory,
        backend,
        LoopTimers(loop),
        bus=bus,
    )
    controller.start()

    try:
        await stop.wait()
    finally:
        log.info("Shutting down.")
        controller.shutdown()
        if health is not None:
            await health.stop()
        if event_sink is not None:
            event_sink.close()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aternos-bot",
        description="Minecraft chat bot that wanders and answers !ai questions.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=(
            "Path to bot.yaml. Defaults to $BOT_CONFIG, then ./config/bot.yaml "
            "in the working directory, then the copy shipped with a source checkout."
        ),
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level (DEBUG, INFO, ...).",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    try:
        profile = load_environment(args.config)
    except ConfigError as exc:
        configure_logging(args.log_level or logging.INFO)
        log.error("Configuration error: %s", exc)
        return 2

    configure_logging(args.log_level or profile.logging.level)

    try:
        asyncio.run(run_bot(profile))
    except KeyboardInterrupt:
        log.info("Interrupted.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
