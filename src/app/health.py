# src/app/health.py
"""
Liveness endpoint for the hosting platform's health check.

GET / answers 200 with a fixed plain-text body. It shares the bot's event
loop and keeps serving even when the bot has given up reconnecting.
"""

from __future__ import annotations

import logging
from typing import Optional

from aiohttp import web

from env.schema import HealthConfig

log = logging.getLogger(__name__)


def create_app(config: HealthConfig) -> web.Application:
    body = config.body

    async def index(request: web.Request) -> web.Response:
        return web.Response(text=body, content_type="text/plain")

    app = web.Application()
    app.router.add_get("/", index)
    return app


class HealthServer:
    def __init__(self, config: HealthConfig) -> None:
        self._config = config
        self._runner: Optional[web.AppRunner] = None

    @property
    def running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        if self._runner is not None:
            return
        runner = web.AppRunner(create_app(self._config))
        await runner.setup()
        site = web.TCPSite(runner, self._config.host, self._config.port)
        await site.start()
        self._runner = runner
        log.info("Web server running on port %d", self._config.port)

    async def stop(self) -> None:
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        await runner.cleanup()
