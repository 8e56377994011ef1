"""Async HTTP server hosting channel webhooks and the push/history APIs.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop. Channels and
APIs add their routes to ``app.router`` before ``start()``; the router is
frozen once the server is running.
"""

from __future__ import annotations

import logging

from aiohttp import web

from src.config import settings

logger = logging.getLogger(__name__)


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


def create_web_app() -> web.Application:
    """Build the aiohttp Application with the built-in routes."""
    app = web.Application()
    app.router.add_get("/health", _health)
    return app


class WebhookServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        app: web.Application,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        self.app = app
        self.host = host or settings.webhook_host
        self.port = port or settings.webhook_port
        self._runner: web.AppRunner | None = None

    @property
    def running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """Start listening for HTTP requests."""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("HTTP server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("HTTP server stopped")
