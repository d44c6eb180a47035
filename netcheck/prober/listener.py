"""Agent-side HTTP listener.

Peers probe each other's pod port, so every agent keeps a small server
open on it. ``GET /health`` also reports this process's resource use.
"""

import logging
import os

import psutil
from aiohttp import web

from netcheck.shared.errors import ValidationError


class AgentListener:
    """Minimal aiohttp server answering /health on the pod port."""

    def __init__(self, agent_name: str, logger: logging.Logger | None = None):
        self._agent_name = agent_name
        self._logger = logger or logging.getLogger("netcheck.listener")
        self._process = psutil.Process(os.getpid())
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self.port: int | None = None
        self.app = web.Application()
        self.app.router.add_get("/health", self._health)

    async def start(self, port: int, host: str = "0.0.0.0"):
        if not 0 < port <= 65535:
            raise ValidationError(f"Invalid port: {port}")
        self._runner = web.AppRunner(self.app, access_log=None)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, host, port)
        await self._site.start()
        self.port = port
        self._logger.info(f"Agent listener on {host}:{port}")

    async def stop(self):
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        self._site = None
        self._logger.info("Agent listener stopped")

    async def _health(self, request: web.Request) -> web.Response:
        with self._process.oneshot():
            memory_rss = self._process.memory_info().rss
            cpu_percent = self._process.cpu_percent(interval=None)
        return web.json_response({
            "status": "healthy",
            "agent": self._agent_name,
            "pid": self._process.pid,
            "cpu_percent": cpu_percent,
            "memory_rss": memory_rss,
        })
