"""Observer service: the HTTP API, the cache sweep and the report loop."""

import asyncio
from typing import Any

from aiohttp import web

from netcheck.observer.api import ObserverApi
from netcheck.observer.cache import ExpiringCache
from netcheck.observer.registry import LivenessRegistry
from netcheck.observer.report import ReportGenerator
from netcheck.observer.results import ResultStore
from netcheck.shared.base_service import BaseService
from netcheck.shared.bus import ReportBus
from netcheck.shared.config import load_observer_config


class ObserverService(BaseService):
    """Central observer that tracks agent liveness and aggregates results."""

    def __init__(self, config_path: str | None = None, config: dict[str, Any] | None = None):
        if config is None:
            config = load_observer_config(config_path)
        super().__init__(name="observer", config=config)

        self.cache = ExpiringCache(
            default_ttl=self.config.get("cache_ttl_seconds", 15),
            sweep_interval=self.config.get("cache_sweep_seconds", 30),
        )
        self.registry = LivenessRegistry(self.cache)
        self.store = ResultStore()

        redis_url = self.config.get("redis_url")
        self.bus = ReportBus(redis_url=redis_url) if redis_url else None
        self.reports = ReportGenerator(self.registry, self.store, bus=self.bus, logger=self.logger)
        self.api = ObserverApi(self.registry, self.store, self.reports, logger=self.logger)
        self._runner: web.AppRunner | None = None

    async def run(self):
        if self.bus is not None:
            try:
                await self.bus.connect()
            except Exception as e:
                self.logger.error(f"Report bus unavailable, reports will only be logged: {e}")
                self.bus = None
                self.reports.bus = None

        port = self.config.get("http_port", 8080)
        self._runner = web.AppRunner(self.api.app, access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.config.get("http_host", "0.0.0.0"), port)
        await site.start()
        self.logger.info(
            f"Observer listening on port {port}",
            extra={"fields": {"config": self.config}},
        )

        await asyncio.gather(
            self.cache.run_sweeper(self.stop_event),
            self.reports.run(self.stop_event, self.config.get("report_interval_seconds", 300)),
        )

    async def shutdown(self):
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        if self.bus is not None:
            await self.bus.disconnect()
