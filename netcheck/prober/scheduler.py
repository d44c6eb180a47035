"""Periodic connectivity test scheduler.

Every cycle fetches the current host and pod addresses from the
observer, probes them, and reports the results back. A failure in one
category is logged and the cycle moves on to the next one.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from netcheck.prober.engine import ProbeEngine
from netcheck.shared.base_service import run_periodic
from netcheck.shared.models import ConnectivityResult


class Scheduler:
    """Drive ProbeEngine on a fixed interval: fetch, probe, report."""

    def __init__(
        self,
        directory,
        engine: ProbeEngine,
        service_name: str = "",
        interval: float = 60.0,
        logger: logging.Logger | None = None,
    ):
        self._directory = directory
        self._engine = engine
        self._service_name = service_name
        self._interval = interval if interval > 0 else 60.0
        self._logger = logger or logging.getLogger("netcheck.scheduler")
        self.cycles = 0

    async def run(self, stop_event: asyncio.Event):
        """Run one cycle immediately, then every interval until stopped."""
        self._logger.info(f"Scheduler started, interval {self._interval}s")
        await run_periodic(stop_event, self._interval, self.run_cycle, on_error=self._on_cycle_error)
        self._logger.info("Scheduler stopped")

    async def run_cycle(self):
        self._logger.info("Connectivity test cycle started")
        await self._run_category(
            "host",
            self._directory.get_host_addresses,
            self._engine.test_host_connectivity,
            self._directory.report_host_results,
        )
        await self._run_category(
            "pod",
            self._directory.get_pod_addresses,
            self._engine.test_pod_connectivity,
            self._directory.report_pod_results,
        )
        if self._service_name:
            await self._run_service()
        else:
            self._logger.debug("No service name configured, skipping service test")
        self.cycles += 1
        self._logger.info("Connectivity test cycle finished")

    async def _run_category(
        self,
        category: str,
        fetch: Callable[[], Awaitable[list[str]]],
        probe: Callable[[list[str]], Awaitable[list[ConnectivityResult]]],
        report: Callable[[list[ConnectivityResult]], Awaitable[None]],
    ):
        try:
            addresses = await fetch()
        except Exception as e:
            self._logger.error(f"Fetching {category} addresses failed: {e}")
            return

        if not addresses:
            self._logger.info(f"No {category} addresses to test")
            return

        try:
            results = await probe(addresses)
        except Exception as e:
            self._logger.error(f"Probing {category} addresses failed: {e}")
            return

        if not results:
            return

        try:
            await report(results)
        except Exception as e:
            self._logger.error(f"Reporting {category} results failed: {e}")
            return
        self._logger.info(f"Reported {len(results)} {category} results")

    async def _run_service(self):
        result = await self._engine.test_service_connectivity(self._service_name)
        self._logger.info(
            f"Service {self._service_name} is {result.liveness_status}",
            extra={"fields": {"service": self._service_name, "target": result.target_address}},
        )
        try:
            await self._directory.report_service_result(result)
        except Exception as e:
            self._logger.error(f"Reporting service result failed: {e}")

    def _on_cycle_error(self, error: Exception):
        self._logger.error(f"Connectivity test cycle failed: {error}")
