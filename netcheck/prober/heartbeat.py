"""Periodic heartbeat sender for netcheck agents.

Each heartbeat refreshes this agent's liveness record on the observer.
A failed heartbeat is logged and the next tick tries again.
"""

import asyncio
import logging
from typing import Callable

from netcheck.shared.base_service import run_periodic
from netcheck.shared.models import AgentDescriptor


class HeartbeatReporter:
    """Send the agent descriptor to the observer on a fixed interval."""

    def __init__(
        self,
        directory,
        collect: Callable[[], AgentDescriptor],
        interval: float = 5.0,
        logger: logging.Logger | None = None,
    ):
        self._directory = directory
        self._collect = collect
        self._interval = interval if interval > 0 else 5.0
        self._logger = logger or logging.getLogger("netcheck.heartbeat")
        self.sent = 0
        self.failed = 0

    async def send_once(self) -> bool:
        """Collect and send one heartbeat. Returns False on failure."""
        try:
            descriptor = self._collect()
            await self._directory.send_heartbeat(descriptor)
        except Exception as e:
            self.failed += 1
            self._logger.error(f"Heartbeat failed: {e}")
            return False
        self.sent += 1
        self._logger.debug(f"Heartbeat sent for {descriptor.agent_name}")
        return True

    async def run(self, stop_event: asyncio.Event):
        self._logger.info(f"Heartbeat loop started, interval {self._interval}s")
        await run_periodic(stop_event, self._interval, self.send_once)
        self._logger.info("Heartbeat loop stopped")
