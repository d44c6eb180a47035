"""Base class for netcheck's long-running services."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from netcheck.shared.logger import get_logger, parse_level


async def wait_or_stop(stop_event: asyncio.Event, seconds: float) -> bool:
    """Sleep for ``seconds`` unless the stop event fires first.

    Returns True when the event was set.
    """
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True


async def run_periodic(
    stop_event: asyncio.Event,
    interval: float,
    tick: Callable[[], Awaitable[Any]],
    on_error: Callable[[Exception], None] | None = None,
):
    """Run ``tick`` now and then every ``interval`` seconds until stopped.

    A tick that is already running when the event fires runs to completion;
    the loop exits at the next wait.
    """
    while not stop_event.is_set():
        try:
            await tick()
        except Exception as e:
            if on_error is None:
                raise
            on_error(e)
        if await wait_or_stop(stop_event, interval):
            break


class BaseService(ABC):
    """Abstract base class. The prober agent and the observer inherit from this.

    Provides:
    - Config dict
    - Structured logging
    - A shared stop event observed by every periodic loop
    """

    def __init__(self, name: str, config: dict[str, Any] | None = None):
        self.name = name
        self.config = dict(config or {})
        self.logger = get_logger(name, level=parse_level(self.config.get("log_level")))
        self.stop_event = asyncio.Event()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Run until stop() is called or run() returns."""
        self.stop_event.clear()
        self._running = True
        self.logger.info(f"Service {self.name} started")
        try:
            await self.run()
        finally:
            self._running = False

    async def stop(self):
        """Graceful shutdown."""
        self.stop_event.set()
        await self.shutdown()
        self.logger.info(f"Service {self.name} stopped")

    @abstractmethod
    async def run(self):
        """Main service body. Override in subclass."""
        ...

    async def shutdown(self):
        """Release resources. Override if the service holds any."""
