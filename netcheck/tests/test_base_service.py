import asyncio
import pytest
from unittest.mock import AsyncMock

from netcheck.shared.base_service import BaseService, run_periodic, wait_or_stop


class EchoService(BaseService):
    """Concrete service that idles until stopped."""

    def __init__(self, **kwargs):
        super().__init__(name="echo", **kwargs)
        self.started = False
        self.released = False

    async def run(self):
        self.started = True
        await self.stop_event.wait()

    async def shutdown(self):
        self.released = True


def test_service_is_abstract():
    with pytest.raises(TypeError):
        BaseService(name="bad")


def test_service_config_and_logger():
    service = EchoService(config={"log_level": "debug", "foo": "bar"})
    assert service.config["foo"] == "bar"
    assert service.logger.name == "netcheck.echo"


@pytest.mark.asyncio
async def test_start_and_stop():
    service = EchoService()
    task = asyncio.create_task(service.start())
    await asyncio.sleep(0.01)
    assert service.started
    assert service.running
    await service.stop()
    await asyncio.wait_for(task, timeout=1)
    assert service.released
    assert not service.running


@pytest.mark.asyncio
async def test_wait_or_stop():
    stop = asyncio.Event()
    assert await wait_or_stop(stop, 0.01) is False
    stop.set()
    assert await wait_or_stop(stop, 10) is True


@pytest.mark.asyncio
async def test_run_periodic_ticks_immediately_and_stops():
    stop = asyncio.Event()
    tick = AsyncMock()
    task = asyncio.create_task(run_periodic(stop, 60, tick))
    await asyncio.sleep(0.01)
    stop.set()
    await asyncio.wait_for(task, timeout=1)
    tick.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_periodic_reraises_without_handler():
    tick = AsyncMock(side_effect=RuntimeError("boom"))
    with pytest.raises(RuntimeError):
        await run_periodic(asyncio.Event(), 0.01, tick)


@pytest.mark.asyncio
async def test_run_periodic_reports_errors_to_handler():
    stop = asyncio.Event()
    errors = []
    tick = AsyncMock(side_effect=RuntimeError("boom"))
    task = asyncio.create_task(run_periodic(stop, 0.01, tick, on_error=errors.append))
    await asyncio.sleep(0.05)
    stop.set()
    await asyncio.wait_for(task, timeout=1)
    assert len(errors) >= 2
    assert all(isinstance(e, RuntimeError) for e in errors)
