"""Tests for the prober agent wiring."""

import pytest
from unittest.mock import AsyncMock

from netcheck.prober.agent import ProbeAgent
from netcheck.shared.config import PROBER_DEFAULTS
from netcheck.shared.errors import ValidationError

ENV = {
    "NODE_IP": "10.0.0.1",
    "POD_IP": "10.244.0.5",
    "POD_NAME": "checker-a",
    "NAMESPACE": "netcheck",
}


@pytest.fixture
def agent():
    config = dict(PROBER_DEFAULTS, server_url="http://observer:8080", pod_port=7100, max_concurrency=4)
    return ProbeAgent(config=config, environ=ENV)


def test_agent_wires_components(agent):
    assert agent.name == "prober"
    assert agent.descriptor.agent_name == "checker-a"
    assert agent.directory.source_address == "10.244.0.5"
    assert agent.engine.source_address == "10.244.0.5"
    assert agent.engine.pod_port == 7100
    assert agent.engine.max_concurrency == 4


def test_agent_reads_config_from_environment():
    env = dict(ENV, TEST_PORT="2222", CUSTOM_SERVICE_NAME="kubernetes.default")
    agent = ProbeAgent(environ=env)
    assert agent.engine.host_port == 2222
    assert agent.scheduler._service_name == "kubernetes.default"


def test_agent_requires_identity():
    with pytest.raises(ValidationError):
        ProbeAgent(config=dict(PROBER_DEFAULTS), environ={"POD_IP": "10.244.0.5"})


@pytest.mark.asyncio
async def test_run_starts_listener_and_loops(agent):
    agent.listener.start = AsyncMock()
    agent.heartbeat.run = AsyncMock()
    agent.scheduler.run = AsyncMock()
    await agent.run()
    agent.listener.start.assert_awaited_once_with(7100)
    agent.heartbeat.run.assert_awaited_once_with(agent.stop_event)
    agent.scheduler.run.assert_awaited_once_with(agent.stop_event)


@pytest.mark.asyncio
async def test_listener_failure_does_not_stop_probing(agent):
    agent.listener.start = AsyncMock(side_effect=OSError("address in use"))
    agent.heartbeat.run = AsyncMock()
    agent.scheduler.run = AsyncMock()
    await agent.run()
    agent.scheduler.run.assert_awaited_once()


@pytest.mark.asyncio
async def test_stop_closes_listener(agent):
    agent.listener.stop = AsyncMock()
    await agent.stop()
    assert agent.stop_event.is_set()
    agent.listener.stop.assert_awaited_once()
