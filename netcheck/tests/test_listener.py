"""Tests for the agent-side pod port listener."""

import socket

import aiohttp
import pytest
from aiohttp import test_utils
from unittest.mock import MagicMock, patch

from netcheck.prober.listener import AgentListener
from netcheck.shared.errors import ValidationError


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.mark.asyncio
async def test_health_reports_process_stats():
    listener = AgentListener("checker-a")
    client = test_utils.TestClient(test_utils.TestServer(listener.app))
    await client.start_server()
    try:
        resp = await client.get("/health")
        assert resp.status == 200
        body = await resp.json()
        assert body["status"] == "healthy"
        assert body["agent"] == "checker-a"
        assert body["pid"] > 0
        assert body["memory_rss"] > 0
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_health_uses_psutil_process():
    with patch("netcheck.prober.listener.psutil.Process") as mock_process:
        proc = MagicMock(pid=4242)
        proc.memory_info.return_value = MagicMock(rss=1024)
        proc.cpu_percent.return_value = 12.5
        mock_process.return_value = proc
        listener = AgentListener("checker-a")

    client = test_utils.TestClient(test_utils.TestServer(listener.app))
    await client.start_server()
    try:
        body = await (await client.get("/health")).json()
        assert body == {
            "status": "healthy",
            "agent": "checker-a",
            "pid": 4242,
            "cpu_percent": 12.5,
            "memory_rss": 1024,
        }
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_start_and_stop_on_port():
    listener = AgentListener("checker-a")
    port = _free_port()
    await listener.start(port, host="127.0.0.1")
    try:
        assert listener.port == port
        async with aiohttp.ClientSession() as session:
            async with session.get(f"http://127.0.0.1:{port}/health") as resp:
                assert resp.status == 200
    finally:
        await listener.stop()
    await listener.stop()


@pytest.mark.asyncio
@pytest.mark.parametrize("port", [0, 70000])
async def test_invalid_port(port):
    with pytest.raises(ValidationError):
        await AgentListener("checker-a").start(port)
