"""Tests for the observer HTTP API."""

import pytest
from aiohttp import test_utils

from netcheck.observer.api import ObserverApi
from netcheck.observer.registry import LivenessRegistry
from netcheck.observer.report import ReportGenerator
from netcheck.observer.results import ResultStore

HEARTBEAT = {
    "pod_name": "checker-a",
    "node_ip": "10.0.0.1",
    "pod_ip": "10.244.0.5",
    "namespace": "netcheck",
    "timestamp": 1700000000.0,
}


def _build_api() -> ObserverApi:
    registry = LivenessRegistry()
    store = ResultStore()
    return ObserverApi(registry, store, ReportGenerator(registry, store))


async def _client(api: ObserverApi) -> test_utils.TestClient:
    client = test_utils.TestClient(test_utils.TestServer(api.app))
    await client.start_server()
    return client


@pytest.mark.asyncio
async def test_heartbeat_registers_agent():
    client = await _client(_build_api())
    try:
        resp = await client.post("/api/v1/heartbeat", json=HEARTBEAT)
        assert resp.status == 200
        assert await resp.json() == {"status": "success", "version": 1}

        resp = await client.get("/api/v1/hosts")
        assert await resp.json() == {"host_ips": ["10.0.0.1"], "count": 1}
        resp = await client.get("/api/v1/pods")
        assert (await resp.json())["pod_ips"] == ["10.244.0.5"]

        resp = await client.get("/api/v1/clients/checker-a")
        body = await resp.json()
        assert body["version"] == 1
        assert body["node_info"]["pod_ip"] == "10.244.0.5"

        resp = await client.get("/api/v1/clients/count")
        assert await resp.json() == {"active_client_count": 1}
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_heartbeat_missing_fields_is_400():
    api = _build_api()
    client = await _client(api)
    try:
        resp = await client.post("/api/v1/heartbeat", json={"pod_name": "checker-a"})
        assert resp.status == 400
        body = await resp.json()
        assert body["code"] == "INVALID_REQUEST"
        assert "node_address" in body["details"]
        assert api._registry.current_version() == 0
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_invalid_json_is_400():
    client = await _client(_build_api())
    try:
        resp = await client.post(
            "/api/v1/heartbeat", data="{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status == 400
        assert (await resp.json())["code"] == "INVALID_REQUEST"
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_non_utf8_body_is_400():
    api = _build_api()
    client = await _client(api)
    try:
        resp = await client.post(
            "/api/v1/heartbeat",
            data=b'{"pod_name": "\xff\xfe"}',
            headers={"Content-Type": "application/json"},
        )
        assert resp.status == 400
        assert (await resp.json())["code"] == "INVALID_REQUEST"
        assert api._registry.current_version() == 0
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_unknown_client_is_404():
    client = await _client(_build_api())
    try:
        resp = await client.get("/api/v1/clients/ghost")
        assert resp.status == 404
        body = await resp.json()
        assert body["code"] == "NOT_FOUND"
        assert "ghost" in body["details"]
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_host_results_roundtrip_and_replace():
    client = await _client(_build_api())
    try:
        first = {
            "source_ip": "10.244.0.5",
            "results": [
                {"source_ip": "10.244.0.5", "target_ip": "10.0.0.1", "ping_status": "reachable",
                 "port_status": {"22": "open"}, "test_duration": 0.5},
                {"source_ip": "10.244.0.5", "target_ip": "10.0.0.2", "ping_status": "unreachable",
                 "port_status": {"22": "closed"}, "test_duration": 5.0},
            ],
        }
        resp = await client.post("/api/v1/test-results/hosts", json=first)
        assert resp.status == 200

        resp = await client.get("/api/v1/test-results/hosts")
        results = (await resp.json())["results"]
        assert results["10.244.0.5"]["10.0.0.1"] == {"ping": "reachable", "port_status": "open", "test_duration": 0.5}

        second = {"source_ip": "10.244.0.5", "results": [first["results"][1]]}
        await client.post("/api/v1/test-results/hosts", json=second)
        resp = await client.get("/api/v1/test-results/hosts")
        assert set((await resp.json())["results"]["10.244.0.5"]) == {"10.0.0.2"}
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_pod_results_require_source_and_list():
    client = await _client(_build_api())
    try:
        resp = await client.post("/api/v1/test-results/pods", json={"results": []})
        assert resp.status == 400
        resp = await client.post("/api/v1/test-results/pods", json={"source_ip": "10.244.0.5", "results": {}})
        assert resp.status == 400
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_service_result():
    client = await _client(_build_api())
    try:
        body = {
            "source_ip": "10.244.0.5",
            "result": {"source_ip": "10.244.0.5", "target_ip": "10.96.0.1", "ping_status": "reachable",
                       "port_status": {"80": "open"}},
        }
        resp = await client.post("/api/v1/test-results/service", json=body)
        assert resp.status == 200

        resp = await client.get("/api/v1/test-results/service")
        stored = (await resp.json())["results"]["10.244.0.5"]
        assert stored["target_ip"] == "10.96.0.1"
        assert stored["port_status"] == {"80": "open"}

        resp = await client.post("/api/v1/test-results/service", json={"source_ip": "10.244.0.5"})
        assert resp.status == 400
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_results_and_report():
    client = await _client(_build_api())
    try:
        await client.post("/api/v1/heartbeat", json=HEARTBEAT)
        resp = await client.get("/api/v1/results")
        body = await resp.json()
        assert body["active_client_count"] == 1
        assert body["host_ips"] == ["10.0.0.1"]
        assert body["host_test_results"] == {}
        assert body["service_test_results"] == {}

        resp = await client.get("/api/v1/report")
        report = await resp.json()
        assert report["active_client_count"] == 1
        assert report["pod_ips"] == ["10.244.0.5"]
        assert report["host_test_summary"]["total_tests"] == 0
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_health_and_unknown_route():
    client = await _client(_build_api())
    try:
        resp = await client.get("/api/v1/health")
        assert await resp.json() == {"status": "healthy"}
        resp = await client.get("/api/v1/nope")
        assert resp.status == 404
    finally:
        await client.close()
