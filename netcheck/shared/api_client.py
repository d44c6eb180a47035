"""HTTP client agents use to talk to the observer.

Every call goes through ``_request_with_retry``: up to five attempts with
exponential backoff (1s, 2s, 4s, 8s, 16s). After the last attempt the
failure surfaces as TransientIOError.
"""

import asyncio
import logging
from typing import Any

import httpx

from netcheck.shared.errors import TransientIOError
from netcheck.shared.models import AgentDescriptor, ConnectivityResult

HEARTBEAT_PATH = "/api/v1/heartbeat"
HOSTS_PATH = "/api/v1/hosts"
PODS_PATH = "/api/v1/pods"
HOST_RESULTS_PATH = "/api/v1/test-results/hosts"
POD_RESULTS_PATH = "/api/v1/test-results/pods"
SERVICE_RESULTS_PATH = "/api/v1/test-results/service"


class DirectoryClient:
    """Async client for the observer's directory and result endpoints."""

    def __init__(
        self,
        server_url: str,
        source_address: str,
        timeout: float = 10.0,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        logger: logging.Logger | None = None,
    ):
        self._server_url = server_url.rstrip("/")
        self._source_address = source_address
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._logger = logger or logging.getLogger("netcheck.api_client")

    @property
    def source_address(self) -> str:
        return self._source_address

    async def send_heartbeat(self, descriptor: AgentDescriptor):
        await self._request_with_retry("POST", HEARTBEAT_PATH, json=descriptor.to_dict())
        self._logger.debug(f"Heartbeat sent for {descriptor.agent_name}")

    async def get_host_addresses(self) -> list[str]:
        data = await self._request_with_retry("GET", HOSTS_PATH)
        return list(data.get("host_ips") or [])

    async def get_pod_addresses(self) -> list[str]:
        data = await self._request_with_retry("GET", PODS_PATH)
        return list(data.get("pod_ips") or [])

    async def report_host_results(self, results: list[ConnectivityResult]):
        await self._report_many(HOST_RESULTS_PATH, results)

    async def report_pod_results(self, results: list[ConnectivityResult]):
        await self._report_many(POD_RESULTS_PATH, results)

    async def report_service_result(self, result: ConnectivityResult):
        body = {"source_ip": self._source_address, "result": result.to_dict()}
        await self._request_with_retry("POST", SERVICE_RESULTS_PATH, json=body)

    async def _report_many(self, path: str, results: list[ConnectivityResult]):
        body = {
            "source_ip": self._source_address,
            "results": [r.to_dict() for r in results],
        }
        await self._request_with_retry("POST", path, json=body)

    async def _request_with_retry(self, method: str, path: str, json: dict | None = None) -> dict[str, Any]:
        last_error: Exception | None = None
        for attempt in range(self._max_attempts):
            if attempt > 0:
                delay = self._base_delay * (2 ** (attempt - 1))
                self._logger.warning(
                    f"{method} {path} failed, retrying in {delay:g}s "
                    f"(attempt {attempt + 1}/{self._max_attempts}): {last_error}"
                )
                await asyncio.sleep(delay)
            try:
                return await self._request(method, path, json)
            except (httpx.HTTPError, TransientIOError, ValueError) as e:
                last_error = e
        raise TransientIOError(
            f"{method} {path} failed after {self._max_attempts} attempts: {last_error}"
        )

    async def _request(self, method: str, path: str, json: dict | None) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.request(method, f"{self._server_url}{path}", json=json)

        if response.status_code < 200 or response.status_code >= 300:
            detail = response.text
            try:
                body = response.json()
                if isinstance(body, dict) and "code" in body:
                    detail = f"{body['code']} - {body.get('message', '')}"
            except ValueError:
                pass
            raise TransientIOError(f"Server returned {response.status_code}: {detail}")

        if not response.content:
            return {}
        data = response.json()
        return data if isinstance(data, dict) else {}
