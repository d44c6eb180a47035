"""HTTP API the observer exposes to agents and operators.

Agents post heartbeats and results and fetch the current target lists;
operators read the aggregated state.
"""

import logging

from aiohttp import web

from netcheck.observer.registry import LivenessRegistry
from netcheck.observer.report import ReportGenerator
from netcheck.observer.results import ResultStore
from netcheck.shared.errors import NotFoundError, ValidationError
from netcheck.shared.models import AgentDescriptor, ConnectivityResult

API_PREFIX = "/api/v1"


def error_response(status: int, code: str, message: str, details: str = "") -> web.Response:
    body = {"code": code, "message": message}
    if details:
        body["details"] = details
    return web.json_response(body, status=status)


def _snapshot_to_dict(snapshot: dict) -> dict:
    return {
        source: {target: status.to_dict() for target, status in targets.items()}
        for source, targets in snapshot.items()
    }


class ObserverApi:
    """aiohttp application wired to a registry, a result store and a report generator."""

    def __init__(
        self,
        registry: LivenessRegistry,
        store: ResultStore,
        reports: ReportGenerator,
        logger: logging.Logger | None = None,
    ):
        self._registry = registry
        self._store = store
        self._reports = reports
        self._logger = logger or logging.getLogger("netcheck.api")
        self.app = web.Application(middlewares=[self._error_middleware])
        self._setup_routes()

    def _setup_routes(self):
        r = self.app.router
        r.add_post(f"{API_PREFIX}/heartbeat", self._post_heartbeat)
        r.add_post(f"{API_PREFIX}/test-results/hosts", self._post_host_results)
        r.add_post(f"{API_PREFIX}/test-results/pods", self._post_pod_results)
        r.add_post(f"{API_PREFIX}/test-results/service", self._post_service_result)
        r.add_get(f"{API_PREFIX}/hosts", self._get_hosts)
        r.add_get(f"{API_PREFIX}/pods", self._get_pods)
        r.add_get(f"{API_PREFIX}/test-results/hosts", self._get_host_results)
        r.add_get(f"{API_PREFIX}/test-results/pods", self._get_pod_results)
        r.add_get(f"{API_PREFIX}/test-results/service", self._get_service_results)
        r.add_get(f"{API_PREFIX}/clients/count", self._get_client_count)
        r.add_get(f"{API_PREFIX}/clients/{{name}}", self._get_client)
        r.add_get(f"{API_PREFIX}/results", self._get_all_results)
        r.add_get(f"{API_PREFIX}/report", self._get_report)
        r.add_get(f"{API_PREFIX}/health", self._get_health)

    @web.middleware
    async def _error_middleware(self, request: web.Request, handler):
        try:
            return await handler(request)
        except ValidationError as e:
            return error_response(400, "INVALID_REQUEST", "Invalid request data", str(e))
        except NotFoundError as e:
            return error_response(404, "NOT_FOUND", "Not found", str(e))
        except web.HTTPException:
            raise
        except Exception as e:
            self._logger.exception(f"{request.method} {request.path} failed")
            return error_response(500, "INTERNAL_ERROR", "Internal error", str(e))

    async def _read_json(self, request: web.Request) -> dict:
        try:
            body = await request.json()
        except ValueError as e:
            raise ValidationError(f"Body is not valid JSON: {e}") from e
        if not isinstance(body, dict):
            raise ValidationError("Body must be a JSON object")
        return body

    async def _read_batch(self, request: web.Request) -> tuple[str, list[ConnectivityResult]]:
        body = await self._read_json(request)
        source = body.get("source_ip") or ""
        raw = body.get("results")
        if not source or raw is None:
            raise ValidationError("source_ip and results are required")
        if not isinstance(raw, list):
            raise ValidationError("results must be a list")
        return source, [ConnectivityResult.from_dict(item) for item in raw]

    async def _post_heartbeat(self, request: web.Request) -> web.Response:
        descriptor = AgentDescriptor.from_dict(await self._read_json(request))
        version = self._registry.upsert(descriptor.agent_name, descriptor)
        self._logger.debug(
            f"Heartbeat from {descriptor.agent_name}",
            extra={"fields": {"version": version, "node_ip": descriptor.node_address, "pod_ip": descriptor.agent_address}},
        )
        return web.json_response({"status": "success", "version": version})

    async def _post_host_results(self, request: web.Request) -> web.Response:
        source, results = await self._read_batch(request)
        self._store.save_host(source, results)
        self._logger.info(f"Saved {len(results)} host results from {source}")
        return web.json_response({"status": "success"})

    async def _post_pod_results(self, request: web.Request) -> web.Response:
        source, results = await self._read_batch(request)
        self._store.save_pod(source, results)
        self._logger.info(f"Saved {len(results)} pod results from {source}")
        return web.json_response({"status": "success"})

    async def _post_service_result(self, request: web.Request) -> web.Response:
        body = await self._read_json(request)
        raw = body.get("result")
        result = ConnectivityResult.from_dict(raw) if raw is not None else None
        self._store.save_service(body.get("source_ip") or "", result)
        return web.json_response({"status": "success"})

    async def _get_hosts(self, request: web.Request) -> web.Response:
        hosts = self._registry.host_addresses()
        return web.json_response({"host_ips": hosts, "count": len(hosts)})

    async def _get_pods(self, request: web.Request) -> web.Response:
        pods = self._registry.pod_addresses()
        return web.json_response({"pod_ips": pods, "count": len(pods)})

    async def _get_host_results(self, request: web.Request) -> web.Response:
        return web.json_response({"results": _snapshot_to_dict(self._store.get_host())})

    async def _get_pod_results(self, request: web.Request) -> web.Response:
        return web.json_response({"results": _snapshot_to_dict(self._store.get_pod())})

    async def _get_service_results(self, request: web.Request) -> web.Response:
        services = {source: r.to_dict() for source, r in self._store.get_service().items()}
        return web.json_response({"results": services})

    async def _get_client_count(self, request: web.Request) -> web.Response:
        return web.json_response({"active_client_count": self._registry.active_count()})

    async def _get_client(self, request: web.Request) -> web.Response:
        record = self._registry.get(request.match_info["name"])
        return web.json_response(record.to_dict())

    async def _get_all_results(self, request: web.Request) -> web.Response:
        return web.json_response({
            "active_client_count": self._registry.active_count(),
            "host_ips": self._registry.host_addresses(),
            "pod_ips": self._registry.pod_addresses(),
            "host_test_results": _snapshot_to_dict(self._store.get_host()),
            "pod_test_results": _snapshot_to_dict(self._store.get_pod()),
            "service_test_results": {s: r.to_dict() for s, r in self._store.get_service().items()},
        })

    async def _get_report(self, request: web.Request) -> web.Response:
        return web.json_response(self._reports.generate().to_dict())

    async def _get_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "healthy"})
