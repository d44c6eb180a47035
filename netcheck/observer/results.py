"""Latest connectivity results per reporting agent.

A submission replaces everything previously stored for that source;
targets missing from the new submission disappear. Snapshots never
expire on their own.
"""

import copy
import threading

from netcheck.shared.errors import ValidationError
from netcheck.shared.models import ConnectivityResult, ReducedTestStatus

HostSnapshot = dict[str, dict[str, ReducedTestStatus]]
PodSnapshot = dict[str, dict[str, ReducedTestStatus]]
ServiceSnapshot = dict[str, ConnectivityResult]


def reduce_results(results: list[ConnectivityResult]) -> dict[str, ReducedTestStatus]:
    """Index results by target, keeping one port status each."""
    return {r.target_address: r.reduce() for r in results if r.target_address}


class ResultStore:
    """Hold host, pod and service result snapshots keyed by source address."""

    def __init__(self):
        self._hosts: HostSnapshot = {}
        self._pods: PodSnapshot = {}
        self._services: ServiceSnapshot = {}
        self._host_lock = threading.Lock()
        self._pod_lock = threading.Lock()
        self._service_lock = threading.Lock()

    def save_host(self, source_address: str, results: list[ConnectivityResult]):
        _require_source(source_address)
        reduced = reduce_results(results or [])
        with self._host_lock:
            self._hosts[source_address] = reduced

    def save_pod(self, source_address: str, results: list[ConnectivityResult]):
        _require_source(source_address)
        reduced = reduce_results(results or [])
        with self._pod_lock:
            self._pods[source_address] = reduced

    def save_service(self, source_address: str, result: ConnectivityResult | None):
        _require_source(source_address)
        if result is None:
            raise ValidationError("Service result must not be empty")
        with self._service_lock:
            self._services[source_address] = copy.deepcopy(result)

    def get_host(self) -> HostSnapshot:
        with self._host_lock:
            return copy.deepcopy(self._hosts)

    def get_pod(self) -> PodSnapshot:
        with self._pod_lock:
            return copy.deepcopy(self._pods)

    def get_service(self) -> ServiceSnapshot:
        with self._service_lock:
            return copy.deepcopy(self._services)


def _require_source(source_address: str):
    if not source_address:
        raise ValidationError("source_address must not be empty")
