"""Data model shared by agents and the observer.

Timestamps are epoch seconds and durations are seconds, both as floats,
so every type round-trips through JSON without custom encoders.
"""

import time
from dataclasses import dataclass, field
from typing import Any

from netcheck.shared.errors import ValidationError

REACHABLE = "reachable"
UNREACHABLE = "unreachable"
PORT_OPEN = "open"
PORT_CLOSED = "closed"
PORT_UNKNOWN = "unknown"


@dataclass
class AgentDescriptor:
    agent_name: str
    node_address: str
    agent_address: str
    namespace: str = ""
    observed_at: float = field(default_factory=time.time)

    def validate(self):
        """Raise ValidationError if a required field is empty."""
        missing = [
            name
            for name in ("agent_name", "node_address", "agent_address")
            if not getattr(self, name)
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "namespace": self.namespace,
            "node_ip": self.node_address,
            "pod_ip": self.agent_address,
            "pod_name": self.agent_name,
            "timestamp": self.observed_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AgentDescriptor":
        if not isinstance(data, dict):
            raise ValidationError("Descriptor must be a JSON object")
        try:
            observed_at = float(data.get("timestamp") or time.time())
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Malformed timestamp: {e}") from e
        return cls(
            agent_name=data.get("pod_name") or "",
            node_address=data.get("node_ip") or "",
            agent_address=data.get("pod_ip") or "",
            namespace=data.get("namespace") or "",
            observed_at=observed_at,
        )


@dataclass
class LivenessRecord:
    descriptor: AgentDescriptor
    version: int
    last_heartbeat_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_info": self.descriptor.to_dict(),
            "version": self.version,
            "last_heartbeat": self.last_heartbeat_at,
        }


@dataclass
class ReducedTestStatus:
    liveness_status: str
    port_status: str
    test_duration: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "ping": self.liveness_status,
            "port_status": self.port_status,
            "test_duration": self.test_duration,
        }


@dataclass
class ConnectivityResult:
    source_address: str
    target_address: str
    liveness_status: str = UNREACHABLE
    port_status: dict[int, str] = field(default_factory=dict)
    latency: float = 0.0
    test_duration: float = 0.0
    observed_at: float = field(default_factory=time.time)

    @property
    def reachable(self) -> bool:
        return self.liveness_status == REACHABLE

    def reduce(self) -> ReducedTestStatus:
        """Project onto a single port: the first one encountered."""
        port_status = next(iter(self.port_status.values()), PORT_UNKNOWN)
        return ReducedTestStatus(
            liveness_status=self.liveness_status,
            port_status=port_status,
            test_duration=self.test_duration,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_ip": self.source_address,
            "target_ip": self.target_address,
            "ping_status": self.liveness_status,
            "port_status": {str(port): status for port, status in self.port_status.items()},
            "latency": self.latency,
            "test_duration": self.test_duration,
            "timestamp": self.observed_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConnectivityResult":
        if not isinstance(data, dict):
            raise ValidationError("Result must be a JSON object")
        try:
            ports = {int(port): status for port, status in (data.get("port_status") or {}).items()}
            return cls(
                source_address=data.get("source_ip") or "",
                target_address=data.get("target_ip") or "",
                liveness_status=data.get("ping_status") or UNREACHABLE,
                port_status=ports,
                latency=float(data.get("latency") or 0.0),
                test_duration=float(data.get("test_duration") or 0.0),
                observed_at=float(data.get("timestamp") or time.time()),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ValidationError(f"Malformed result: {e}") from e


@dataclass
class ProbeSummary:
    total_tests: int = 0
    successful_tests: int = 0
    failed_tests: int = 0
    success_rate: float = 0.0
    avg_test_duration: float = 0.0
    total_test_duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_tests": self.total_tests,
            "successful_tests": self.successful_tests,
            "failed_tests": self.failed_tests,
            "success_rate": self.success_rate,
            "avg_test_duration": self.avg_test_duration,
            "total_test_duration": self.total_test_duration,
        }


@dataclass
class ServiceProbeSummary:
    service_name: str = ""
    total_tests: int = 0
    successful_tests: int = 0
    failed_tests: int = 0
    success_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_name": self.service_name,
            "total_tests": self.total_tests,
            "successful_tests": self.successful_tests,
            "failed_tests": self.failed_tests,
            "success_rate": self.success_rate,
        }


@dataclass
class NetworkReport:
    generated_at: float
    active_agent_count: int = 0
    host_addresses: list[str] = field(default_factory=list)
    pod_addresses: list[str] = field(default_factory=list)
    host_summary: ProbeSummary = field(default_factory=ProbeSummary)
    pod_summary: ProbeSummary = field(default_factory=ProbeSummary)
    service_summary: ServiceProbeSummary = field(default_factory=ServiceProbeSummary)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.generated_at,
            "active_client_count": self.active_agent_count,
            "host_ips": list(self.host_addresses),
            "pod_ips": list(self.pod_addresses),
            "host_test_summary": self.host_summary.to_dict(),
            "pod_test_summary": self.pod_summary.to_dict(),
            "service_test_summary": self.service_summary.to_dict(),
        }
