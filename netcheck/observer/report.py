"""Network connectivity reports built from the registry and result store."""

import asyncio
import logging
import time
from datetime import datetime

from netcheck.observer.registry import LivenessRegistry
from netcheck.observer.results import HostSnapshot, ResultStore, ServiceSnapshot
from netcheck.shared.base_service import wait_or_stop
from netcheck.shared.bus import REPORT_CHANNEL
from netcheck.shared.models import (
    PORT_OPEN,
    REACHABLE,
    NetworkReport,
    ProbeSummary,
    ServiceProbeSummary,
)


def summarize_tests(snapshot: HostSnapshot) -> ProbeSummary:
    """A test passes when the target is reachable and its port is open."""
    summary = ProbeSummary()
    for targets in snapshot.values():
        for status in targets.values():
            summary.total_tests += 1
            summary.total_test_duration += status.test_duration
            if status.liveness_status == REACHABLE and status.port_status == PORT_OPEN:
                summary.successful_tests += 1
            else:
                summary.failed_tests += 1

    if summary.total_tests:
        summary.success_rate = summary.successful_tests / summary.total_tests * 100
        summary.avg_test_duration = summary.total_test_duration / summary.total_tests
    return summary


def summarize_service(snapshot: ServiceSnapshot) -> ServiceProbeSummary:
    """A service test passes when the resolved target is reachable."""
    summary = ServiceProbeSummary()
    for result in snapshot.values():
        summary.total_tests += 1
        if not summary.service_name and result.target_address:
            summary.service_name = result.target_address
        if result.liveness_status == REACHABLE:
            summary.successful_tests += 1
        else:
            summary.failed_tests += 1

    if summary.total_tests:
        summary.success_rate = summary.successful_tests / summary.total_tests * 100
    return summary


def _render_summary(title: str, summary: ProbeSummary) -> list[str]:
    lines = [
        f"{title}:",
        f"  total: {summary.total_tests}",
        f"  passed: {summary.successful_tests}",
        f"  failed: {summary.failed_tests}",
        f"  success rate: {summary.success_rate:.2f}%",
    ]
    if summary.total_tests:
        lines.append(f"  avg duration: {summary.avg_test_duration:.3f}s")
        lines.append(f"  total duration: {summary.total_test_duration:.3f}s")
    return lines


def _render_addresses(title: str, addresses: list[str]) -> list[str]:
    lines = [f"{title} ({len(addresses)}):"]
    if not addresses:
        return lines + ["  none"]
    return lines + [f"  {i}. {address}" for i, address in enumerate(addresses, 1)]


def render_text(report: NetworkReport) -> str:
    """Human-readable rendering of a report."""
    rule = "=" * 80
    generated = datetime.fromtimestamp(report.generated_at).strftime("%Y-%m-%d %H:%M:%S")
    lines = [rule, "Network connectivity report", rule, f"Generated: {generated}", "-" * 80]
    lines.append(f"Active agents: {report.active_agent_count}")
    lines += [""] + _render_addresses("Host addresses", report.host_addresses)
    lines += [""] + _render_addresses("Pod addresses", report.pod_addresses)
    lines += [""] + _render_summary("Host connectivity", report.host_summary)
    lines += [""] + _render_summary("Pod connectivity", report.pod_summary)

    service = report.service_summary
    if service.total_tests:
        lines += [
            "",
            "Service connectivity:",
            f"  service: {service.service_name}",
            f"  total: {service.total_tests}",
            f"  passed: {service.successful_tests}",
            f"  failed: {service.failed_tests}",
            f"  success rate: {service.success_rate:.2f}%",
        ]
    lines.append(rule)
    return "\n".join(lines)


class ReportGenerator:
    """Build network reports and emit them on an interval."""

    def __init__(
        self,
        registry: LivenessRegistry,
        store: ResultStore,
        bus=None,
        logger: logging.Logger | None = None,
    ):
        self._registry = registry
        self._store = store
        self.bus = bus
        self._logger = logger or logging.getLogger("netcheck.report")

    def generate(self) -> NetworkReport:
        return NetworkReport(
            generated_at=time.time(),
            active_agent_count=self._registry.active_count(),
            host_addresses=self._registry.host_addresses(),
            pod_addresses=self._registry.pod_addresses(),
            host_summary=summarize_tests(self._store.get_host()),
            pod_summary=summarize_tests(self._store.get_pod()),
            service_summary=summarize_service(self._store.get_service()),
        )

    async def emit(self) -> NetworkReport:
        """Generate one report, log it and publish it if a bus is configured."""
        report = self.generate()
        self._logger.info(render_text(report), extra={"fields": report.to_dict()})
        if self.bus is not None:
            try:
                await self.bus.publish(REPORT_CHANNEL, report.to_dict())
            except Exception as e:
                self._logger.error(f"Publishing report failed: {e}")
        return report

    async def run(self, stop_event: asyncio.Event, interval: float = 300.0):
        self._logger.info(f"Report loop started, interval {interval}s")
        while not await wait_or_stop(stop_event, interval):
            try:
                await self.emit()
            except Exception as e:
                self._logger.error(f"Report generation failed: {e}")
        self._logger.info("Report loop stopped")
