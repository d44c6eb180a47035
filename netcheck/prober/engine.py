"""Connectivity probing for netcheck agents.

Each target gets two independent checks, a liveness ping and a TCP
connect to one port. Network failures never raise: they are recorded as
``unreachable`` / ``closed``. Only malformed calls raise ValidationError.
"""

import asyncio
import contextlib
import ipaddress
import logging
import socket
import sys
import time
from typing import Iterable

from netcheck.shared.errors import ValidationError
from netcheck.shared.models import (
    PORT_CLOSED,
    PORT_OPEN,
    REACHABLE,
    UNREACHABLE,
    ConnectivityResult,
)

DEFAULT_HOST_PORT = 22
DEFAULT_POD_PORT = 6100
DEFAULT_SERVICE_PORT = 80
DEFAULT_MAX_CONCURRENCY = 10
DEFAULT_PING_COUNT = 3
DEFAULT_PING_TIMEOUT = 10.0
DEFAULT_PORT_TIMEOUT = 5.0
DNS_TIMEOUT = 5.0


def _positive(value, default):
    return value if value and value > 0 else default


def _is_address(target: str) -> bool:
    try:
        ipaddress.ip_address(target)
    except ValueError:
        return False
    return True


def _ping_command(target: str, count: int) -> list[str]:
    if sys.platform == "win32":
        return ["ping", "-n", str(count), "-w", "5000", target]
    return ["ping", "-c", str(count), "-W", "5", target]


class ProbeEngine:
    """Runs ping and port checks against targets with bounded parallelism."""

    def __init__(
        self,
        source_address: str,
        host_port: int = DEFAULT_HOST_PORT,
        pod_port: int = DEFAULT_POD_PORT,
        service_port: int = DEFAULT_SERVICE_PORT,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        ping_count: int = DEFAULT_PING_COUNT,
        ping_timeout: float = DEFAULT_PING_TIMEOUT,
        port_timeout: float = DEFAULT_PORT_TIMEOUT,
        logger: logging.Logger | None = None,
    ):
        if not source_address:
            raise ValidationError("source_address must not be empty")
        self.source_address = source_address
        self.host_port = _positive(host_port, DEFAULT_HOST_PORT)
        self.pod_port = _positive(pod_port, DEFAULT_POD_PORT)
        self.service_port = _positive(service_port, DEFAULT_SERVICE_PORT)
        self.max_concurrency = _positive(max_concurrency, DEFAULT_MAX_CONCURRENCY)
        self.ping_count = _positive(ping_count, DEFAULT_PING_COUNT)
        self.ping_timeout = _positive(ping_timeout, DEFAULT_PING_TIMEOUT)
        self.port_timeout = _positive(port_timeout, DEFAULT_PORT_TIMEOUT)
        self._logger = logger or logging.getLogger("netcheck.engine")

    async def ping_test(self, target: str, count: int | None = None) -> tuple[bool, float]:
        """Ping target ``count`` times.

        Returns (reachable, latency) where latency is the wall time of the
        whole run divided by ``count``, or 0.0 when unreachable.
        """
        count = _positive(count, self.ping_count)
        proc = None
        start = time.monotonic()
        try:
            async with asyncio.timeout(self.ping_timeout):
                proc = await asyncio.create_subprocess_exec(
                    *_ping_command(target, count),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.STDOUT,
                )
                output, _ = await proc.communicate()
        except TimeoutError:
            if proc is not None and proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
            self._logger.debug(f"Ping to {target} timed out after {self.ping_timeout}s")
            return False, 0.0
        except OSError as e:
            self._logger.debug(f"Ping to {target} could not run: {e}")
            return False, 0.0

        elapsed = time.monotonic() - start
        if proc.returncode != 0:
            self._logger.debug(
                f"Ping to {target} failed",
                extra={"fields": {"target": target, "output": output.decode(errors="replace")[-200:]}},
            )
            return False, 0.0
        return True, elapsed / count

    async def port_test(self, target: str, port: int, timeout: float | None = None) -> bool:
        """TCP connect-and-close. True if the port accepted the connection."""
        timeout = _positive(timeout, self.port_timeout)
        try:
            async with asyncio.timeout(timeout):
                _, writer = await asyncio.open_connection(target, port)
        except (OSError, TimeoutError) as e:
            self._logger.debug(f"Port {target}:{port} closed: {e!r}")
            return False

        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        return True

    async def test_host_connectivity(self, addresses: Iterable[str]) -> list[ConnectivityResult]:
        return await self.test_reachability(addresses, self.host_port)

    async def test_pod_connectivity(self, addresses: Iterable[str]) -> list[ConnectivityResult]:
        return await self.test_reachability(addresses, self.pod_port)

    async def test_reachability(self, targets: Iterable[str], port: int) -> list[ConnectivityResult]:
        """Probe every target except ourselves, at most max_concurrency at a time.

        Targets must be IP literals; anything else is logged and skipped.

        Results come back in completion order, not input order.
        """
        if not isinstance(port, int) or not 0 < port <= 65535:
            raise ValidationError(f"Invalid port: {port!r}")

        pending = []
        for target in dict.fromkeys(targets):
            if not target or target == self.source_address:
                continue
            if not _is_address(target):
                self._logger.warning(f"Skipping target {target!r}: not an IP address")
                continue
            pending.append(target)
        if not pending:
            self._logger.info(f"No targets to probe on port {port}")
            return []

        self._logger.info(
            f"Probing {len(pending)} targets on port {port}",
            extra={"fields": {"targets": len(pending), "port": port, "max_concurrency": self.max_concurrency}},
        )
        semaphore = asyncio.Semaphore(self.max_concurrency)
        results: list[ConnectivityResult] = []

        async def probe(target: str):
            async with semaphore:
                result = await self._test_single_target(target, port)
            results.append(result)

        await asyncio.gather(*(probe(t) for t in pending))

        reachable = sum(1 for r in results if r.reachable)
        self._logger.info(f"Probed {len(results)} targets on port {port}, {reachable} reachable")
        return results

    async def test_service_connectivity(self, service_name: str) -> ConnectivityResult:
        """Resolve a service name and probe its first address on service_port.

        A name that does not resolve yields an ``unreachable`` result carrying
        the original name as target, not an error.
        """
        if not service_name:
            raise ValidationError("service_name must not be empty")

        start = time.monotonic()
        addresses = await self._resolve(service_name)
        if not addresses:
            self._logger.warning(f"Service {service_name} did not resolve")
            return ConnectivityResult(
                source_address=self.source_address,
                target_address=service_name,
                liveness_status=UNREACHABLE,
                test_duration=time.monotonic() - start,
            )

        self._logger.info(
            f"Service {service_name} resolved to {addresses[0]}",
            extra={"fields": {"service": service_name, "addresses": addresses}},
        )
        result = await self._test_single_target(addresses[0], self.service_port)
        result.test_duration = time.monotonic() - start
        return result

    async def _resolve(self, name: str) -> list[str]:
        loop = asyncio.get_running_loop()
        try:
            async with asyncio.timeout(DNS_TIMEOUT):
                infos = await loop.getaddrinfo(name, None, type=socket.SOCK_STREAM)
        except (OSError, TimeoutError, UnicodeError) as e:
            self._logger.debug(f"Resolving {name} failed: {e!r}")
            return []
        return list(dict.fromkeys(info[4][0] for info in infos))

    async def _test_single_target(self, target: str, port: int) -> ConnectivityResult:
        observed_at = time.time()
        start = time.monotonic()

        reachable, latency = await self.ping_test(target, self.ping_count)
        port_open = await self.port_test(target, port, self.port_timeout)

        result = ConnectivityResult(
            source_address=self.source_address,
            target_address=target,
            liveness_status=REACHABLE if reachable else UNREACHABLE,
            port_status={port: PORT_OPEN if port_open else PORT_CLOSED},
            latency=latency if reachable else 0.0,
            test_duration=time.monotonic() - start,
            observed_at=observed_at,
        )
        self._logger.debug(
            f"Probed {target}",
            extra={"fields": {
                "target": target,
                "ping": result.liveness_status,
                "port": result.port_status[port],
                "duration": round(result.test_duration, 3),
            }},
        )
        return result
