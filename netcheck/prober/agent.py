"""Prober agent: heartbeats, scheduled connectivity tests and the pod-port listener."""

import asyncio
import functools
from typing import Any

from netcheck.prober.collector import collect_descriptor
from netcheck.prober.engine import ProbeEngine
from netcheck.prober.heartbeat import HeartbeatReporter
from netcheck.prober.listener import AgentListener
from netcheck.prober.scheduler import Scheduler
from netcheck.shared.api_client import DirectoryClient
from netcheck.shared.base_service import BaseService
from netcheck.shared.config import load_prober_config


class ProbeAgent(BaseService):
    """One member of the probing fleet."""

    def __init__(
        self,
        config_path: str | None = None,
        config: dict[str, Any] | None = None,
        environ: dict[str, str] | None = None,
    ):
        if config is None:
            config = load_prober_config(config_path, environ)
        super().__init__(name="prober", config=config)

        self.descriptor = collect_descriptor(environ)
        source = self.descriptor.agent_address
        self.logger.info(
            f"Agent {self.descriptor.agent_name} on node {self.descriptor.node_address}",
            extra={"fields": {"config": self.config}},
        )

        self.directory = DirectoryClient(self.config["server_url"], source, logger=self.logger)
        self.engine = ProbeEngine(
            source_address=source,
            host_port=self.config.get("host_port", 22),
            pod_port=self.config.get("pod_port", 6100),
            service_port=self.config.get("service_port", 80),
            max_concurrency=self.config.get("max_concurrency", 10),
            logger=self.logger,
        )
        self.heartbeat = HeartbeatReporter(
            self.directory,
            functools.partial(collect_descriptor, environ),
            interval=self.config.get("heartbeat_interval_seconds", 5),
            logger=self.logger,
        )
        self.scheduler = Scheduler(
            self.directory,
            self.engine,
            service_name=self.config.get("service_name") or "",
            interval=self.config.get("test_interval_seconds", 60),
            logger=self.logger,
        )
        self.listener = AgentListener(self.descriptor.agent_name, logger=self.logger)

    async def run(self):
        try:
            await self.listener.start(self.engine.pod_port)
        except OSError as e:
            self.logger.error(f"Agent listener failed to start: {e}")

        await asyncio.gather(
            self.heartbeat.run(self.stop_event),
            self.scheduler.run(self.stop_event),
        )

    async def shutdown(self):
        await self.listener.stop()
