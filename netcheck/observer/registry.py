"""Liveness registry for netcheck agents.

Agents never deregister. Each heartbeat rewrites the agent's record with
a fresh TTL and stamps it with the next value of a single global version
counter; records that stop being refreshed expire out of the cache.
"""

import copy
import threading
import time

from netcheck.observer.cache import NO_EXPIRY, ExpiringCache
from netcheck.shared.errors import NotFoundError, ValidationError
from netcheck.shared.models import AgentDescriptor, LivenessRecord

AGENT_PREFIX = "check-pod:"
VERSION_KEY = "check-version"
NEAR_MATCH_WINDOW = 3


class LivenessRegistry:
    """Track agent heartbeats and estimate how many agents are active."""

    def __init__(self, cache: ExpiringCache | None = None, ttl: float | None = None):
        self._cache = cache if cache is not None else ExpiringCache()
        self._ttl = ttl
        self._version_lock = threading.Lock()

    def upsert(self, agent_name: str, descriptor: AgentDescriptor) -> int:
        """Record a heartbeat. Returns the new global version."""
        if not agent_name:
            raise ValidationError("agent_name must not be empty")
        if descriptor is None:
            raise ValidationError("descriptor must not be empty")
        descriptor.validate()

        with self._version_lock:
            version = self._read_version() + 1
            record = LivenessRecord(
                descriptor=descriptor,
                version=version,
                last_heartbeat_at=time.time(),
            )
            self._cache.put(AGENT_PREFIX + agent_name, record, ttl=self._ttl)
            self._cache.put(VERSION_KEY, version, ttl=NO_EXPIRY)
        return version

    def get(self, agent_name: str) -> LivenessRecord:
        value = self._cache.get(AGENT_PREFIX + agent_name)
        if value is None:
            raise NotFoundError(f"Agent not found: {agent_name}")
        if not isinstance(value, LivenessRecord):
            raise TypeError(f"Unexpected record type for {agent_name}: {type(value).__name__}")
        return copy.deepcopy(value)

    def list_all(self) -> dict[str, LivenessRecord]:
        """Snapshot of all non-expired records keyed by agent name."""
        return copy.deepcopy(self._live_records())

    def _live_records(self) -> dict[str, LivenessRecord]:
        return {
            key[len(AGENT_PREFIX):]: value
            for key, value in self._cache.items(AGENT_PREFIX).items()
            if isinstance(value, LivenessRecord)
        }

    def current_version(self) -> int:
        with self._version_lock:
            return self._read_version()

    def active_count(self) -> int:
        """Estimate active agents from version stamps.

        If more than half the live records carry the current version, that
        exact-match count is the answer. Otherwise count records within
        NEAR_MATCH_WINDOW versions of the current one.
        """
        current = self.current_version()
        records = self._live_records()
        if not records:
            return 0

        exact = 0
        near = 0
        for record in records.values():
            if record.version == current:
                exact += 1
            if abs(current - record.version) < NEAR_MATCH_WINDOW:
                near += 1

        if exact > len(records) // 2:
            return exact
        return near

    def host_addresses(self) -> list[str]:
        return sorted({r.descriptor.node_address for r in self._live_records().values() if r.descriptor.node_address})

    def pod_addresses(self) -> list[str]:
        return sorted({r.descriptor.agent_address for r in self._live_records().values() if r.descriptor.agent_address})

    def _read_version(self) -> int:
        value = self._cache.get(VERSION_KEY)
        if value is None:
            return 0
        if not isinstance(value, int):
            raise TypeError(f"Unexpected version type: {type(value).__name__}")
        return value
