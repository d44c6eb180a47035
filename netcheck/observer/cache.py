"""In-memory key/value cache with per-entry TTL expiration.

Entries carry an ``expires_at`` deadline. Reads treat an entry past its
deadline as absent straight away; a background sweep removes it later.
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Any

NO_EXPIRY = -1.0


@dataclass
class _Entry:
    value: Any
    expires_at: float | None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class ExpiringCache:
    """Thread-safe in-memory cache with per-entry TTL and a sweep task."""

    def __init__(self, default_ttl: float = 15.0, sweep_interval: float = 30.0, clock=time.monotonic):
        self._default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.RLock()

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def put(self, key: str, value: Any, ttl: float | None = None):
        """Store value. ``ttl=None`` uses the default, ``NO_EXPIRY`` never expires."""
        ttl = self._default_ttl if ttl is None else ttl
        expires_at = None if ttl == NO_EXPIRY else self._clock() + ttl
        with self._lock:
            self._entries[key] = _Entry(value, expires_at)

    def get(self, key: str) -> Any | None:
        """Get value by key. Returns None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.expired(self._clock()):
                return None
            return entry.value

    def delete(self, key: str):
        with self._lock:
            self._entries.pop(key, None)

    def items(self, prefix: str = "") -> dict[str, Any]:
        """Snapshot of live entries whose key starts with prefix."""
        now = self._clock()
        with self._lock:
            return {
                key: entry.value
                for key, entry in self._entries.items()
                if key.startswith(prefix) and not entry.expired(now)
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear_expired(self) -> int:
        """Remove all expired entries. Returns count removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    async def run_sweeper(self, stop_event: asyncio.Event):
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._sweep_interval)
            except asyncio.TimeoutError:
                self.clear_expired()
