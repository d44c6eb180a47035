"""Redis pub/sub channel for broadcasting observer reports."""

import json
import time
from typing import Any

import redis.asyncio as aioredis

REPORT_CHANNEL = "netcheck/report"


class ReportBus:
    """Publish-only Redis pub/sub wrapper with a JSON envelope.

    The observer publishes each generated network report; dashboards or
    alerting hooks subscribe to the channel with any Redis client.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379", sender: str = "observer"):
        self._redis_url = redis_url
        self._sender = sender
        self._publisher = None

    async def connect(self):
        self._publisher = aioredis.from_url(self._redis_url)
        await self._publisher.ping()

    async def disconnect(self):
        if self._publisher:
            await self._publisher.aclose()
            self._publisher = None

    async def publish(self, channel: str, payload: dict[str, Any]) -> int:
        """Publish payload on channel. Returns the number of receivers."""
        if self._publisher is None:
            raise RuntimeError("ReportBus is not connected")
        envelope = {
            "from": self._sender,
            "channel": channel,
            "published_at": time.time(),
            "payload": payload,
        }
        return await self._publisher.publish(channel, json.dumps(envelope))
