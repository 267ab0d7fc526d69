"""Real-time event publishing over Redis pub/sub.

Socket gateways subscribe to the topics (e.g. ``drivers:available``) and
fan events out to connected clients. Delivery is best-effort: callers
decide whether a publish failure matters.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)


class RealtimePublisher:
    """Publishes structured events to Redis channels."""

    def __init__(self, redis_url: str | None = None) -> None:
        self.redis_url = redis_url or settings.redis_url
        self._redis: redis.Redis | None = None

    async def get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    @staticmethod
    def encode(event: str, payload: dict[str, Any]) -> str:
        return json.dumps(
            {
                "event": event,
                "data": payload,
                "sentAt": datetime.now(UTC).isoformat(),
            },
            default=str,
        )

    async def publish(self, topic: str, event: str, payload: dict[str, Any]) -> int:
        """Publish one event.

        Returns:
            int: Number of subscribers that received it
        """
        client = await self.get_redis()
        receivers = await client.publish(topic, self.encode(event, payload))
        logger.debug(f"Published {event} to {topic} ({receivers} receivers)")
        return receivers

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


# Singleton instance
realtime_publisher = RealtimePublisher()
