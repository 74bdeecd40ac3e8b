"""Realtime pub/sub for chat messages and user notifications.

Subscribers get an ``asyncio.Queue`` per topic. Topics are
``connection:<id>`` for a deal's chat and ``user:<id>`` for a user's bell.
With ``REALTIME_BACKEND=redis`` every event is also published to Redis so
other API workers can forward it to their own subscribers.

Delivery is best-effort and lasts only as long as the subscription: nothing
is replayed, and a publish failure is logged, never raised.
"""

import asyncio
import json
import uuid

import redis.asyncio as aioredis
import structlog

from dealdesk.core.config import settings

logger = structlog.get_logger()


def connection_topic(connection_id: uuid.UUID) -> str:
    return f"connection:{connection_id}"


def user_topic(user_id: uuid.UUID) -> str:
    return f"user:{user_id}"


class Broker:
    """Manages live subscriptions per topic using asyncio.Queue."""

    def __init__(self, redis_url: str | None = None) -> None:
        self._subscribers: dict[str, list[asyncio.Queue]] = {}
        self._redis_url = redis_url
        self._redis: aioredis.Redis | None = None

    def subscribe(self, topic: str) -> asyncio.Queue:
        """Register a new subscriber queue for a topic."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.setdefault(topic, []).append(queue)
        logger.info("realtime_subscribed", topic=topic, total=len(self._subscribers[topic]))
        return queue

    def unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        if topic in self._subscribers:
            try:
                self._subscribers[topic].remove(queue)
            except ValueError:
                pass
            if not self._subscribers[topic]:
                del self._subscribers[topic]
        logger.info("realtime_unsubscribed", topic=topic)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    async def publish(self, topic: str, event: dict) -> None:
        """Push an event to every local subscriber, then to Redis if enabled."""
        for queue in self._subscribers.get(topic, []):
            queue.put_nowait(event)

        if self._redis_url is None:
            return
        try:
            if self._redis is None:
                self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
            await self._redis.publish(topic, json.dumps(event, default=str))
        except Exception as exc:  # noqa: BLE001
            logger.warning("realtime_publish_failed", topic=topic, error=str(exc))

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


# Module-level singleton
broker = Broker(settings.REDIS_URL if settings.REALTIME_BACKEND == "redis" else None)
