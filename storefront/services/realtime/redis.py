"""
Redis pub/sub order feed used when ENV_MODE is staging or production.

Lets every API worker process see order changes made by any other.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from storefront.core.config import get_settings
from storefront.services.realtime.base import (
    BaseOrderFeed,
    OrderChangeEvent,
    OrderEventType,
)

logger = logging.getLogger(__name__)


class RedisOrderFeed(BaseOrderFeed):
    """Order changes over a Redis channel."""

    def __init__(self, url: Optional[str] = None, channel: Optional[str] = None):
        settings = get_settings()
        self._client = aioredis.from_url(url or settings.redis_url, decode_responses=True)
        self._channel = channel or settings.order_feed_channel
        logger.info(f"RedisOrderFeed initialized (channel={self._channel})")

    @property
    def provider_name(self) -> str:
        return "redis"

    async def publish(self, event: OrderChangeEvent) -> None:
        receivers = await self._client.publish(self._channel, event.to_json())
        logger.debug(f"Order event {event.event_type.value} → {receivers} receiver(s)")

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[AsyncIterator[OrderChangeEvent]]:
        pubsub = self._client.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            yield self._listen(pubsub)
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()

    @staticmethod
    async def _listen(pubsub) -> AsyncIterator[OrderChangeEvent]:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                yield OrderChangeEvent.from_json(message["data"])
            except ValueError as e:
                # Still a change signal
                logger.warning(f"{e}; treating as a generic update")
                yield OrderChangeEvent(OrderEventType.UPDATE)

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error(f"Redis order feed health check failed: {e}")
            return False
