"""
Redis cart storage used when ENV_MODE is staging or production.

Each cart is a single string key with a sliding expiry, refreshed on every
save.
"""

import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from storefront.core.config import get_settings
from storefront.services.cart.base import BaseCartStorage

logger = logging.getLogger(__name__)


class RedisCartStorage(BaseCartStorage):
    """Serialized carts in Redis."""

    def __init__(self, url: Optional[str] = None, ttl_seconds: Optional[int] = None):
        settings = get_settings()
        self._client = aioredis.from_url(url or settings.redis_url, decode_responses=True)
        self._ttl = ttl_seconds or settings.cart_ttl_seconds
        logger.info(f"RedisCartStorage initialized (ttl={self._ttl}s)")

    @property
    def provider_name(self) -> str:
        return "redis"

    async def load(self, key: str) -> Optional[str]:
        return await self._client.get(key)

    async def save(self, key: str, payload: str) -> None:
        await self._client.set(key, payload, ex=self._ttl)

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error(f"Redis cart storage health check failed: {e}")
            return False
