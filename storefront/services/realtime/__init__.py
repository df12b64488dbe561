"""
Order Feed Factory

    - ENV_MODE=development → MemoryOrderFeed (single process)
    - ENV_MODE=staging/production → RedisOrderFeed (pub/sub channel)
"""

import logging
from functools import lru_cache
from typing import Optional

from redis.exceptions import RedisError

from storefront.core.config import get_settings
from storefront.services.realtime.base import (
    BaseOrderFeed,
    OrderChangeEvent,
    OrderEventType,
)
from storefront.services.realtime.memory import MemoryOrderFeed
from storefront.services.realtime.redis import RedisOrderFeed

logger = logging.getLogger(__name__)


@lru_cache()
def get_order_feed() -> BaseOrderFeed:
    """Get the configured (cached) order feed instance."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Order Feed: Using MemoryOrderFeed (development mode)")
        return MemoryOrderFeed()
    else:
        logger.info(f"Order Feed: Using RedisOrderFeed ({settings.env_mode.value} mode)")
        return RedisOrderFeed()


def reset_order_feed() -> None:
    """Clear the cached feed instance."""
    get_order_feed.cache_clear()


async def notify_order_change(event_type: OrderEventType, order_id: Optional[int] = None) -> None:
    """
    Publish an order change after the write has committed.

    A failed publish is logged; the write itself already succeeded and
    open admin views catch up on their next re-fetch.
    """
    try:
        await get_order_feed().publish(OrderChangeEvent(event_type, order_id))
    except RedisError as e:
        logger.error(f"Could not publish order #{order_id} {event_type.value}: {e}")


async def revoke_admin_session(session_token: str) -> None:
    """Tell every open order feed socket of this admin session to close."""
    try:
        await get_order_feed().publish(
            OrderChangeEvent(OrderEventType.SIGN_OUT, session_token=session_token)
        )
    except RedisError as e:
        logger.error(f"Could not publish admin sign-out: {e}")


__all__ = [
    "get_order_feed",
    "reset_order_feed",
    "notify_order_change",
    "revoke_admin_session",
    "BaseOrderFeed",
    "OrderChangeEvent",
    "OrderEventType",
]
