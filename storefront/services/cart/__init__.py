"""
Cart Storage Factory

Returns the cart storage backend for the current ENV_MODE:
    - ENV_MODE=development → MemoryCartStorage
    - ENV_MODE=staging/production → RedisCartStorage

Usage:
    from storefront.services.cart import get_cart_storage, CartAggregator

    cart = await CartAggregator.load(get_cart_storage(), key)
"""

import logging
from functools import lru_cache

from storefront.core.config import get_settings
from storefront.services.cart.aggregator import (
    CartAggregator,
    CartLineNotFound,
)
from storefront.services.cart.base import BaseCartStorage
from storefront.services.cart.memory import MemoryCartStorage
from storefront.services.cart.redis import RedisCartStorage
from storefront.services.cart.state import CartLine, CartState

logger = logging.getLogger(__name__)


@lru_cache()
def get_cart_storage() -> BaseCartStorage:
    """Get the configured (cached) cart storage instance."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Cart Storage: Using MemoryCartStorage (development mode)")
        return MemoryCartStorage()
    else:
        logger.info(
            f"Cart Storage: Using RedisCartStorage "
            f"({settings.env_mode.value} mode)"
        )
        return RedisCartStorage()


def reset_cart_storage() -> None:
    """Clear the cached storage instance."""
    get_cart_storage.cache_clear()


__all__ = [
    "get_cart_storage",
    "reset_cart_storage",
    "BaseCartStorage",
    "CartAggregator",
    "CartLine",
    "CartLineNotFound",
    "CartState",
]
