"""
In-memory cart storage used in development mode and tests.

Carts are kept as serialized strings so the load path (and its handling of
malformed data) is identical to the Redis backend.
"""

import logging
from typing import Optional

from storefront.services.cart.base import BaseCartStorage

logger = logging.getLogger(__name__)


class MemoryCartStorage(BaseCartStorage):
    """Process-local dictionary of serialized carts."""

    def __init__(self):
        self._carts: dict[str, str] = {}
        logger.info("MemoryCartStorage initialized")

    @property
    def provider_name(self) -> str:
        return "memory"

    async def load(self, key: str) -> Optional[str]:
        return self._carts.get(key)

    async def save(self, key: str, payload: str) -> None:
        self._carts[key] = payload

    async def delete(self, key: str) -> None:
        self._carts.pop(key, None)

    async def health_check(self) -> bool:
        return True
