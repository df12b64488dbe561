"""
Cart Storage Abstract Base Class

Defines where serialized carts live between requests. The storefront keeps
one key per browser session holding the JSON-encoded line sequence.

Design Pattern: Strategy Pattern
    - MemoryCartStorage for development and tests
    - RedisCartStorage for staging and production
"""

from abc import ABC, abstractmethod
from typing import Optional


class BaseCartStorage(ABC):
    """Key/value store for serialized carts."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the storage provider name (e.g. "memory", "redis")."""
        pass

    @abstractmethod
    async def load(self, key: str) -> Optional[str]:
        """Return the raw serialized cart, or None if nothing is stored."""
        pass

    @abstractmethod
    async def save(self, key: str, payload: str) -> None:
        """Store the raw serialized cart under ``key``."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the stored cart; missing keys are ignored."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify the storage is reachable."""
        pass
