"""
In-process order feed used in development mode and tests.

Each subscriber gets its own bounded queue. A full queue drops an order
event: the subscriber already has a pending re-fetch signal. Sign-out events
displace the oldest pending event instead.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from storefront.services.realtime.base import BaseOrderFeed, OrderChangeEvent, OrderEventType

logger = logging.getLogger(__name__)


class MemoryOrderFeed(BaseOrderFeed):
    """Fan-out over asyncio queues."""

    def __init__(self, max_pending: int = 100):
        self.max_pending = max_pending
        self._subscribers: set[asyncio.Queue] = set()
        logger.info("MemoryOrderFeed initialized")

    @property
    def provider_name(self) -> str:
        return "memory"

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: OrderChangeEvent) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                if event.event_type == OrderEventType.SIGN_OUT:
                    # Revocations must arrive; make room
                    queue.get_nowait()
                    queue.put_nowait(event)
                else:
                    logger.debug("Subscriber queue full; event coalesced")
        logger.debug(f"Order event {event.event_type.value} → {len(self._subscribers)} subscriber(s)")

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[AsyncIterator[OrderChangeEvent]]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_pending)
        self._subscribers.add(queue)
        logger.info(f"Order feed subscriber added ({len(self._subscribers)} active)")
        try:
            yield self._drain(queue)
        finally:
            self._subscribers.discard(queue)
            logger.info(f"Order feed subscriber removed ({len(self._subscribers)} active)")

    @staticmethod
    async def _drain(queue: asyncio.Queue) -> AsyncIterator[OrderChangeEvent]:
        while True:
            yield await queue.get()

    async def health_check(self) -> bool:
        return True
