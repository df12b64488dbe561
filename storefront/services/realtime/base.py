"""
Order Feed Abstract Base Class

Change notifications for the ``orders`` table. Subscribers treat every
order event purely as a signal to re-fetch the full order list; events never
carry order state. ``SIGN_OUT`` events revoke one admin session token and
end the sockets opened with it.
"""

import json
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import AsyncIterator, Optional


class OrderEventType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SIGN_OUT = "SIGN_OUT"


@dataclass
class OrderChangeEvent:
    event_type: OrderEventType
    order_id: Optional[int] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_token: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps({
            "event_type": self.event_type.value,
            "order_id": self.order_id,
            "occurred_at": self.occurred_at.isoformat(),
            "session_token": self.session_token,
        })

    @classmethod
    def from_json(cls, payload: str) -> "OrderChangeEvent":
        """
        Raises:
            ValueError: If the payload is not a change event
        """
        try:
            data = json.loads(payload)
            return cls(
                event_type=OrderEventType(data["event_type"]),
                order_id=data.get("order_id"),
                occurred_at=datetime.fromisoformat(data["occurred_at"]),
                session_token=data.get("session_token"),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed order event: {payload!r}") from e


class BaseOrderFeed(ABC):
    """Publish/subscribe channel for order changes."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def publish(self, event: OrderChangeEvent) -> None:
        """Broadcast a change to every current subscriber."""
        pass

    @abstractmethod
    def subscribe(self) -> AbstractAsyncContextManager[AsyncIterator[OrderChangeEvent]]:
        """
        Open a subscription.

        Usage:
            async with feed.subscribe() as events:
                async for event in events:
                    ...

        Leaving the ``async with`` block tears the subscription down.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
