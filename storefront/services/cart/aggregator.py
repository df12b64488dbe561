"""
Cart Aggregator

Owns the cart state for one storage key. Every mutation runs through the
pure reducer in ``state.py`` and the full line sequence is written back to
storage immediately afterwards.

Usage:
    cart = await CartAggregator.load(get_cart_storage(), key)
    await cart.add_line(line)
    cart.total
"""

import logging

from pydantic import TypeAdapter, ValidationError

from storefront.services.cart.base import BaseCartStorage
from storefront.services.cart.state import (
    AddLine,
    CartAction,
    CartLine,
    CartState,
    ClearCart,
    RemoveLine,
    UpdateQuantity,
    add_line,
    cart_reducer,
)

logger = logging.getLogger(__name__)

_LINES = TypeAdapter(list[CartLine])


class CartLineNotFound(LookupError):
    """Raised when an update or removal names a line the cart does not hold."""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Cart line {identity!r} not found")


def serialize_lines(state: CartState) -> str:
    return _LINES.dump_json(list(state.lines)).decode("utf-8")


def deserialize_lines(payload: str) -> CartState:
    """
    Parse a stored line sequence.

    Lines are folded through ``add_line`` so duplicated identities in the
    stored payload collapse into one line.

    Raises:
        ValidationError: If the payload is not a valid line sequence
    """
    state = CartState()
    for line in _LINES.validate_json(payload):
        state = add_line(state, line)
    return state


class CartAggregator:
    """Cart bound to a storage key."""

    def __init__(self, storage: BaseCartStorage, key: str, state: CartState | None = None):
        self._storage = storage
        self._key = key
        self._state = state or CartState()

    @classmethod
    async def load(cls, storage: BaseCartStorage, key: str) -> "CartAggregator":
        """
        Rehydrate the cart stored under ``key``.

        Malformed stored data is discarded and the cart starts empty.
        """
        payload = await storage.load(key)
        if not payload:
            return cls(storage, key)

        try:
            state = deserialize_lines(payload)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Discarding malformed cart {key}: {e}")
            await storage.delete(key)
            return cls(storage, key)

        return cls(storage, key, state)

    # =========================================================================
    # READ-ONLY PROJECTIONS
    # =========================================================================

    @property
    def key(self) -> str:
        return self._key

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return self._state.lines

    @property
    def total(self) -> float:
        return self._state.total

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def dispatch(self, action: CartAction) -> CartState:
        self._state = cart_reducer(self._state, action)
        if isinstance(action, ClearCart):
            await self._storage.delete(self._key)
        else:
            await self._storage.save(self._key, serialize_lines(self._state))
        return self._state

    async def add_line(self, line: CartLine) -> CartState:
        return await self.dispatch(AddLine(line))

    async def update_quantity(self, identity: str, delta: int) -> CartState:
        self._require(identity)
        return await self.dispatch(UpdateQuantity(identity, delta))

    async def remove_line(self, identity: str) -> CartState:
        self._require(identity)
        return await self.dispatch(RemoveLine(identity))

    async def clear(self) -> CartState:
        return await self.dispatch(ClearCart())

    def _require(self, identity: str) -> None:
        if self._state.find(identity) is None:
            raise CartLineNotFound(identity)
