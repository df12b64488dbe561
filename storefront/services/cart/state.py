"""
Cart state and reducer.

The cart is an ordered, immutable tuple of ``CartLine`` records. Every
mutation is a pure transition ``(state, action) -> state``; the aggregator
is the only place that holds the current state and persists it.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CartLine(BaseModel):
    """
    One customized, priced, quantified entry in the cart.

    ``price`` is the unit price resolved when the line was first added;
    later catalog changes do not touch it.
    """
    model_config = ConfigDict(frozen=True)

    identity: str = Field(..., min_length=1)
    item_id: int
    name: str
    custom_title: str
    price: float = Field(..., ge=0)
    quantity: int = Field(default=1, ge=1)
    image: Optional[str] = None
    selection: dict[str, Any] = Field(default_factory=dict)

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)


@dataclass(frozen=True)
class CartState:
    lines: tuple[CartLine, ...] = ()

    @property
    def total(self) -> float:
        """Sum of price x quantity, recomputed on every read."""
        return round(sum(line.price * line.quantity for line in self.lines), 2)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def find(self, identity: str) -> Optional[CartLine]:
        for line in self.lines:
            if line.identity == identity:
                return line
        return None


# =============================================================================
# ACTIONS
# =============================================================================

@dataclass(frozen=True)
class AddLine:
    line: CartLine


@dataclass(frozen=True)
class UpdateQuantity:
    identity: str
    delta: int


@dataclass(frozen=True)
class RemoveLine:
    identity: str


@dataclass(frozen=True)
class ClearCart:
    pass


CartAction = Union[AddLine, UpdateQuantity, RemoveLine, ClearCart]


# =============================================================================
# TRANSITIONS
# =============================================================================

def add_line(state: CartState, line: CartLine) -> CartState:
    """Merge into an identical customization or append at the end."""
    existing = state.find(line.identity)
    if existing is None:
        return CartState(lines=state.lines + (line,))

    merged = existing.model_copy(update={"quantity": existing.quantity + line.quantity})
    return CartState(
        lines=tuple(merged if l.identity == line.identity else l for l in state.lines)
    )


def update_quantity(state: CartState, identity: str, delta: int) -> CartState:
    """Quantity becomes ``max(1, current + delta)``; never removes the line."""
    return CartState(
        lines=tuple(
            l.model_copy(update={"quantity": max(1, l.quantity + delta)})
            if l.identity == identity else l
            for l in state.lines
        )
    )


def remove_line(state: CartState, identity: str) -> CartState:
    return CartState(lines=tuple(l for l in state.lines if l.identity != identity))


def cart_reducer(state: CartState, action: CartAction) -> CartState:
    if isinstance(action, AddLine):
        return add_line(state, action.line)
    if isinstance(action, UpdateQuantity):
        return update_quantity(state, action.identity, action.delta)
    if isinstance(action, RemoveLine):
        return remove_line(state, action.identity)
    if isinstance(action, ClearCart):
        return CartState()
    raise TypeError(f"Unknown cart action: {action!r}")
