"""Cart reducer and persisted aggregator."""

import asyncio

import pytest

from storefront.services.cart import CartAggregator, CartLine, CartLineNotFound, CartState
from storefront.services.cart.memory import MemoryCartStorage
from storefront.services.cart.state import (
    AddLine,
    ClearCart,
    RemoveLine,
    UpdateQuantity,
    cart_reducer,
)


def make_line(identity: str = "1-8pc", price: float = 299, quantity: int = 1) -> CartLine:
    return CartLine(
        identity=identity,
        item_id=1,
        name="Chicken Wings",
        custom_title=f"Chicken Wings ({identity})",
        price=price,
        quantity=quantity,
    )


class TestReducer:

    def test_identical_lines_merge(self):
        state = cart_reducer(CartState(), AddLine(make_line(quantity=2)))
        state = cart_reducer(state, AddLine(make_line(quantity=3)))
        assert len(state.lines) == 1
        assert state.lines[0].quantity == 5

    def test_different_lines_append_in_order(self):
        state = cart_reducer(CartState(), AddLine(make_line("a")))
        state = cart_reducer(state, AddLine(make_line("b", price=35)))
        assert [l.identity for l in state.lines] == ["a", "b"]

    def test_merge_keeps_first_price(self):
        state = cart_reducer(CartState(), AddLine(make_line(price=299)))
        state = cart_reducer(state, AddLine(make_line(price=350)))
        assert state.lines[0].price == 299

    def test_quantity_floors_at_one(self):
        state = cart_reducer(CartState(), AddLine(make_line(quantity=2)))
        state = cart_reducer(state, UpdateQuantity("1-8pc", -10))
        assert state.lines[0].quantity == 1

    def test_remove_and_clear(self):
        state = cart_reducer(CartState(), AddLine(make_line("a")))
        state = cart_reducer(state, AddLine(make_line("b")))
        state = cart_reducer(state, RemoveLine("a"))
        assert [l.identity for l in state.lines] == ["b"]
        assert cart_reducer(state, ClearCart()).is_empty

    def test_total_and_item_count(self):
        state = cart_reducer(CartState(), AddLine(make_line("a", price=299, quantity=2)))
        state = cart_reducer(state, AddLine(make_line("b", price=35, quantity=3)))
        assert state.total == 299 * 2 + 35 * 3
        assert state.item_count == 5

    def test_reducer_returns_new_state(self):
        empty = CartState()
        cart_reducer(empty, AddLine(make_line()))
        assert empty.is_empty


class TestAggregator:

    def test_mutations_persist_between_loads(self):
        storage = MemoryCartStorage()

        async def scenario():
            cart = await CartAggregator.load(storage, "cart:abc")
            await cart.add_line(make_line("a", quantity=2))
            await cart.add_line(make_line("b", price=35))
            await cart.update_quantity("a", 1)
            return await CartAggregator.load(storage, "cart:abc")

        reloaded = asyncio.run(scenario())
        assert [l.identity for l in reloaded.lines] == ["a", "b"]
        assert reloaded.lines[0].quantity == 3
        assert reloaded.total == 299 * 3 + 35

    def test_clear_deletes_stored_cart(self):
        storage = MemoryCartStorage()

        async def scenario():
            cart = await CartAggregator.load(storage, "cart:abc")
            await cart.add_line(make_line())
            await cart.clear()
            return await storage.load("cart:abc")

        assert asyncio.run(scenario()) is None

    def test_malformed_payload_yields_empty_cart(self):
        storage = MemoryCartStorage()

        async def scenario():
            await storage.save("cart:bad", "{not json")
            cart = await CartAggregator.load(storage, "cart:bad")
            return cart, await storage.load("cart:bad")

        cart, stored = asyncio.run(scenario())
        assert cart.state.is_empty
        assert stored is None

    def test_unknown_identity_raises(self):
        storage = MemoryCartStorage()

        async def scenario():
            cart = await CartAggregator.load(storage, "cart:abc")
            await cart.remove_line("missing")

        with pytest.raises(CartLineNotFound):
            asyncio.run(scenario())

    def test_carts_are_isolated_per_key(self):
        storage = MemoryCartStorage()

        async def scenario():
            first = await CartAggregator.load(storage, "cart:one")
            await first.add_line(make_line())
            return await CartAggregator.load(storage, "cart:two")

        assert asyncio.run(scenario()).state.is_empty


def test_total_follows_lines():
    state = cart_reducer(CartState(), AddLine(make_line("a", price=100, quantity=2)))
    state = cart_reducer(state, AddLine(make_line("b", price=50)))
    assert state.total == 250
    state = cart_reducer(state, RemoveLine("a"))
    assert state.total == 50
