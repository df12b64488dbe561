"""Customer-facing storefront endpoints: store info, menu, cart, checkout."""

from redis.exceptions import RedisError
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import get_settings
from storefront.services.cart.memory import MemoryCartStorage
from tests.menu_data import DELIVERY_FORM

WINGS_8PC = {"item_id": 1, "variation": "8pc", "flavor": "Spicy Buffalo"}
LARGE_BURGER = {"item_id": 2, "groups": {"Size": "Large", "Side": "Fries"}, "addons": ["Cheese"]}


def add(client, payload: dict, quantity: int = 1):
    return client.post("/api/cart/lines", json={**payload, "quantity": quantity})


# =============================================================================
# STORE INFO
# =============================================================================

class TestStoreInfo:

    def test_defaults_without_settings_row(self, seeded_client):
        response = seeded_client.get("/api/store")
        assert response.status_code == 200
        data = response.json()
        assert data["store_name"] == "Gabzab Food House"
        assert data["hours_display"] == "10:00 AM - 9:00 PM"
        assert data["manual_status"] == "auto"
        assert data["currency_symbol"] == "₱"
        assert data["paused"] is False

    def test_messenger_redirect(self, client):
        response = client.get("/api/messenger", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == get_settings().messenger_url

    def test_health(self, client):
        data = client.get("/health").json()
        assert data["status"] == "operational"
        assert data["cart_storage"] == "healthy"

    def test_paused_storefront_blocks_catalog(self, seeded_client, monkeypatch):
        monkeypatch.setattr(get_settings(), "storefront_paused", True)

        response = seeded_client.get("/api/menu")
        assert response.status_code == 503
        assert response.json()["detail"].startswith("We Are Currently Closed")

        store = seeded_client.get("/api/store")
        assert store.status_code == 200
        assert store.json()["paused"] is True


# =============================================================================
# CATALOG
# =============================================================================

class TestCatalog:

    def test_categories_in_sort_order(self, seeded_client):
        ids = [c["id"] for c in seeded_client.get("/api/categories").json()]
        assert ids == ["wings", "burgers", "silog", "drinks"]

    def test_menu_in_sort_order(self, seeded_client):
        names = [m["name"] for m in seeded_client.get("/api/menu").json()]
        assert names == ["Chicken Wings", "House Burger", "Silog Meal", "Iced Tea", "Lechon Kawali"]

    def test_menu_category_filter(self, seeded_client):
        items = seeded_client.get("/api/menu", params={"category": "silog"}).json()
        assert [m["id"] for m in items] == [3, 5]
        assert len(seeded_client.get("/api/menu", params={"category": "all"}).json()) == 5

    def test_unknown_item_404(self, seeded_client):
        assert seeded_client.get("/api/menu/999").status_code == 404

    def test_only_active_options_listed(self, seeded_client):
        methods = [m["id"] for m in seeded_client.get("/api/payment-methods").json()]
        assert "maya" not in methods
        assert set(methods) == {"cod", "gcash"}
        types = [t["id"] for t in seeded_client.get("/api/order-types").json()]
        assert types == ["delivery", "dine-in", "pickup"]

    def test_quote_complete_selection(self, seeded_client):
        response = seeded_client.post(
            "/api/menu/1/quote",
            json={"variation": "8pc", "flavor": "Spicy Buffalo", "quantity": 2},
        )
        data = response.json()
        assert data["label"] == "Chicken Wings (8pc Spicy Buffalo)"
        assert data["unit_price"] == 299
        assert data["total_price"] == 598
        assert data["display_total"] == "₱598"
        assert data["can_add"] is True

    def test_quote_partial_selection(self, seeded_client):
        data = seeded_client.post("/api/menu/2/quote", json={"addons": ["Bacon"]}).json()
        assert data["can_add"] is False
        assert data["missing"] == ["Size"]
        assert data["unit_price"] == 144

    def test_quote_unknown_option_400(self, seeded_client):
        response = seeded_client.post("/api/menu/1/quote", json={"variation": "12pc"})
        assert response.status_code == 400


# =============================================================================
# CART
# =============================================================================

class TestCart:

    def test_new_session_has_empty_cart(self, seeded_client):
        data = seeded_client.get("/api/cart").json()
        assert data["lines"] == []
        assert data["total"] == 0
        assert data["checkout_phase"] == "cart"

    def test_add_and_merge_identical_lines(self, seeded_client):
        assert add(seeded_client, WINGS_8PC).status_code == 201
        data = add(seeded_client, WINGS_8PC, quantity=2).json()
        assert len(data["lines"]) == 1
        assert data["lines"][0]["quantity"] == 3
        assert data["total"] == 299 * 3

    def test_distinct_customizations_are_separate_lines(self, seeded_client):
        add(seeded_client, WINGS_8PC)
        data = add(seeded_client, LARGE_BURGER).json()
        assert [l["custom_title"] for l in data["lines"]] == [
            "Chicken Wings (8pc Spicy Buffalo)",
            "House Burger (Large | Fries | Cheese)",
        ]
        assert data["total"] == 299 + 199
        assert data["display_total"] == "₱498"

    def test_update_quantity_floors_at_one(self, seeded_client):
        identity = add(seeded_client, WINGS_8PC, quantity=2).json()["lines"][0]["identity"]
        data = seeded_client.patch(f"/api/cart/lines/{identity}", json={"delta": -5}).json()
        assert data["lines"][0]["quantity"] == 1

    def test_remove_and_clear(self, seeded_client):
        identity = add(seeded_client, WINGS_8PC).json()["lines"][0]["identity"]
        add(seeded_client, LARGE_BURGER)

        data = seeded_client.delete(f"/api/cart/lines/{identity}").json()
        assert len(data["lines"]) == 1

        assert seeded_client.delete("/api/cart").json()["lines"] == []

    def test_unknown_line_404(self, seeded_client):
        add(seeded_client, WINGS_8PC)
        response = seeded_client.patch("/api/cart/lines/nope", json={"delta": 1})
        assert response.status_code == 404
        assert seeded_client.delete("/api/cart/lines/nope").status_code == 404

    def test_out_of_stock_rejected(self, seeded_client):
        response = add(seeded_client, {"item_id": 5})
        assert response.status_code == 409
        assert response.json()["detail"] == "Lechon Kawali is out of stock"

    def test_incomplete_selection_rejected(self, seeded_client):
        response = add(seeded_client, {"item_id": 1, "variation": "8pc"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Please select: flavor"
        assert seeded_client.get("/api/cart").json()["lines"] == []

    def test_cart_is_per_session(self, seeded_client):
        add(seeded_client, WINGS_8PC)
        seeded_client.cookies.clear()
        assert seeded_client.get("/api/cart").json()["lines"] == []

    def test_line_price_frozen_after_menu_change(self, admin_client):
        add(admin_client, WINGS_8PC)
        response = admin_client.put(
            "/admin/api/menu-items/1",
            json={"variations": [{"name": "6pc", "price": 249}, {"name": "8pc", "price": 350}]},
        )
        assert response.status_code == 200

        data = admin_client.get("/api/cart").json()
        assert data["lines"][0]["price"] == 299
        assert data["total"] == 299


# =============================================================================
# CHECKOUT
# =============================================================================

class TestCheckout:

    def test_successful_delivery_order(self, admin_client):
        add(admin_client, WINGS_8PC, quantity=2)
        add(admin_client, LARGE_BURGER)
        cart_total = admin_client.get("/api/cart").json()["total"]

        response = admin_client.post("/api/checkout", json=DELIVERY_FORM)
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["phase"] == "success"
        assert data["total_amount"] == cart_total == 797
        assert len(data["reference"]) == 6

        summary = data["summary"].splitlines()
        assert summary[0] == "HELLO GABZAB FOOD HOUSE"
        assert "ADDRESS: 12 Rizal St (Landmark: Blue gate)" in summary
        assert "* 2x Chicken Wings (8pc Spicy Buffalo)" in summary
        assert "TOTAL: PHP 797" in summary
        assert summary[-2] == f"Ref: #{data['order_id']}"

        cart = admin_client.get("/api/cart").json()
        assert cart["lines"] == []
        assert cart["checkout_phase"] == "success"

        order = admin_client.get(f"/admin/api/orders/{data['order_id']}").json()
        assert order["total_amount"] == cart_total
        assert order["status"] == "pending"
        assert order["customer_details"]["full_name"] == "Juan Dela Cruz"
        assert sum(line["price"] * line["quantity"] for line in order["items"]) == order["total_amount"]

    def test_dine_in_order(self, seeded_client):
        add(seeded_client, {"item_id": 3, "flavor": "Tocino Silog", "dining_option": "Dine In"})
        response = seeded_client.post("/api/checkout", json={
            "order_type": "dine-in",
            "payment_method": "cod",
            "full_name": "Ana Reyes",
            "phone": "09170000000",
            "table_number": "7",
        })
        assert response.status_code == 201
        assert "TABLE: 7" in response.json()["summary"].splitlines()

    def test_empty_cart_rejected(self, seeded_client):
        response = seeded_client.post("/api/checkout", json=DELIVERY_FORM)
        assert response.status_code == 400
        assert response.json()["detail"] == "Your cart is empty"

    def test_missing_table_number_keeps_cart(self, seeded_client):
        add(seeded_client, WINGS_8PC)
        response = seeded_client.post("/api/checkout", json={
            "order_type": "dine-in",
            "payment_method": "cod",
            "full_name": "Ana Reyes",
            "phone": "09170000000",
        })
        assert response.status_code == 400
        assert "table_number" in response.json()["detail"]
        assert len(seeded_client.get("/api/cart").json()["lines"]) == 1

    def test_blank_name_rejected(self, seeded_client):
        add(seeded_client, WINGS_8PC)
        response = seeded_client.post("/api/checkout", json={**DELIVERY_FORM, "full_name": "  "})
        assert response.status_code == 400
        assert response.json()["detail"] == "Please provide: full_name"

    def test_inactive_payment_method_rejected(self, seeded_client):
        add(seeded_client, WINGS_8PC)
        response = seeded_client.post("/api/checkout", json={**DELIVERY_FORM, "payment_method": "maya"})
        assert response.status_code == 400
        assert len(seeded_client.get("/api/cart").json()["lines"]) == 1

    def test_closed_store_rejects_checkout(self, admin_client, monkeypatch):
        monkeypatch.setattr(get_settings(), "enforce_store_hours", True)
        admin_client.put("/admin/api/store-settings", json={"manual_status": "closed"})
        add(admin_client, WINGS_8PC)

        assert admin_client.get("/api/store").json()["is_open"] is False
        response = admin_client.post("/api/checkout", json=DELIVERY_FORM)
        assert response.status_code == 409
        assert response.json()["detail"].startswith("The store is currently closed.")
        assert len(admin_client.get("/api/cart").json()["lines"]) == 1

    def test_failed_insert_keeps_cart_and_phase(self, seeded_client, monkeypatch):
        add(seeded_client, WINGS_8PC, quantity=2)

        async def failing_commit(self):
            raise OperationalError("INSERT INTO orders", {}, Exception("disk I/O error"))

        monkeypatch.setattr(AsyncSession, "commit", failing_commit)
        response = seeded_client.post("/api/checkout", json=DELIVERY_FORM)
        assert response.status_code == 500
        assert response.json()["detail"] == "Error processing order: disk I/O error"

        cart = seeded_client.get("/api/cart").json()
        assert len(cart["lines"]) == 1
        assert cart["lines"][0]["quantity"] == 2
        assert cart["checkout_phase"] == "cart"

    def test_cart_storage_failure_after_insert_still_succeeds(self, admin_client, monkeypatch):
        add(admin_client, WINGS_8PC)

        async def failing_delete(self, key):
            raise RedisError("connection lost")

        monkeypatch.setattr(MemoryCartStorage, "delete", failing_delete)
        response = admin_client.post("/api/checkout", json=DELIVERY_FORM)
        assert response.status_code == 201
        order_id = response.json()["order_id"]
        assert admin_client.get(f"/admin/api/orders/{order_id}").status_code == 200

    def test_manual_open_allows_checkout(self, admin_client, monkeypatch):
        monkeypatch.setattr(get_settings(), "enforce_store_hours", True)
        admin_client.put("/admin/api/store-settings", json={"manual_status": "open"})
        add(admin_client, WINGS_8PC)
        assert admin_client.post("/api/checkout", json=DELIVERY_FORM).status_code == 201

    def test_adding_after_checkout_returns_to_cart_phase(self, seeded_client):
        add(seeded_client, WINGS_8PC)
        seeded_client.post("/api/checkout", json=DELIVERY_FORM)
        data = add(seeded_client, LARGE_BURGER).json()
        assert data["checkout_phase"] == "cart"
        assert len(data["lines"]) == 1
