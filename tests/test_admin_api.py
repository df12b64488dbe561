"""Admin session, back office CRUD and the live order feed."""

import re
from pathlib import Path

import pytest
from starlette.websockets import WebSocketDisconnect

from storefront.core.config import get_settings
from storefront.services.storage import StorageUploadError
from storefront.services.storage.local import LocalStorageService
from tests.menu_data import DELIVERY_FORM

WINGS_8PC = {"item_id": 1, "variation": "8pc", "flavor": "Spicy Buffalo"}


def place_order(client) -> dict:
    client.post("/api/cart/lines", json=WINGS_8PC)
    response = client.post("/api/checkout", json=DELIVERY_FORM)
    assert response.status_code == 201
    return response.json()


# =============================================================================
# SESSION
# =============================================================================

class TestAdminSession:

    def test_back_office_requires_sign_in(self, seeded_client):
        response = seeded_client.get("/admin/api/orders")
        assert response.status_code == 401
        assert response.json()["detail"] == "Admin sign-in required"
        assert seeded_client.get("/admin/session").json()["authenticated"] is False

    def test_stored_user_sign_in(self, admin_client):
        data = admin_client.get("/admin/session").json()
        assert data == {"authenticated": True, "username": "manager"}
        assert admin_client.get("/admin/api/orders").status_code == 200

    def test_wrong_password(self, seeded_client):
        response = seeded_client.post("/admin/login", json={"username": "manager", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_placeholder_credentials_in_development(self, client):
        response = client.post("/admin/login", json={"username": "admin", "password": "admin123"})
        assert response.status_code == 200
        assert response.json()["username"] == "admin"

    def test_placeholder_credentials_refused_outside_development(self, client, monkeypatch):
        from storefront.core.config import EnvironmentMode

        monkeypatch.setattr(get_settings(), "env_mode", EnvironmentMode.STAGING)
        response = client.post("/admin/login", json={"username": "admin", "password": "admin123"})
        assert response.status_code == 401

    def test_logout(self, admin_client):
        assert admin_client.post("/admin/logout").json()["authenticated"] is False
        assert admin_client.get("/admin/api/orders").status_code == 401


# =============================================================================
# ORDERS
# =============================================================================

class TestOrders:

    def test_list_newest_first(self, admin_client):
        first = place_order(admin_client)
        second = place_order(admin_client)

        data = admin_client.get("/admin/api/orders").json()
        assert data["total"] == 2
        assert [o["id"] for o in data["orders"]] == [second["order_id"], first["order_id"]]

    def test_status_update_normalizes_spelling(self, admin_client):
        order_id = place_order(admin_client)["order_id"]
        response = admin_client.patch(
            f"/admin/api/orders/{order_id}/status", json={"status": "Out for Delivery"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "out_for_delivery"

    def test_display_fields(self, admin_client):
        order_id = place_order(admin_client)["order_id"]
        order = admin_client.get(f"/admin/api/orders/{order_id}").json()
        assert order["status_label"] == "Pending"
        assert re.match(r"^[A-Z][a-z]{2} \d{1,2}, \d{4} \d{2}:\d{2} [AP]M$", order["created_at_display"])

        response = admin_client.patch(
            f"/admin/api/orders/{order_id}/status", json={"status": "out_for_delivery"}
        )
        assert response.json()["status_label"] == "Out for Delivery"

    def test_any_status_transition_allowed(self, admin_client):
        order_id = place_order(admin_client)["order_id"]
        for status in ["delivered", "pending", "cancelled"]:
            response = admin_client.patch(f"/admin/api/orders/{order_id}/status", json={"status": status})
            assert response.json()["status"] == status

    def test_invalid_status_rejected(self, admin_client):
        order_id = place_order(admin_client)["order_id"]
        response = admin_client.patch(f"/admin/api/orders/{order_id}/status", json={"status": "lost"})
        assert response.status_code == 422

    def test_status_filter(self, admin_client):
        first = place_order(admin_client)["order_id"]
        place_order(admin_client)
        admin_client.patch(f"/admin/api/orders/{first}/status", json={"status": "preparing"})

        data = admin_client.get("/admin/api/orders", params={"status": "Preparing"}).json()
        assert data["total"] == 1
        assert data["orders"][0]["id"] == first
        assert admin_client.get("/admin/api/orders", params={"status": "bogus"}).status_code == 400

    def test_unknown_order_404(self, admin_client):
        assert admin_client.get("/admin/api/orders/999").status_code == 404
        response = admin_client.patch("/admin/api/orders/999/status", json={"status": "pending"})
        assert response.status_code == 404


# =============================================================================
# MENU ITEMS & CATEGORIES
# =============================================================================

class TestMenuItems:

    def test_create_item(self, admin_client):
        response = admin_client.post("/admin/api/menu-items", json={
            "name": "Halo-Halo",
            "price": 89,
            "promo_price": "",
            "category_id": "drinks",
            "flavors": ["Classic", "Ube"],
        })
        assert response.status_code == 201
        data = response.json()
        assert data["promo_price"] is None
        assert data["flavors"] == ["Classic", "Ube"]

        names = [m["name"] for m in admin_client.get("/api/menu", params={"category": "drinks"}).json()]
        assert "Halo-Halo" in names

    def test_mixed_variation_shapes_rejected(self, admin_client):
        response = admin_client.post("/admin/api/menu-items", json={
            "name": "Odd",
            "price": 1,
            "variations": [{"name": "Small", "price": 1}, {"groupName": "Size", "options": []}],
        })
        assert response.status_code == 422

    def test_update_item(self, admin_client):
        response = admin_client.put("/admin/api/menu-items/4", json={"out_of_stock": True, "price": 39})
        assert response.status_code == 200
        assert response.json()["out_of_stock"] is True
        assert admin_client.post("/api/cart/lines", json={"item_id": 4}).status_code == 409

    def test_delete_requires_confirmation(self, admin_client):
        assert admin_client.delete("/admin/api/menu-items/4").status_code == 400
        assert admin_client.delete("/admin/api/menu-items/4", params={"confirm": "true"}).status_code == 200
        assert admin_client.get("/api/menu/4").status_code == 404

    def test_upload_image(self, admin_client):
        response = admin_client.post(
            "/admin/api/uploads",
            files={"file": ("burger.PNG", b"\x89PNG fake image", "image/png")},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["path"].startswith("menu_items/")
        assert data["path"].endswith(".png")
        assert data["public_url"] == f"/media/{data['path']}"
        assert (Path(get_settings().media_directory) / data["path"]).exists()

        served = admin_client.get(data["public_url"])
        assert served.status_code == 200
        assert served.content == b"\x89PNG fake image"

    def test_failed_upload_falls_back_to_typed_url(self, admin_client, monkeypatch):
        async def failing_upload(self, path, content, content_type=None):
            raise StorageUploadError("bucket offline")

        monkeypatch.setattr(LocalStorageService, "upload", failing_upload)
        response = admin_client.post(
            "/admin/api/uploads",
            files={"file": ("halo.jpg", b"fake image", "image/jpeg")},
        )
        assert response.status_code == 502
        assert response.json()["detail"] == "Image upload failed: bucket offline"

        response = admin_client.post("/admin/api/menu-items", json={
            "name": "Halo-Halo",
            "price": 89,
            "category_id": "drinks",
            "image": "https://cdn.example.com/halo-halo.jpg",
        })
        assert response.status_code == 201
        assert response.json()["image"] == "https://cdn.example.com/halo-halo.jpg"


class TestCategories:

    def test_create_slugs_name_and_appends(self, admin_client):
        response = admin_client.post("/admin/api/categories", json={"name": "Rice  Meals"})
        assert response.status_code == 201
        assert response.json() == {"id": "rice-meals", "name": "Rice  Meals", "sort_order": 5}

    def test_duplicate_conflicts(self, admin_client):
        response = admin_client.post("/admin/api/categories", json={"name": "Wings"})
        assert response.status_code == 409

    def test_rename_and_delete(self, admin_client):
        response = admin_client.put("/admin/api/categories/drinks", json={"name": "Beverages"})
        assert response.json()["name"] == "Beverages"

        assert admin_client.delete("/admin/api/categories/drinks").status_code == 400
        response = admin_client.delete("/admin/api/categories/drinks", params={"confirm": True})
        assert response.status_code == 200
        ids = [c["id"] for c in admin_client.get("/admin/api/categories").json()]
        assert "drinks" not in ids


# =============================================================================
# PAYMENT METHODS, ORDER TYPES & STORE SETTINGS
# =============================================================================

class TestOptions:

    def test_toggle_payment_method(self, admin_client):
        response = admin_client.post("/admin/api/payment-methods/maya/toggle")
        assert response.json()["is_active"] is True
        methods = [m["id"] for m in admin_client.get("/api/payment-methods").json()]
        assert "maya" in methods

    def test_edit_payment_method(self, admin_client):
        response = admin_client.patch(
            "/admin/api/payment-methods/gcash", json={"account_name": "Gabzab", "account_number": "0917-111-2222"}
        )
        assert response.status_code == 200
        assert response.json()["account_number"] == "0917-111-2222"

    def test_create_payment_method_id_pattern(self, admin_client):
        bad = admin_client.post("/admin/api/payment-methods", json={"id": "Bank Transfer", "name": "Bank"})
        assert bad.status_code == 422
        good = admin_client.post("/admin/api/payment-methods", json={"id": "bank", "name": "Bank Transfer"})
        assert good.status_code == 201

    def test_toggle_order_type(self, admin_client):
        response = admin_client.post("/admin/api/order-types/dine-in/toggle")
        assert response.json()["is_active"] is False
        types = [t["id"] for t in admin_client.get("/api/order-types").json()]
        assert types == ["delivery", "pickup"]
        assert len(admin_client.get("/admin/api/order-types").json()) == 3

    def test_custom_order_type_needs_name_and_phone_only(self, admin_client):
        admin_client.post("/admin/api/order-types", json={"id": "catering", "name": "Catering"})
        admin_client.post("/api/cart/lines", json=WINGS_8PC)
        response = admin_client.post("/api/checkout", json={
            "order_type": "catering",
            "payment_method": "cod",
            "full_name": "Ana Reyes",
            "phone": "09170000000",
        })
        assert response.status_code == 201

    def test_store_settings(self, admin_client):
        assert admin_client.get("/admin/api/store-settings").json()["id"] is None

        response = admin_client.put(
            "/admin/api/store-settings", json={"store_name": "Gabzab Grill", "open_time": "09:00"}
        )
        assert response.status_code == 200
        assert response.json()["id"] is not None

        store = admin_client.get("/api/store").json()
        assert store["store_name"] == "Gabzab Grill"
        assert store["hours_display"] == "9:00 AM - 9:00 PM"

    def test_store_settings_time_validation(self, admin_client):
        response = admin_client.put("/admin/api/store-settings", json={"close_time": "25:00"})
        assert response.status_code == 422


# =============================================================================
# LIVE ORDER FEED
# =============================================================================

class TestOrderFeed:

    def test_socket_requires_admin(self, seeded_client):
        with pytest.raises(WebSocketDisconnect) as exc:
            with seeded_client.websocket_connect("/admin/ws/orders"):
                pass
        assert exc.value.code == 4401

    def test_full_list_on_connect_and_after_change(self, admin_client):
        order_id = place_order(admin_client)["order_id"]

        with admin_client.websocket_connect("/admin/ws/orders") as ws:
            initial = ws.receive_json()
            assert initial["total"] == 1
            assert initial["orders"][0]["status"] == "pending"

            admin_client.patch(f"/admin/api/orders/{order_id}/status", json={"status": "preparing"})
            updated = ws.receive_json()
            assert updated["total"] == 1
            assert updated["orders"][0]["status"] == "preparing"

    def test_new_order_pushes_list(self, admin_client):
        with admin_client.websocket_connect("/admin/ws/orders") as ws:
            assert ws.receive_json()["total"] == 0
            place_order(admin_client)
            assert ws.receive_json()["total"] == 1

    def test_sign_out_closes_socket(self, admin_client):
        with admin_client.websocket_connect("/admin/ws/orders") as ws:
            assert ws.receive_json()["total"] == 0
            assert admin_client.post("/admin/logout").json()["authenticated"] is False
            place_order(admin_client)
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_json()
        assert exc.value.code == 4401

    def test_sign_in_again_needed_after_sign_out(self, admin_client):
        admin_client.post("/admin/logout")
        with pytest.raises(WebSocketDisconnect) as exc:
            with admin_client.websocket_connect("/admin/ws/orders"):
                pass
        assert exc.value.code == 4401
