"""Pytest configuration and fixtures."""

import asyncio
import os
import tempfile
from typing import Generator

# Configure the app before any storefront module reads the settings
_TMP_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["ENV_MODE"] = "development"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/test.db"
os.environ["SESSION_SECRET_KEY"] = "test-session-secret"
os.environ["ENFORCE_STORE_HOURS"] = "false"
os.environ["STOREFRONT_PAUSED"] = "false"
os.environ["LEDGER_EXPORT_ENABLED"] = "false"
os.environ["MEDIA_DIRECTORY"] = os.path.join(_TMP_DIR, "media")
os.environ["DATA_DIRECTORY"] = os.path.join(_TMP_DIR, "data")

import pytest
from fastapi.testclient import TestClient

from storefront.core.config import get_settings

get_settings.cache_clear()

from storefront.database import async_session_maker, reset_db
from storefront.main import app
from storefront.models import (
    AdminUser,
    Category,
    MenuItem,
    OrderFulfillmentType,
    PaymentMethod,
)
from storefront.services.auth import hash_password
from storefront.services.cart import reset_cart_storage
from storefront.services.realtime import reset_order_feed
from storefront.services.storage import reset_storage_service
from tests.menu_data import BURGER, CATEGORIES, SILOG, SODA, SOLD_OUT, WINGS

MEDIA_DIR = os.environ["MEDIA_DIRECTORY"]


async def _seed() -> None:
    async with async_session_maker() as db:
        db.add_all(Category(**c) for c in CATEGORIES)
        db.add_all(MenuItem(**item) for item in [WINGS, BURGER, SILOG, SODA, SOLD_OUT])
        db.add_all([
            PaymentMethod(id="cod", name="Cash on Delivery", is_active=True),
            PaymentMethod(id="gcash", name="GCash", is_active=True, account_number="0917-000-0000"),
            PaymentMethod(id="maya", name="Maya", is_active=False),
            OrderFulfillmentType(id="delivery", name="Delivery", is_active=True),
            OrderFulfillmentType(id="pickup", name="Pickup", is_active=True),
            OrderFulfillmentType(id="dine-in", name="Dine In", is_active=True),
            AdminUser(username="manager", password_hash=hash_password("s3cret-pass")),
        ])
        await db.commit()


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def client() -> Generator[TestClient, None, None]:
    """Test client over a freshly reset database and in-memory collaborators."""
    asyncio.run(reset_db())
    reset_cart_storage()
    reset_order_feed()
    reset_storage_service()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def seeded_client(client: TestClient) -> TestClient:
    """Test client with the fixture menu, payment methods and order types."""
    asyncio.run(_seed())
    return client


@pytest.fixture
def admin_client(seeded_client: TestClient) -> TestClient:
    """Seeded client signed in as an admin."""
    response = seeded_client.post(
        "/admin/login", json={"username": "manager", "password": "s3cret-pass"}
    )
    assert response.status_code == 200
    return seeded_client


@pytest.fixture
def settings():
    return get_settings()
