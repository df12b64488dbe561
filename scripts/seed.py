"""
Seed Script

Loads the house menu, categories, payment methods, order types, store
settings and an admin account into the configured database.
Run from project root: python scripts/seed.py [--reset] [--admin-password ...]
"""

import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy import func, select

from storefront.core.config import get_settings, setup_logging
from storefront.database import async_session_maker, init_db, reset_db
from storefront.models import (
    AdminUser,
    Category,
    MenuItem,
    OrderFulfillmentType,
    PaymentMethod,
    StoreSettings,
)
from storefront.services.auth import hash_password

CATEGORIES = [
    {"id": "wings", "name": "Wings", "sort_order": 1},
    {"id": "platters", "name": "Platters", "sort_order": 2},
    {"id": "silog", "name": "Silog", "sort_order": 3},
    {"id": "burgers", "name": "Burgers", "sort_order": 4},
    {"id": "refreshers", "name": "Refreshers", "sort_order": 5},
]

MENU_ITEMS = [
    {
        "name": "Chicken Wings",
        "description": "Crispy fried wings tossed in your choice of sauce.",
        "category_id": "wings",
        "price": 249,
        "sort_order": 1,
        "variations": [
            {"name": "6pc", "price": 249},
            {"name": "8pc", "price": 299},
            {"name": "10pc", "price": 349},
        ],
        "flavors": ["Original", "Spicy Buffalo"],
    },
    {
        "name": "Wings Platter",
        "description": "Wings, fries and rice for sharing.",
        "category_id": "platters",
        "price": 150,
        "sort_order": 2,
        "variations": [
            {"name": "Good for 2", "price": 150},
            {"name": "Good for 3", "price": 199},
            {"name": "Good for 4", "price": 249},
        ],
    },
    {
        "name": "Silog Meal",
        "description": "Garlic rice and egg with your choice of viand.",
        "category_id": "silog",
        "price": 99,
        "sort_order": 3,
        "flavors": [
            "Chicken Silog", "Sisig Silog", "Bacon Silog",
            "Tocino Silog", "Beef Tapa Silog", "Siomai Silog",
        ],
        "dining_options": ["Dine In", "Take Out"],
    },
    {
        "name": "House Burger",
        "description": "Quarter-pound beef patty on a toasted bun.",
        "category_id": "burgers",
        "price": 129,
        "promo_price": 119,
        "sort_order": 4,
        "variations": [
            {
                "groupName": "Size",
                "required": True,
                "options": [{"name": "Regular", "price": 0}, {"name": "Large", "price": 30}],
            },
            {
                "groupName": "Side",
                "required": False,
                "options": [{"name": "Fries", "price": 35}, {"name": "Coleslaw", "price": 25}],
            },
        ],
        "addons": [{"name": "Cheese", "price": 15}, {"name": "Bacon", "price": 25}],
    },
    {
        "name": "Refreshers",
        "description": "Ice-cold house refreshers. Buy 2, get a free upsize.",
        "category_id": "refreshers",
        "price": 39,
        "sort_order": 5,
        "flavors": [
            "Blue Lemonade", "Cucumber Lemonade", "Strawberry Red Tea",
            "Orange Refresher", "Pineapple Refresher", "Citrus Dew",
            "Blueberry Refresher", "4 Seasons", "Pine-O",
        ],
    },
]

PAYMENT_METHODS = [
    {"id": "cod", "name": "Cash on Delivery", "is_active": True},
    {"id": "gcash", "name": "GCash", "is_active": True, "account_name": "Gabzab Food House"},
    {"id": "maya", "name": "Maya", "is_active": False},
]

ORDER_TYPES = [
    {"id": "delivery", "name": "Delivery", "is_active": True},
    {"id": "dine-in", "name": "Dine In", "is_active": True},
    {"id": "pickup", "name": "Pickup", "is_active": True},
]


async def seed(reset: bool, admin_username: str, admin_password: str) -> None:
    settings = get_settings()

    if reset:
        await reset_db()
    else:
        await init_db()

    async with async_session_maker() as db:
        existing = (await db.execute(select(func.count(MenuItem.id)))).scalar() or 0
        if existing:
            print(f"⚠️ Menu already has {existing} items; use --reset to reseed")
            return

        db.add_all(Category(**c) for c in CATEGORIES)
        db.add_all(MenuItem(**item) for item in MENU_ITEMS)
        db.add_all(PaymentMethod(**p) for p in PAYMENT_METHODS)
        db.add_all(OrderFulfillmentType(**t) for t in ORDER_TYPES)
        db.add(StoreSettings(
            store_name=settings.store_name,
            contact=settings.store_contact,
            address=settings.store_address,
            open_time=settings.store_open_time,
            close_time=settings.store_close_time,
        ))
        db.add(AdminUser(username=admin_username, password_hash=hash_password(admin_password)))
        await db.commit()

    print("=" * 60)
    print("✅ SEED COMPLETE")
    print("=" * 60)
    print(f"   Categories: {len(CATEGORIES)}")
    print(f"   Menu items: {len(MENU_ITEMS)}")
    print(f"   Payment methods: {len(PAYMENT_METHODS)}")
    print(f"   Order types: {len(ORDER_TYPES)}")
    print(f"   Admin user: {admin_username}")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the storefront database")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate every table first")
    parser.add_argument("--admin-username", default="admin")
    parser.add_argument("--admin-password", required=True)
    args = parser.parse_args()

    setup_logging()
    asyncio.run(seed(args.reset, args.admin_username, args.admin_password))
