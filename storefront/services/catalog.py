"""
Catalog Reader

Read-only queries behind the storefront: categories, menu items, the active
order types and payment methods, and the store settings row.

Every query failure is raised as ``CatalogUnavailable`` so the storefront
can show one error state instead of leaking driver errors.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import get_settings
from storefront.models import (
    Category,
    MenuItem,
    OrderFulfillmentType,
    PaymentMethod,
    StoreOverride,
    StoreSettings,
)

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"


class CatalogUnavailable(Exception):
    """The catalog could not be read from the database."""

    def __init__(self, message: str = "Failed to load menu. Please try again later."):
        super().__init__(message)


@dataclass
class StoreProfile:
    """Store settings, or the configured defaults when no row exists yet."""
    store_name: str
    contact: Optional[str]
    address: Optional[str]
    open_time: str
    close_time: str
    manual_status: str
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: StoreSettings) -> "StoreProfile":
        return cls(
            id=row.id,
            store_name=row.store_name,
            contact=row.contact,
            address=row.address,
            open_time=row.open_time,
            close_time=row.close_time,
            manual_status=row.manual_status or StoreOverride.AUTO.value,
        )

    @classmethod
    def defaults(cls) -> "StoreProfile":
        settings = get_settings()
        return cls(
            store_name=settings.store_name,
            contact=settings.store_contact,
            address=settings.store_address,
            open_time=settings.store_open_time,
            close_time=settings.store_close_time,
            manual_status=StoreOverride.AUTO.value,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_name": self.store_name,
            "contact": self.contact,
            "address": self.address,
            "open_time": self.open_time,
            "close_time": self.close_time,
            "manual_status": self.manual_status,
        }


async def list_categories(db: AsyncSession) -> list[Category]:
    try:
        result = await db.execute(select(Category).order_by(Category.sort_order, Category.name))
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Category fetch failed: {e}")
        raise CatalogUnavailable() from e


async def list_menu_items(db: AsyncSession, category: Optional[str] = None) -> list[MenuItem]:
    """
    Menu items by ``sort_order`` ascending, newest first within a sort bucket.

    ``category`` of ``None`` or ``"all"`` returns every item, out of stock
    included; the storefront marks those instead of hiding them.
    """
    query = select(MenuItem).order_by(MenuItem.sort_order.asc(), MenuItem.created_at.desc(), MenuItem.id.desc())
    if category and category != ALL_CATEGORIES:
        query = query.where(MenuItem.category_id == category)

    try:
        result = await db.execute(query)
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Menu fetch failed: {e}")
        raise CatalogUnavailable() from e


async def get_menu_item(db: AsyncSession, item_id: int) -> Optional[MenuItem]:
    try:
        result = await db.execute(select(MenuItem).where(MenuItem.id == item_id))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Menu item #{item_id} fetch failed: {e}")
        raise CatalogUnavailable() from e


async def list_active_order_types(db: AsyncSession) -> list[OrderFulfillmentType]:
    try:
        result = await db.execute(
            select(OrderFulfillmentType)
            .where(OrderFulfillmentType.is_active.is_(True))
            .order_by(OrderFulfillmentType.id)
        )
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Order type fetch failed: {e}")
        raise CatalogUnavailable() from e


async def list_active_payment_methods(db: AsyncSession) -> list[PaymentMethod]:
    try:
        result = await db.execute(
            select(PaymentMethod)
            .where(PaymentMethod.is_active.is_(True))
            .order_by(PaymentMethod.created_at, PaymentMethod.id)
        )
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Payment method fetch failed: {e}")
        raise CatalogUnavailable() from e


async def get_store_settings_row(db: AsyncSession) -> Optional[StoreSettings]:
    """The singleton settings row, if one has been saved."""
    try:
        result = await db.execute(select(StoreSettings).order_by(StoreSettings.id).limit(1))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Store settings fetch failed: {e}")
        raise CatalogUnavailable() from e


async def get_store_profile(db: AsyncSession) -> StoreProfile:
    row = await get_store_settings_row(db)
    if row is None:
        return StoreProfile.defaults()
    return StoreProfile.from_row(row)
