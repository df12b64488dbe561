"""
Order queries and status changes for the admin console.

Orders are never deleted. Any status may move to any other status; every
committed change is announced on the order feed.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models import Order, OrderStatus
from storefront.services.catalog import CatalogUnavailable
from storefront.services.realtime import OrderEventType, notify_order_change

logger = logging.getLogger(__name__)


async def list_orders(
    db: AsyncSession,
    status: Optional[OrderStatus] = None,
    skip: int = 0,
    limit: Optional[int] = None,
) -> tuple[int, list[Order]]:
    """Newest first, with the unpaginated total."""
    query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    count_query = select(func.count(Order.id))
    if status is not None:
        query = query.where(Order.status == status.value)
        count_query = count_query.where(Order.status == status.value)

    query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)

    try:
        total = (await db.execute(count_query)).scalar() or 0
        orders = (await db.execute(query)).scalars().all()
    except SQLAlchemyError as e:
        logger.error(f"Order fetch failed: {e}")
        raise CatalogUnavailable("Failed to load orders. Please try again later.") from e

    return total, list(orders)


async def get_order(db: AsyncSession, order_id: int) -> Optional[Order]:
    try:
        return await db.get(Order, order_id)
    except SQLAlchemyError as e:
        logger.error(f"Order #{order_id} fetch failed: {e}")
        raise CatalogUnavailable("Failed to load orders. Please try again later.") from e


async def update_order_status(db: AsyncSession, order: Order, status: OrderStatus) -> Order:
    """
    Persist a new status and publish the change.

    Raises:
        SQLAlchemyError: If the update does not commit (session rolled back)
    """
    previous = order.status
    order.status = status.value
    try:
        await db.commit()
        await db.refresh(order)
    except SQLAlchemyError:
        await db.rollback()
        raise

    logger.info(f"Order #{order.id} status {previous} → {order.status}")
    await notify_order_change(OrderEventType.UPDATE, order.id)
    return order
