"""
Shared route dependencies: session-bound cart, admin guard, maintenance
pause and the commit helper used by every admin mutation.
"""

import logging
import uuid

from fastapi import HTTPException, Request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import get_settings
from storefront.services.cart import CartAggregator, get_cart_storage

logger = logging.getLogger(__name__)

# Session cookie keys
CART_SESSION_KEY = "cart_id"
ADMIN_SESSION_KEY = "admin_user"
ADMIN_TOKEN_SESSION_KEY = "admin_token"
PHASE_SESSION_KEY = "checkout_phase"

CLOSED_TITLE = "We Are Currently Closed"
CLOSED_MESSAGE = (
    "Our online store is taking a short break. "
    "Please check back soon or message us on Messenger."
)


def cart_key(request: Request) -> str:
    """Storage key of this browser's cart; issues a cart id on first use."""
    cart_id = request.session.get(CART_SESSION_KEY)
    if not cart_id:
        cart_id = uuid.uuid4().hex
        request.session[CART_SESSION_KEY] = cart_id
    return f"{get_settings().cart_key_prefix}:{cart_id}"


async def get_cart(request: Request) -> CartAggregator:
    return await CartAggregator.load(get_cart_storage(), cart_key(request))


def ensure_storefront_open() -> None:
    if get_settings().storefront_paused:
        raise HTTPException(status_code=503, detail=f"{CLOSED_TITLE}. {CLOSED_MESSAGE}")


def require_admin(request: Request) -> str:
    username = request.session.get(ADMIN_SESSION_KEY)
    if not username:
        raise HTTPException(status_code=401, detail="Admin sign-in required")
    return username


async def commit_or_raise(db: AsyncSession, action: str) -> None:
    """
    Commit pending changes, surfacing the database message on failure.

    Raises:
        HTTPException: 409 for constraint violations, 500 otherwise
    """
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"{action} rejected: {e.orig}")
        raise HTTPException(status_code=409, detail=str(e.orig))
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"{action} failed: {e}")
        raise HTTPException(status_code=500, detail=str(getattr(e, "orig", None) or e))
