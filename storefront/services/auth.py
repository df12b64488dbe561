"""
Admin authentication.

Credentials are checked against ``admin_users`` (bcrypt hashes). In
development mode the placeholder pair from settings is also accepted when
the lookup fails or finds no matching user, so a fresh database can still
be administered.
"""

import hmac
import logging
from typing import Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import get_settings
from storefront.models import AdminUser

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError as e:
        logger.warning(f"Password verification error: {e}")
        return False


def _matches_fallback(username: str, password: str) -> bool:
    settings = get_settings()
    if not settings.is_development:
        return False
    if not (settings.admin_fallback_username and settings.admin_fallback_password):
        return False
    return hmac.compare_digest(username, settings.admin_fallback_username) and hmac.compare_digest(
        password, settings.admin_fallback_password
    )


async def authenticate(db: AsyncSession, username: str, password: str) -> Optional[str]:
    """
    Check admin credentials.

    Returns:
        The authenticated username, or None
    """
    try:
        result = await db.execute(select(AdminUser).where(AdminUser.username == username))
        user = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Admin lookup failed: {e}")
        user = None

    if user is not None and verify_password(password, user.password_hash):
        logger.info(f"Admin '{username}' signed in")
        return user.username

    if _matches_fallback(username, password):
        logger.warning(f"Admin '{username}' signed in with the placeholder credentials")
        return username

    logger.warning(f"Failed admin sign-in for '{username}'")
    return None
