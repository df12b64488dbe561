"""
Storage Service Factory

    - ENV_MODE=development → LocalStorageService (files under MEDIA_DIRECTORY)
    - ENV_MODE=staging/production → HostedStorageService (public bucket)

Usage:
    from storefront.services.storage import get_storage_service

    result = await get_storage_service().upload("menu_items/1.jpg", data, "image/jpeg")
    result.public_url
"""

import logging
from functools import lru_cache

from storefront.core.config import get_settings
from storefront.services.storage.base import (
    BaseStorageService,
    StorageUploadError,
    UploadResult,
)
from storefront.services.storage.hosted import HostedStorageService
from storefront.services.storage.local import LocalStorageService

logger = logging.getLogger(__name__)


@lru_cache()
def get_storage_service() -> BaseStorageService:
    """
    Get the configured storage service instance.

    Raises:
        ValueError: If hosted storage is selected but not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Storage Service: Using LocalStorageService (development mode)")
        return LocalStorageService(settings.media_directory, settings.media_url_prefix)
    else:
        logger.info(
            f"Storage Service: Using HostedStorageService "
            f"({settings.env_mode.value} mode)"
        )
        return HostedStorageService()


def reset_storage_service() -> None:
    """Clear the cached storage instance."""
    get_storage_service.cache_clear()


__all__ = [
    "get_storage_service",
    "reset_storage_service",
    "BaseStorageService",
    "StorageUploadError",
    "UploadResult",
]
