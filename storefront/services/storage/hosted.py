"""
Hosted object storage (Supabase Storage compatible REST API).

Used when ENV_MODE is staging or production.

Endpoints:
    POST {STORAGE_URL}/storage/v1/object/{bucket}/{path}          upload
    GET  {STORAGE_URL}/storage/v1/object/public/{bucket}/{path}   public URL
"""

import logging
from typing import Optional

import httpx

from storefront.core.config import get_settings
from storefront.services.storage.base import (
    BaseStorageService,
    StorageUploadError,
    UploadResult,
)

logger = logging.getLogger(__name__)


class HostedStorageService(BaseStorageService):
    """Uploads into a public bucket over HTTPS."""

    def __init__(self):
        """
        Raises:
            ValueError: If STORAGE_URL or STORAGE_SERVICE_KEY is not configured
        """
        settings = get_settings()

        if not settings.storage_url or not settings.storage_service_key:
            raise ValueError(
                "STORAGE_URL and STORAGE_SERVICE_KEY are required outside development. "
                "Set them in your .env file or environment variables."
            )

        self._base_url = settings.storage_url.rstrip("/")
        self._bucket = settings.storage_bucket
        self._timeout = settings.storage_timeout_seconds
        self._headers = {
            "Authorization": f"Bearer {settings.storage_service_key}",
            "apikey": settings.storage_service_key,
        }
        logger.info(f"HostedStorageService initialized (bucket={self._bucket})")

    @property
    def provider_name(self) -> str:
        return "hosted"

    async def upload(
        self,
        path: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> UploadResult:
        url = f"{self._base_url}/storage/v1/object/{self._bucket}/{path}"
        headers = dict(self._headers)
        headers["Content-Type"] = content_type or "application/octet-stream"

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, content=content, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Upload of {path} failed: {e}")
            raise StorageUploadError(f"Storage unreachable: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("message") or response.text
            except ValueError:
                message = response.text
            logger.error(f"Upload of {path} rejected ({response.status_code}): {message}")
            raise StorageUploadError(message)

        logger.info(f"Uploaded {path} to bucket {self._bucket}")
        return UploadResult(
            path=path,
            public_url=self.public_url(path),
            size_bytes=len(content),
            content_type=content_type,
        )

    def public_url(self, path: str) -> str:
        return f"{self._base_url}/storage/v1/object/public/{self._bucket}/{path}"

    async def health_check(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(
                    f"{self._base_url}/storage/v1/bucket/{self._bucket}",
                    headers=self._headers,
                )
            return response.status_code < 400
        except httpx.HTTPError as e:
            logger.error(f"Storage health check failed: {e}")
            return False
