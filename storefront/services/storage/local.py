"""
Local filesystem storage used in development mode.

Files land under MEDIA_DIRECTORY and are served by the app under
MEDIA_URL_PREFIX.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from storefront.services.storage.base import (
    BaseStorageService,
    StorageUploadError,
    UploadResult,
)

logger = logging.getLogger(__name__)


class LocalStorageService(BaseStorageService):
    """Writes uploads to a local media directory."""

    def __init__(self, root: str, url_prefix: str):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")
        logger.info(f"LocalStorageService initialized (root={self.root})")

    @property
    def provider_name(self) -> str:
        return "local"

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise StorageUploadError(f"Refusing to write outside the media root: {path}")
        return target

    async def upload(
        self,
        path: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> UploadResult:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(target.write_bytes, content)
        except OSError as e:
            logger.error(f"Local upload of {path} failed: {e}")
            raise StorageUploadError(str(e)) from e

        logger.info(f"Stored {path} ({len(content)} bytes)")
        return UploadResult(
            path=path,
            public_url=self.public_url(path),
            size_bytes=len(content),
            content_type=content_type,
        )

    def public_url(self, path: str) -> str:
        return f"{self.url_prefix}/{path}"

    async def health_check(self) -> bool:
        return True
