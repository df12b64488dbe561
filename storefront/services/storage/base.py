"""
Object Storage Abstract Base Class

Accepts a file upload into a named path and returns a publicly resolvable
URL for it. Used by the admin console for menu item images.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


class StorageUploadError(Exception):
    """The upload could not be stored; the caller keeps manual URL entry."""


@dataclass
class UploadResult:
    """Standardized result from an upload."""
    path: str
    public_url: str
    size_bytes: int
    content_type: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "public_url": self.public_url,
            "size_bytes": self.size_bytes,
            "content_type": self.content_type,
        }


class BaseStorageService(ABC):
    """Abstract base class for object storage services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def upload(
        self,
        path: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> UploadResult:
        """
        Store ``content`` at ``path``.

        Raises:
            StorageUploadError: If the backend rejects or cannot take the file
        """
        pass

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Resolve the public URL of a stored path."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
