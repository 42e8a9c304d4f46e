"""
Asset Store Interface.
A URL-referenced blob service for product images and profile pictures.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol


@dataclass(frozen=True)
class ImageUpload:
    """An image as received from the transport layer."""
    content: bytes
    content_type: str
    filename: str = "upload"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class StoredAsset:
    url: str
    public_id: str


class AssetStore(Protocol):
    """Interface for blob upload/delete."""

    def upload(
        self,
        image: ImageUpload,
        folder: str,
        key: str,
        transformation: Optional[List[dict]] = None,
    ) -> StoredAsset:
        """Upload a blob. Raises UpstreamServiceException on failure or timeout."""
        ...

    def delete(self, public_id: str) -> bool:
        """Delete a blob by public id. Raises UpstreamServiceException on failure."""
        ...

    def extract_public_id(self, url: Optional[str]) -> Optional[str]:
        """Derive the public id from a URL this store issued, or None."""
        ...

    def close(self) -> None:
        ...
