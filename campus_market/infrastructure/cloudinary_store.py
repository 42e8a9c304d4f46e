"""Cloudinary asset store on the vendor SDK.

Credentials travel with each call so several stores can coexist in one
process. Every call carries a bounded timeout, and SDK failures surface as
`UpstreamServiceException`.
"""

from io import BytesIO
from typing import List, Optional
from urllib.parse import urlparse

import cloudinary.uploader
import structlog
from cloudinary.exceptions import Error as CloudinaryError
from urllib3.exceptions import TimeoutError as TransportTimeout

from campus_market.config import Settings
from campus_market.core.exceptions import UpstreamServiceException
from campus_market.domain.repositories.asset_store import AssetStore, ImageUpload, StoredAsset

logger = structlog.get_logger(__name__)

UPLOAD_MARKER = "upload"

# Named transformation chains used by the services
PRODUCT_IMAGE_TRANSFORM = [{"width": 800, "height": 800, "crop": "limit"}, {"quality": "auto"}]
PROFILE_PICTURE_TRANSFORM = [{"width": 1200, "height": 1200, "crop": "fill"}, {"quality": "auto"}]


def extract_public_id(url: Optional[str]) -> Optional[str]:
    """Public id of a Cloudinary delivery URL, or None if the URL is not one.

    ``https://res.cloudinary.com/<cloud>/image/upload/v123/products/product_1.jpg``
    yields ``products/product_1``: everything after the ``upload`` marker,
    skipping the version segment, with the extension stripped. Foreign URLs
    (e.g. provider-hosted avatars) have no ``upload`` marker and yield None.
    """
    if not url:
        return None
    parts = urlparse(url).path.split("/")
    if UPLOAD_MARKER not in parts:
        return None
    upload_index = parts.index(UPLOAD_MARKER)
    if upload_index >= len(parts) - 2:
        return None
    public_id_with_ext = "/".join(parts[upload_index + 2:])
    stem, dot, ext = public_id_with_ext.rpartition(".")
    if dot and "/" not in ext:
        return stem or None
    return public_id_with_ext or None


def _timed_out(exc: BaseException) -> bool:
    """True when a transport timeout sits anywhere in the exception chain."""
    seen = exc
    while seen is not None:
        if isinstance(seen, (TransportTimeout, TimeoutError)):
            return True
        seen = seen.__cause__ or seen.__context__
    return False


class CloudinaryAssetStore(AssetStore):
    """Asset store backed by Cloudinary."""

    def __init__(self, settings: Settings):
        self.options = {
            "cloud_name": settings.CLOUDINARY_CLOUD_NAME,
            "api_key": settings.CLOUDINARY_API_KEY,
            "api_secret": settings.CLOUDINARY_API_SECRET,
            "secure": True,
            "timeout": settings.ASSET_STORE_TIMEOUT_SECONDS,
        }

    def _failure(self, operation: str, exc: Exception) -> UpstreamServiceException:
        if _timed_out(exc):
            logger.error("Asset store timed out", operation=operation)
            return UpstreamServiceException(f"Image {operation} timed out")
        logger.error("Asset store request failed", operation=operation, error=str(exc))
        return UpstreamServiceException(f"Image {operation} failed")

    def upload(
        self,
        image: ImageUpload,
        folder: str,
        key: str,
        transformation: Optional[List[dict]] = None,
    ) -> StoredAsset:
        options = {**self.options, "folder": folder, "public_id": key, "resource_type": "image"}
        if transformation:
            options["transformation"] = transformation
        if image.filename:
            options["filename"] = image.filename

        try:
            payload = cloudinary.uploader.upload(BytesIO(image.content), **options)
        except (CloudinaryError, TimeoutError) as exc:
            raise self._failure("upload", exc) from exc

        url = payload.get("secure_url") or payload.get("url")
        if not url:
            raise UpstreamServiceException("Image upload returned no URL")

        public_id = payload.get("public_id") or f"{folder}/{key}"
        logger.info("Uploaded image", public_id=public_id, size=image.size)
        return StoredAsset(url=url, public_id=public_id)

    def delete(self, public_id: str) -> bool:
        try:
            payload = cloudinary.uploader.destroy(public_id, resource_type="image", **self.options)
        except (CloudinaryError, TimeoutError) as exc:
            raise self._failure("delete", exc) from exc

        deleted = payload.get("result") == "ok"
        logger.info("Deleted image", public_id=public_id, result=payload.get("result"))
        return deleted

    def extract_public_id(self, url: Optional[str]) -> Optional[str]:
        return extract_public_id(url)

    def close(self) -> None:
        """The SDK owns its connection pool; nothing to release."""
