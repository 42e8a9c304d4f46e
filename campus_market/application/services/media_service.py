"""Image lifecycle helpers shared by the catalog and profile services."""

import secrets
import time
from typing import Optional

import structlog

from campus_market.config import Settings
from campus_market.core.exceptions import UpstreamServiceException, ValidationException
from campus_market.domain.repositories.asset_store import AssetStore, ImageUpload

logger = structlog.get_logger(__name__)


def validate_image(image: ImageUpload, settings: Settings) -> None:
    """Reject unsupported or oversized images before any store or blob call."""
    errors = []
    if image.content_type not in settings.ALLOWED_IMAGE_TYPES:
        errors.append(f"Invalid file type. Allowed types: {', '.join(settings.ALLOWED_IMAGE_TYPES)}")
    if image.size == 0:
        errors.append("No file provided")
    elif image.size > settings.MAX_IMAGE_SIZE:
        errors.append(f"File size exceeds limit of {settings.MAX_IMAGE_SIZE // (1024 * 1024)}MB")
    if errors:
        raise ValidationException("File validation failed", details={"errors": errors})


def asset_key(prefix: str) -> str:
    """Collision-free blob key: nanosecond timestamp plus a random suffix."""
    return f"{prefix}_{time.time_ns()}_{secrets.token_hex(4)}"


def is_provider_owned(url: Optional[str], settings: Settings) -> bool:
    """Provider-issued avatars (e.g. OAuth profile images) are never deleted here."""
    return bool(url) and any(url.startswith(prefix) for prefix in settings.PROVIDER_AVATAR_PREFIXES)


def discard_asset(store: AssetStore, url: Optional[str], settings: Settings, reason: str) -> None:
    """Best-effort blob deletion: failures are logged, never raised."""
    if not url or is_provider_owned(url, settings):
        return
    public_id = store.extract_public_id(url)
    if public_id is None:
        logger.info("Skipping deletion of unrecognized asset URL", url=url, reason=reason)
        return
    try:
        store.delete(public_id)
    except UpstreamServiceException as exc:
        logger.warning("Best-effort asset deletion failed", public_id=public_id, reason=reason, error=exc.message)
