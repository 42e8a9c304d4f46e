"""Success envelope and request-body parsing shared by the routers."""

from typing import Any, Dict, Optional, Tuple

from fastapi import Request
from starlette.datastructures import UploadFile

from campus_market.core.exceptions import ValidationException
from campus_market.domain.repositories.asset_store import ImageUpload


def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


async def _to_image(upload: UploadFile) -> Optional[ImageUpload]:
    content = await upload.read()
    if not content and not upload.filename:
        return None
    return ImageUpload(
        content=content,
        content_type=upload.content_type or "application/octet-stream",
        filename=upload.filename or "upload",
    )


async def read_fields(request: Request, file_field: str) -> Tuple[Dict[str, Any], Optional[ImageUpload]]:
    """Fields present in a JSON or multipart/urlencoded body, plus the optional image.

    Absent keys stay absent so partial updates can tell "not sent" from "null".
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError as exc:
            raise ValidationException("Malformed JSON body") from exc
        if not isinstance(payload, dict):
            raise ValidationException("Request body must be a JSON object")
        return payload, None

    if not content_type:
        return {}, None

    fields: Dict[str, Any] = {}
    image = None
    form = await request.form()
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key == file_field:
                image = await _to_image(value)
            continue
        fields[key] = value
    return fields, image
