"""Upload endpoints: local uploads and the image host proxy."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from editaja.config import Settings, get_settings
from editaja.crud.settings import SettingsCRUD
from editaja.dependencies import (
    get_current_admin,
    get_db_client,
    get_file_storage,
    get_image_host,
    get_optional_user,
)
from editaja.schemas.responses import ok_response
from editaja.services.file_storage import LocalFileStorage, extension_for, random_suffix, timestamp_ms
from editaja.services.image_compression import compress_image, detect_image_format
from editaja.services.image_host import ALLOWED_EXTENSIONS, ImageHostClient
from editaja.utils.exceptions import ValidationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()

SETTINGS_UPLOAD_LIMITS = {"logo": 2 * 1024 * 1024, "favicon": 1 * 1024 * 1024}
SETTINGS_UPLOAD_FIELDS = {"logo": "logoPath", "favicon": "faviconPath"}
SETTINGS_UPLOAD_EXTENSIONS = ("png", "jpg", "jpeg", "webp", "gif", "ico")


class SaveGeneratedRequest(BaseModel):
    """Request model for copying a generated image to the image host."""
    image_url: str = Field(..., alias="imageUrl", min_length=1)
    user_id: Optional[str] = Field(default=None, alias="userId")
    index: Optional[int] = None


def _is_image(upload: UploadFile, content: bytes) -> bool:
    return (upload.content_type or "").startswith("image/") or detect_image_format(content) is not None


@router.post("/upload")
async def upload_file(
    file: Optional[UploadFile] = File(None),
    user_id: Optional[str] = Form(None, alias="userId"),
    upload_type: str = Form("original", alias="type"),
    current_user: Optional[dict] = Depends(get_optional_user),
    db_client=Depends(get_db_client),
    settings: Settings = Depends(get_settings),
    storage: LocalFileStorage = Depends(get_file_storage),
    image_host: ImageHostClient = Depends(get_image_host),
) -> Dict:
    """
    Upload an image.

    ``style`` images are stored on this server under ``/uploads/styles``.
    ``original`` photos are compressed and forwarded to the image host.
    Generated images go through /image/save-generated instead.
    """
    if file is None:
        raise ValidationError("No file provided")
    if upload_type not in ("style", "original"):
        raise ValidationError("Invalid type. Use /image/save-generated for generated images.")

    content = await file.read()
    if not content or not _is_image(file, content):
        raise ValidationError("File must be an image")

    if upload_type == "style":
        ext = extension_for(file.filename, file.content_type)
        if ext not in ALLOWED_EXTENSIONS | {"gif"}:
            raise ValidationError("Invalid file type. Allowed: jpg, jpeg, png, webp, gif")
        filename = f"style_{timestamp_ms()}_{random_suffix()}.{ext}"
        return ok_response(url=storage.save("styles", filename, content))

    compressed, content_type = await run_in_threadpool(
        compress_image, content, settings.max_upload_size_mb
    )
    ext = detect_image_format(compressed) or extension_for(file.filename, content_type)
    filename = f"upload_{timestamp_ms()}.{'jpg' if ext == 'jpeg' else ext}"
    watermark = SettingsCRUD(db_client).get_general().watermark_enabled
    owner = current_user["uid"] if current_user else user_id

    hosted = await image_host.upload(
        compressed,
        filename,
        content_type,
        user_id=owner,
        image_type="upload",
        watermark_enabled=watermark,
    )
    return ok_response(
        url=hosted["url"],
        original_url=hosted["original_url"],
        optimized_url=hosted["optimized_url"],
    )


@router.delete("/upload")
async def delete_upload(
    url: Optional[str] = Query(None),
    admin: dict = Depends(get_current_admin),
    storage: LocalFileStorage = Depends(get_file_storage),
) -> Dict:
    """Remove a locally stored upload. Deleting a missing file succeeds."""
    if not url:
        raise ValidationError("URL is required")
    deleted = storage.delete(url)
    return ok_response("File deleted" if deleted else "File already removed", deleted=deleted)


@router.post("/upload/settings")
async def upload_settings_file(
    file: Optional[UploadFile] = File(None),
    upload_type: Optional[str] = Form(None, alias="type"),
    admin: dict = Depends(get_current_admin),
    db_client=Depends(get_db_client),
    storage: LocalFileStorage = Depends(get_file_storage),
) -> Dict:
    """Store a new logo or favicon and point the general settings at it."""
    if file is None:
        raise ValidationError("No file provided")
    if upload_type not in SETTINGS_UPLOAD_LIMITS:
        raise ValidationError("Invalid type. Must be 'logo' or 'favicon'")

    content = await file.read()
    filename_in = (file.filename or "").lower()
    if not (file.content_type or "").startswith("image/") and not filename_in.endswith(".ico"):
        raise ValidationError("File must be an image or .ico file")

    limit = SETTINGS_UPLOAD_LIMITS[upload_type]
    if len(content) > limit:
        raise ValidationError(f"File size must be less than {limit // (1024 * 1024)}MB")

    default_ext = "ico" if upload_type == "favicon" else "png"
    ext = extension_for(file.filename, None, default=default_ext)
    if ext not in SETTINGS_UPLOAD_EXTENSIONS:
        raise ValidationError(f"Invalid file type. Allowed: {', '.join(SETTINGS_UPLOAD_EXTENSIONS)}")
    url = storage.save("settings", f"{upload_type}_{timestamp_ms()}.{ext}", content)

    SettingsCRUD(db_client).save("general", {SETTINGS_UPLOAD_FIELDS[upload_type]: url})
    return ok_response(url=url)


@router.post("/image/save-generated")
async def save_generated_image(
    request: SaveGeneratedRequest,
    current_user: Optional[dict] = Depends(get_optional_user),
    image_host: ImageHostClient = Depends(get_image_host),
) -> Dict:
    """Copy an AI result from the provider's CDN onto the image host."""
    owner = current_user["uid"] if current_user else request.user_id
    hosted = await image_host.save_generated(request.image_url, owner, request.index)
    return ok_response(
        url=hosted["url"],
        original_url=hosted["original_url"],
        optimized_url=hosted["optimized_url"],
    )
