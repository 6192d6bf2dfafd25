"""Admin endpoints: dashboard, analytics, gallery moderation and hosted images."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from editaja.crud.generation import GenerationCRUD
from editaja.dependencies import get_db_client, get_image_host
from editaja.schemas.responses import ok_response
from editaja.services.analytics import AnalyticsService
from editaja.services.image_host import ImageHostClient
from editaja.services.user_service import UserDataService
from editaja.utils.exceptions import ValidationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# Request Models
class DeleteImageRequest(BaseModel):
    """Request model for deleting one hosted image."""
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    user_id: Optional[str] = Field(default=None, alias="userId")


class DeleteUserImagesRequest(BaseModel):
    """Request model for deleting a user's image host folder."""
    user_id: Optional[str] = Field(default=None, alias="userId")


@router.get("/dashboard")
async def get_dashboard(db_client=Depends(get_db_client)) -> Dict:
    """Headline numbers, recent generations and the most used styles."""
    return ok_response(**AnalyticsService(db_client).get_dashboard())


@router.get("/analytics")
async def get_analytics(
    period: str = Query("30days", description="7days, 30days, 90days or all"),
    db_client=Depends(get_db_client),
) -> Dict:
    return ok_response(analytics=AnalyticsService(db_client).get_analytics(period))


@router.get("/gallery")
async def list_gallery(
    style_id: Optional[str] = Query(None, alias="styleId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db_client=Depends(get_db_client),
) -> Dict:
    """All generations newest first, optionally for one style and/or user."""
    generations = GenerationCRUD(db_client).get_generations(style_id=style_id, user_id=user_id, limit=limit)
    return ok_response(generations=generations, total=len(generations))


@router.get("/gallery/style-names")
async def list_gallery_style_names(db_client=Depends(get_db_client)) -> Dict:
    return ok_response(styleNames=GenerationCRUD(db_client).get_style_names())


@router.delete("/gallery/{generation_id}")
async def delete_gallery_item(
    generation_id: str,
    db_client=Depends(get_db_client),
    image_host: ImageHostClient = Depends(get_image_host),
) -> Dict:
    """Delete a generation and its images on the image host."""
    generation = GenerationCRUD(db_client).get_or_404(generation_id)
    result = await UserDataService(db_client, image_host).delete_generation(generation)
    return ok_response("Generation deleted", **result)


@router.post("/images/delete")
async def delete_hosted_image(
    request: DeleteImageRequest,
    image_host: ImageHostClient = Depends(get_image_host),
) -> Dict:
    if not request.image_url:
        raise ValidationError("imageUrl is required")
    result = await image_host.delete_image(request.image_url, request.user_id)
    return ok_response("Image deleted successfully", **result)


@router.post("/images/delete-user")
async def delete_hosted_user_images(
    request: DeleteUserImagesRequest,
    image_host: ImageHostClient = Depends(get_image_host),
) -> Dict:
    """Remove every folder the image host keeps for a user."""
    if not request.user_id:
        raise ValidationError("userId is required")
    result = await image_host.delete_user_folder(request.user_id)
    return ok_response(
        "User folders deleted successfully",
        deleted_folders=result["deleted_folders"],
        deleted_files=result["deleted_files"],
    )
