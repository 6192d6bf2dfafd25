"""Favorite styles of the signed-in user."""

from typing import Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from editaja.crud.favorite import FavoriteCRUD
from editaja.crud.style import StyleCRUD
from editaja.dependencies import get_current_user, get_db_client
from editaja.schemas.responses import ok_response
from editaja.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


class AddFavoriteRequest(BaseModel):
    """Request model for adding a favorite."""
    style_id: str = Field(..., alias="styleId", min_length=1)


@router.get("")
async def list_favorites(
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
) -> Dict:
    """Favorites newest first, each with a snapshot of the style."""
    return ok_response(favorites=FavoriteCRUD(db_client).get_user_favorites(current_user["uid"]))


@router.get("/ids")
async def list_favorite_ids(
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
) -> Dict:
    return ok_response(styleIds=FavoriteCRUD(db_client).get_user_favorite_style_ids(current_user["uid"]))


@router.post("")
async def add_favorite(
    request: AddFavoriteRequest,
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
) -> Dict:
    style = StyleCRUD(db_client).get_style(request.style_id)
    favorite_id = FavoriteCRUD(db_client).add_favorite(current_user["uid"], style)
    logger.info(f"Favorite added: {favorite_id}")
    return ok_response("Added to favorites", id=favorite_id)


@router.get("/{style_id}")
async def check_favorite(
    style_id: str,
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
) -> Dict:
    return ok_response(isFavorite=FavoriteCRUD(db_client).is_favorite(current_user["uid"], style_id))


@router.delete("/{style_id}")
async def remove_favorite(
    style_id: str,
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
) -> Dict:
    FavoriteCRUD(db_client).remove_favorite(current_user["uid"], style_id)
    return ok_response("Removed from favorites")
