"""Public style catalogue endpoints."""

from typing import Dict

from fastapi import APIRouter, Depends, Query

from editaja.crud.style import StyleCRUD
from editaja.dependencies import get_db_client
from editaja.models.style import StyleStatus
from editaja.schemas.responses import ok_response
from editaja.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()

# Mounted at /trending-styles for the landing page
trending_router = APIRouter()


@router.get("")
async def list_active_styles(db_client=Depends(get_db_client)) -> Dict:
    """Active styles, newest first."""
    return ok_response(styles=StyleCRUD(db_client).get_active_styles())


@router.get("/search")
async def search_styles(
    q: str = Query("", description="Search term"),
    db_client=Depends(get_db_client),
) -> Dict:
    """
    Search active styles.

    Matches a name prefix first, then any case-insensitive substring of the
    name, prompt, category or tags.
    """
    styles = StyleCRUD(db_client).search_styles(q)
    active = [s for s in styles if s.get("status") == StyleStatus.ACTIVE.value]
    return ok_response(styles=active, query=q)


@router.get("/trending")
async def get_trending_styles(db_client=Depends(get_db_client)) -> Dict:
    return ok_response(styles=StyleCRUD(db_client).get_trending_styles())


@trending_router.get("")
async def get_trending_styles_legacy(db_client=Depends(get_db_client)) -> Dict:
    """Same data as /styles/trending under the path the landing page calls."""
    return ok_response(styles=StyleCRUD(db_client).get_trending_styles())


@router.get("/{style_id}")
async def get_style(style_id: str, db_client=Depends(get_db_client)) -> Dict:
    return ok_response(style=StyleCRUD(db_client).get_style(style_id))
