"""Admin style management."""

import json
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, UploadFile

from editaja.crud.base import validate_model
from editaja.crud.style import StyleCRUD
from editaja.dependencies import get_db_client
from editaja.models.style import StyleModel
from editaja.schemas.responses import ok_response
from editaja.utils.exceptions import ValidationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def list_styles(db_client=Depends(get_db_client)) -> Dict:
    """Every style, active or not, newest first."""
    styles = StyleCRUD(db_client).get_styles()
    return ok_response(styles=styles, total=len(styles))


@router.post("")
async def create_style(
    values: Dict[str, Any] = Body(...),
    db_client=Depends(get_db_client),
) -> Dict:
    style = validate_model(StyleModel, values)
    style_id = StyleCRUD(db_client).create_style(style)
    return ok_response("Style created", id=style_id, style=dict(style.to_dict(), id=style_id))


@router.post("/import")
async def import_styles(
    file: Optional[UploadFile] = File(None),
    db_client=Depends(get_db_client),
) -> Dict:
    """
    Import styles from a JSON array file.

    Each entry needs a ``prompt``; ``imageUrl``, ``status``, ``category``
    and ``tags`` are optional. Prompts that already exist are skipped.
    """
    if file is None:
        raise ValidationError("No file provided")
    try:
        items: List[Any] = json.loads(await file.read())
    except (ValueError, UnicodeDecodeError) as e:
        raise ValidationError(f"Invalid JSON file: {e}") from e
    if not isinstance(items, list):
        raise ValidationError("JSON must be an array of styles")

    result = StyleCRUD(db_client).import_styles(items)
    return ok_response(
        f"Imported {result['created']} styles, skipped {result['skipped']} duplicates",
        **result,
    )


@router.delete("")
async def delete_all_styles(db_client=Depends(get_db_client)) -> Dict:
    deleted = StyleCRUD(db_client).delete_all_styles()
    return ok_response(f"Deleted {deleted} styles", deleted=deleted)


@router.put("/{style_id}")
async def update_style(
    style_id: str,
    values: Dict[str, Any] = Body(...),
    db_client=Depends(get_db_client),
) -> Dict:
    style = StyleCRUD(db_client).update_style(style_id, values)
    return ok_response("Style updated", style=dict(style, id=style_id))


@router.delete("/{style_id}")
async def delete_style(style_id: str, db_client=Depends(get_db_client)) -> Dict:
    StyleCRUD(db_client).delete_style(style_id)
    return ok_response("Style deleted")
