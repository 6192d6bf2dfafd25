"""Admin settings: every `settings/*` group, secrets masked on read."""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from editaja.crud.settings import SettingsCRUD
from editaja.dependencies import get_db_client
from editaja.schemas.responses import ok_response
from editaja.utils.exceptions import NotFoundError

router = APIRouter()


@router.get("")
async def get_all_settings(db_client=Depends(get_db_client)) -> Dict:
    return ok_response(settings=SettingsCRUD(db_client).get_all_for_admin())


@router.get("/{name}")
async def get_settings_group(name: str, db_client=Depends(get_db_client)) -> Dict:
    settings = SettingsCRUD(db_client).get_all_for_admin()
    if name not in settings:
        raise NotFoundError(f"Unknown settings group: {name}")
    return ok_response(settings=settings[name])


@router.put("/{name}")
async def save_settings_group(
    name: str,
    values: Dict[str, Any] = Body(...),
    db_client=Depends(get_db_client),
) -> Dict:
    """Validate and merge new values; 400 with field errors when invalid."""
    SettingsCRUD(db_client).save(name, values)
    return ok_response("Settings saved", settings=SettingsCRUD(db_client).get_all_for_admin()[name])
