"""Public site settings read by the front-end."""

from typing import Dict

from fastapi import APIRouter, Depends

from editaja.crud.anonymous import AnonymousUsageCRUD
from editaja.crud.settings import SettingsCRUD
from editaja.dependencies import get_anonymous_id, get_db_client
from editaja.schemas.responses import ok_response

router = APIRouter()


@router.get("/public")
async def get_public_settings(db_client=Depends(get_db_client)) -> Dict:
    """Branding, theme, share buttons and the public diamond pricing."""
    settings_crud = SettingsCRUD(db_client)
    tokens = settings_crud.get_tokens()
    return ok_response(
        general=settings_crud.get_general().to_dict(),
        theme=settings_crud.get_theme().to_dict(),
        socialMedia=settings_crud.get_social_media().to_dict(),
        tokens={
            "tokenCostPerGenerate": tokens.token_cost_per_generate,
            "maxAnonymousGenerations": tokens.max_anonymous_generations,
        },
    )


@router.get("/anonymous-quota")
async def get_anonymous_quota(
    anonymous_id: str = Depends(get_anonymous_id),
    db_client=Depends(get_db_client),
) -> Dict:
    """Today's free generations left for a signed-out visitor."""
    return ok_response(**AnonymousUsageCRUD(db_client).get_status(anonymous_id))
