"""Public diamond package listing."""

from typing import Dict

from fastapi import APIRouter, Depends

from editaja.crud.topup import TopupPlanCRUD
from editaja.dependencies import get_db_client
from editaja.schemas.responses import ok_response

router = APIRouter()


@router.get("/plans")
async def list_plans(db_client=Depends(get_db_client)) -> Dict:
    """Packages in display order; built-in defaults until an admin adds some."""
    return ok_response(plans=TopupPlanCRUD(db_client).get_plans())
