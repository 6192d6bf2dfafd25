"""Admin billing: top-up transactions and diamond packages."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from editaja.crud.topup import TopupCRUD, TopupPlanCRUD
from editaja.dependencies import get_db_client
from editaja.models.topup import TopupStatus
from editaja.schemas.responses import ok_response
from editaja.utils.exceptions import ValidationError

router = APIRouter()


@router.get("/transactions")
async def list_transactions(
    status: Optional[str] = Query(None, description="Filter by transaction status"),
    user_id: Optional[str] = Query(None, alias="userId"),
    db_client=Depends(get_db_client),
) -> Dict:
    """Top-ups newest first, with totals for the settled ones."""
    if status and status not in {s.value for s in TopupStatus}:
        raise ValidationError("Invalid status filter")

    topups = TopupCRUD(db_client)
    transactions = topups.get_user_transactions(user_id) if user_id else topups.get_all(status)
    if user_id and status:
        transactions = [t for t in transactions if t.get("status") == status]

    settled = [t for t in transactions if t.get("status") == TopupStatus.SETTLEMENT.value]
    return ok_response(
        transactions=transactions,
        total=len(transactions),
        revenue=sum(int(t.get("price", 0)) for t in settled),
        diamondsSold=sum(int(t.get("diamonds", 0)) + int(t.get("bonus", 0) or 0) for t in settled),
    )


@router.get("/plans")
async def list_plans(db_client=Depends(get_db_client)) -> Dict:
    return ok_response(plans=TopupPlanCRUD(db_client).get_plans())


@router.post("/plans")
async def create_plan(values: Dict[str, Any] = Body(...), db_client=Depends(get_db_client)) -> Dict:
    plan = TopupPlanCRUD(db_client).create_plan(values)
    return ok_response("Plan created", plan=plan)


@router.put("/plans/{plan_id}")
async def update_plan(
    plan_id: str,
    values: Dict[str, Any] = Body(...),
    db_client=Depends(get_db_client),
) -> Dict:
    plan = TopupPlanCRUD(db_client).update_plan(plan_id, values)
    return ok_response("Plan updated", plan=plan)


@router.delete("/plans/{plan_id}")
async def delete_plan(plan_id: str, db_client=Depends(get_db_client)) -> Dict:
    TopupPlanCRUD(db_client).delete_plan(plan_id)
    return ok_response("Plan deleted")
