"""Midtrans payment endpoints for diamond top-ups."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from editaja.config import Settings, get_settings
from editaja.crud.settings import SettingsCRUD
from editaja.crud.user import UserCRUD
from editaja.dependencies import get_current_user, get_db_client, get_midtrans_gateway
from editaja.schemas.responses import ok_response
from editaja.services.midtrans_gateway import MidtransGateway
from editaja.services.topup_service import TopupService
from editaja.utils.exceptions import (
    AuthorizationError,
    ConfigurationError,
    EditAjaException,
    ValidationError,
)
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import utcnow

logger = get_logger(__name__)
router = APIRouter()


# Request Models
class CreateTopupRequest(BaseModel):
    """Request model for opening a Snap payment."""
    model_config = ConfigDict(populate_by_name=True)

    package_id: Optional[Any] = Field(default=None, alias="packageId")
    diamonds: Optional[int] = None
    price: Optional[int] = None
    bonus: Optional[int] = 0


class OrderRequest(BaseModel):
    """Request model carrying an order id."""
    order_id: Optional[str] = Field(default=None, alias="orderId")


def get_topup_service(
    db_client=Depends(get_db_client),
    gateway: Optional[MidtransGateway] = Depends(get_midtrans_gateway),
    settings: Settings = Depends(get_settings),
) -> TopupService:
    return TopupService(db_client, gateway, settings.base_url)


@router.get("/config")
async def get_midtrans_config(db_client=Depends(get_db_client)) -> Dict:
    """Public Snap configuration for the payment popup."""
    config = SettingsCRUD(db_client).get_midtrans()
    if config is None:
        return {"ok": False, "error": "Midtrans configuration not found"}
    return ok_response(clientKey=config.client_key, isProduction=config.is_production)


@router.post("/create")
async def create_topup(
    request: CreateTopupRequest,
    current_user: dict = Depends(get_current_user),
    service: TopupService = Depends(get_topup_service),
) -> Dict:
    """
    Start a top-up.

    The pending transaction is stored before Snap is called, so the
    notification for this order always finds it.
    """
    return await service.create(
        current_user["uid"],
        current_user.get("email"),
        request.package_id,
        request.diamonds,
        request.price,
        request.bonus,
    )


@router.get("/callback")
async def callback_ping() -> Dict:
    return ok_response("Midtrans callback endpoint is active", timestamp=utcnow().isoformat())


@router.post("/callback")
async def midtrans_callback(
    request: Request,
    x_midtrans_signature: Optional[str] = Header(None),
    service: TopupService = Depends(get_topup_service),
):
    """
    Midtrans HTTP notification.

    Bad signatures, malformed bodies and missing configuration are
    rejected. Everything else answers 200, including internal failures,
    so Midtrans does not retry a notification we cannot process.
    """
    try:
        notification = await request.json()
    except ValueError:
        notification = {"order_id": request.query_params.get("order_id")}
    if not isinstance(notification, dict):
        raise ValidationError("Invalid notification body")

    try:
        return service.handle_notification(notification, x_midtrans_signature)
    except (AuthorizationError, ValidationError, ConfigurationError):
        raise
    except EditAjaException as e:
        logger.error(f"Midtrans notification failed for {notification.get('order_id')}: {e.message}")
        return JSONResponse({"ok": False, "error": e.message, "orderId": notification.get("order_id")})
    except Exception as e:
        logger.error(f"Midtrans notification crashed for {notification.get('order_id')}: {e}", exc_info=True)
        return JSONResponse({"ok": False, "error": "Internal error", "orderId": notification.get("order_id")})


@router.get("/status")
async def get_topup_status(
    order_id: Optional[str] = Query(None, alias="orderId"),
    current_user: dict = Depends(get_current_user),
    service: TopupService = Depends(get_topup_service),
) -> Dict:
    return service.status(order_id, current_user["uid"])


@router.post("/complete")
async def complete_topup(
    request: OrderRequest,
    current_user: dict = Depends(get_current_user),
    service: TopupService = Depends(get_topup_service),
) -> Dict:
    """Manually complete a paid order whose notification never arrived."""
    return service.complete(request.order_id, current_user["uid"])


@router.api_route("/retry-failed", methods=["GET", "POST"])
async def retry_failed_topup(
    order_id: Optional[str] = Query(None, alias="orderId"),
    body: Optional[Dict[str, Any]] = Body(None),
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
    service: TopupService = Depends(get_topup_service),
) -> Dict:
    """Re-check an order with Midtrans and credit it when it settled."""
    order_id = order_id or (body or {}).get("orderId")
    is_admin = UserCRUD(db_client).is_admin(current_user["uid"])
    return await service.retry_failed(order_id, current_user["uid"], is_admin=is_admin)
