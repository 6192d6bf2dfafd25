"""Visitor heartbeats and IP geolocation."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from editaja.crud.visitor import VisitorCRUD
from editaja.dependencies import get_db_client, get_geolocation_client
from editaja.schemas.responses import ok_response
from editaja.services.geolocation import GeolocationClient, get_client_ip
from editaja.utils.exceptions import ValidationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


class TrackRequest(BaseModel):
    """Request model for a visitor heartbeat."""
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    page: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")


@router.post("/visitor/track")
async def track_visitor(
    body: TrackRequest,
    request: Request,
    db_client=Depends(get_db_client),
) -> Dict:
    """
    Record that a browser session is alive.

    Tracking must never break a page, so storage failures still answer ok.
    """
    if not body.session_id or not body.page:
        raise ValidationError("sessionId and page are required")

    data = {
        "sessionId": body.session_id,
        "page": body.page,
        "ip": get_client_ip(request.headers, request.client.host if request.client else None),
        "userAgent": request.headers.get("user-agent", "unknown"),
        "referrer": request.headers.get("referer", ""),
    }
    if body.user_id:
        data["userId"] = body.user_id

    try:
        VisitorCRUD(db_client).track(body.session_id, data)
    except Exception as e:
        logger.warning(f"Visitor tracking failed for {body.session_id}: {e}")
        return ok_response(warning="Tracking failed but continuing")
    return ok_response()


@router.get("/geolocation")
async def get_geolocation(
    request: Request,
    client: GeolocationClient = Depends(get_geolocation_client),
) -> Dict:
    """Country and city of the caller, "Unknown" when it cannot be resolved."""
    ip = get_client_ip(request.headers)
    return await client.lookup(ip)
