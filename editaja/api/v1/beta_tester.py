"""Beta tester programme endpoints."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends

from editaja.crud.beta_tester import BetaTesterCRUD
from editaja.crud.tokens import TokenCRUD
from editaja.dependencies import get_db_client, get_optional_user
from editaja.schemas.responses import ok_response
from editaja.utils.exceptions import AuthenticationError, AuthorizationError, ValidationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("/check")
async def check_beta_tester(
    current_user: Optional[dict] = Depends(get_optional_user),
    db_client=Depends(get_db_client),
) -> Dict:
    """Whether the caller is registered (always false while registration is closed)."""
    beta = BetaTesterCRUD(db_client)
    config = beta.settings_crud.get_beta_tester()
    registered = bool(current_user) and beta.is_beta_tester(current_user["uid"])
    return ok_response(
        isRegistered=registered,
        registrationEnabled=config.registration_enabled,
        freeTokens=config.free_tokens,
    )


@router.post("/register")
async def register_beta_tester(
    db_client=Depends(get_db_client),
    current_user: Optional[dict] = Depends(get_optional_user),
) -> Dict:
    """
    Join the beta programme and receive the free diamonds once.

    Registration being closed is reported before authentication so the page
    can explain it to signed-out visitors too.
    """
    beta = BetaTesterCRUD(db_client)
    if not beta.settings_crud.get_beta_tester().registration_enabled:
        raise AuthorizationError("Beta tester registration is currently disabled")
    if current_user is None:
        raise AuthenticationError("Please sign in to register as a beta tester")
    if not current_user.get("email"):
        raise ValidationError("An email address is required to register")

    granted = beta.register(current_user["uid"], current_user["email"], TokenCRUD(db_client, beta.settings_crud))
    return ok_response(
        f"Welcome to the beta programme! You received {granted} diamonds.",
        tokensReceived=granted,
    )
