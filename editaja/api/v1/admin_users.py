"""Admin user management."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from editaja.crud.beta_tester import BetaTesterCRUD
from editaja.crud.generation import GenerationCRUD
from editaja.crud.tokens import TokenCRUD
from editaja.crud.topup import TopupCRUD
from editaja.crud.user import UserCRUD
from editaja.dependencies import get_db_client, get_image_host, get_token_verifier, is_local_mode
from editaja.middleware.auth_middleware import FirebaseTokenVerifier
from editaja.schemas.responses import ok_response
from editaja.services.image_host import ImageHostClient
from editaja.services.local_auth import LocalAuthService
from editaja.services.user_service import UserDataService
from editaja.utils.exceptions import ValidationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


class TokenAmountRequest(BaseModel):
    """Request model for setting or adding diamonds."""
    amount: int


class SetAdminRequest(BaseModel):
    is_admin: bool = Field(default=True, alias="isAdmin")


class RevokeRequest(BaseModel):
    user_id: Optional[str] = Field(default=None, alias="userId")


@router.get("")
async def list_users(db_client=Depends(get_db_client)) -> Dict:
    """
    Users with their generation counts.

    Admins are hidden; ids that only appear on generations (anonymous
    visitors, deleted accounts) are listed too.
    """
    users = UserCRUD(db_client).get_users_with_generation_count()
    return ok_response(users=users, total=len(users))


@router.get("/beta-testers")
async def list_beta_testers(db_client=Depends(get_db_client)) -> Dict:
    testers = BetaTesterCRUD(db_client).get_all()
    return ok_response(betaTesters=testers, total=len(testers))


@router.post("/revoke")
async def revoke_user_session(
    request: RevokeRequest,
    db_client=Depends(get_db_client),
    verifier: FirebaseTokenVerifier = Depends(get_token_verifier),
) -> Dict:
    """Sign a user out everywhere."""
    if not request.user_id:
        raise ValidationError("userId is required")
    if is_local_mode():
        LocalAuthService(db_client).revoke(request.user_id)
    else:
        await verifier.revoke(request.user_id)
    logger.info(f"Sessions revoked for {request.user_id}")
    return ok_response("User session revoked")


@router.get("/{user_id}")
async def get_user(user_id: str, db_client=Depends(get_db_client)) -> Dict:
    """Profile, balance, generation count and purchases of one user."""
    user = UserCRUD(db_client).get_user_or_404(user_id)
    return ok_response(
        user=user,
        tokens=TokenCRUD(db_client).get_token_data(user_id),
        generationCount=GenerationCRUD(db_client).count([("userId", "==", user_id)]),
        topups=TopupCRUD(db_client).get_user_transactions(user_id),
        isBetaTester=BetaTesterCRUD(db_client).exists(user_id),
    )


@router.put("/{user_id}/tokens")
async def set_user_tokens(
    user_id: str,
    request: TokenAmountRequest,
    db_client=Depends(get_db_client),
) -> Dict:
    tokens = TokenCRUD(db_client).set(user_id, request.amount)
    return ok_response("Tokens updated", tokens=tokens)


@router.post("/{user_id}/tokens")
async def add_user_tokens(
    user_id: str,
    request: TokenAmountRequest,
    db_client=Depends(get_db_client),
) -> Dict:
    if request.amount <= 0:
        raise ValidationError("Amount must be positive")
    tokens = TokenCRUD(db_client).add(user_id, request.amount)
    return ok_response("Tokens added", tokens=tokens)


@router.put("/{user_id}/admin")
async def set_user_admin(
    user_id: str,
    request: SetAdminRequest,
    db_client=Depends(get_db_client),
) -> Dict:
    users = UserCRUD(db_client)
    user = users.get_user_or_404(user_id)
    users.set_admin(user_id, request.is_admin, user.get("email"))
    return ok_response("Admin flag updated", isAdmin=request.is_admin)


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    db_client=Depends(get_db_client),
    image_host: ImageHostClient = Depends(get_image_host),
) -> Dict:
    """Delete a user with their favorites, generations, balance and hosted images."""
    result = await UserDataService(db_client, image_host).delete_user(user_id)
    return ok_response("User deleted", **result)
