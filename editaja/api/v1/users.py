"""Signed-in user endpoints: profile, balance, history and purchases."""

from typing import Dict

from fastapi import APIRouter, Depends

from editaja.crud.beta_tester import BetaTesterCRUD
from editaja.crud.generation import GenerationCRUD
from editaja.crud.tokens import TokenCRUD
from editaja.crud.topup import TopupCRUD
from editaja.crud.user import UserCRUD
from editaja.dependencies import get_current_user, get_db_client, get_image_host
from editaja.schemas.responses import ok_response
from editaja.services.image_host import ImageHostClient
from editaja.services.user_service import UserDataService
from editaja.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("/me")
async def get_current_user_profile(
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
) -> Dict:
    """
    Get current user's profile.

    Returns:
        Profile with diamond balance and the admin and beta-tester flags
    """
    uid = current_user["uid"]
    users = UserCRUD(db_client)
    profile = users.ensure_user(uid, current_user.get("email"))
    return ok_response(
        user={
            "uid": uid,
            "email": profile.get("email"),
            "displayName": profile.get("displayName"),
            "createdAt": profile.get("createdAt"),
        },
        tokens=TokenCRUD(db_client).get_balance(uid),
        isAdmin=users.is_admin(uid),
        isBetaTester=BetaTesterCRUD(db_client).is_beta_tester(uid),
    )


@router.get("/me/tokens")
async def get_my_tokens(
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
) -> Dict:
    """Diamond balance after the daily reset check."""
    return ok_response(tokens=TokenCRUD(db_client).get_balance(current_user["uid"]))


@router.get("/me/generations")
async def get_my_generations(
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
) -> Dict:
    generations = GenerationCRUD(db_client).get_user_generations(current_user["uid"])
    return ok_response(generations=generations)


@router.delete("/me/generations/{generation_id}")
async def delete_my_generation(
    generation_id: str,
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
    image_host: ImageHostClient = Depends(get_image_host),
) -> Dict:
    """Delete one of the caller's generations (403 for someone else's)."""
    generation = GenerationCRUD(db_client).get_owned(generation_id, current_user["uid"])
    await UserDataService(db_client, image_host).delete_generation(generation)
    return ok_response("Generation deleted", id=generation_id)


@router.get("/me/topups")
async def get_my_topups(
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
) -> Dict:
    transactions = TopupCRUD(db_client).get_user_transactions(current_user["uid"])
    return ok_response(transactions=transactions)
