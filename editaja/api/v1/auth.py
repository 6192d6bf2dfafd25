"""Authentication endpoints: local signup/login and session bootstrap."""

from typing import Dict

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from editaja.crud.tokens import TokenCRUD
from editaja.crud.user import UserCRUD
from editaja.dependencies import get_current_user, get_db_client, get_local_auth
from editaja.schemas.responses import ok_response
from editaja.services.local_auth import LocalAuthService
from editaja.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# Request Models
class SignupRequest(BaseModel):
    """Request model for local signup."""
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    """Request model for local login."""
    email: str
    password: str


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    local_auth: LocalAuthService = Depends(get_local_auth),
    db_client=Depends(get_db_client),
) -> Dict:
    """
    Create a local development account.

    Creates the user document and the initial diamond balance, and returns
    a bearer token.
    """
    account = local_auth.sign_up(request.email, request.password)
    UserCRUD(db_client).ensure_user(account["uid"], account["email"])
    tokens = TokenCRUD(db_client).initialize(account["uid"])
    return ok_response(
        "Account created",
        uid=account["uid"],
        email=account["email"],
        token=account["token"],
        tokens=tokens,
    )


@router.post("/login")
async def login(
    request: LoginRequest,
    local_auth: LocalAuthService = Depends(get_local_auth),
) -> Dict:
    """Log in to a local development account."""
    account = local_auth.login(request.email, request.password)
    return ok_response(uid=account["uid"], email=account["email"], token=account["token"])


@router.post("/session")
async def start_session(
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
) -> Dict:
    """
    Bootstrap a signed-in user.

    Called by the front-end after Firebase sign-in: makes sure the user
    document exists and the diamond balance is initialised.
    """
    user = UserCRUD(db_client).ensure_user(current_user["uid"], current_user.get("email"))
    tokens = TokenCRUD(db_client).get_balance(current_user["uid"])
    return ok_response(uid=current_user["uid"], email=user.get("email"), tokens=tokens)
