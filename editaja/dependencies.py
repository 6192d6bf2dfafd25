"""
Shared application dependencies.
Supports both Firebase mode and local development mode.
"""

import hashlib
import hmac
import os
import time
from typing import Callable, Dict, Optional

import cachetools
from fastapi import Depends, Header, Request

from editaja.config import Settings, get_settings
from editaja.crud.settings import SettingsCRUD
from editaja.crud.user import UserCRUD
from editaja.middleware.auth_middleware import FirebaseTokenVerifier
from editaja.services.ai.image_generator import ImageGenerator
from editaja.services.file_storage import LocalFileStorage
from editaja.services.geolocation import GeolocationClient, get_client_ip
from editaja.services.image_host import ImageHostClient
from editaja.services.local_auth import LocalAuthService
from editaja.services.midtrans_gateway import MidtransGateway
from editaja.services.notifications import FeedbackNotifier
from editaja.services.prompt_catalog import PromptCatalogClient
from editaja.utils.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    QuotaExceededError,
)
from editaja.utils.logger import get_logger

logger = get_logger(__name__)

# Global Instances
_db_client = None
_token_verifier: Optional[FirebaseTokenVerifier] = None
_is_local_mode = None


def _check_local_mode() -> bool:
    """Determine if we should use local mode (no Firebase)."""
    global _is_local_mode
    if _is_local_mode is not None:
        return _is_local_mode

    settings = get_settings()
    cred_path = settings.firebase_credentials_path

    if not cred_path or not os.path.exists(cred_path):
        logger.info("Firebase credentials not found - running in LOCAL DEV mode")
        _is_local_mode = True
    else:
        _is_local_mode = False

    return _is_local_mode


def is_local_mode() -> bool:
    return _check_local_mode()


def get_token_verifier(settings: Settings = Depends(get_settings)) -> FirebaseTokenVerifier:
    global _token_verifier
    if _token_verifier is None:
        _token_verifier = FirebaseTokenVerifier(
            settings.firebase_credentials_path,
            web_api_key=settings.firebase_web_api_key,
        )
    return _token_verifier


def get_db_client(settings: Settings = Depends(get_settings)):
    """Get database client - Firestore in prod, LocalStore in dev."""
    global _db_client
    if _db_client is not None:
        return _db_client

    if _check_local_mode():
        from editaja.services.local_store import get_local_store
        _db_client = get_local_store(settings.local_data_dir or None)
        logger.info(f"Using LocalStore database ({settings.local_data_dir or 'in-memory'})")
    else:
        if not get_token_verifier(settings).initialize():
            raise ConfigurationError("Firebase Admin SDK could not be initialized")
        from firebase_admin import firestore
        _db_client = firestore.client()
        logger.info("Using Firestore database")

    return _db_client


def get_local_auth(db=Depends(get_db_client)) -> LocalAuthService:
    if not _check_local_mode():
        raise AuthorizationError("Local accounts are only available in local development mode")
    return LocalAuthService(db)


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("Authorization header missing")
    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthenticationError("Unauthorized")
    return token


async def get_current_user(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    db=Depends(get_db_client),
) -> Dict[str, str]:
    """Get current user from auth token."""
    token = _bearer_token(authorization)

    if _check_local_mode():
        return LocalAuthService(db).verify_token(token)
    return await get_token_verifier(settings).verify_token(token)


async def get_optional_user(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    db=Depends(get_db_client),
) -> Optional[Dict[str, str]]:
    """Get current user if authenticated, otherwise None."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    try:
        return await get_current_user(authorization, settings, db)
    except AuthenticationError:
        return None


async def get_current_admin(
    authorization: Optional[str] = Header(None),
    x_admin_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    db=Depends(get_db_client),
) -> Dict[str, str]:
    """
    Require an administrator.

    Either a signed-in user with ``admins/{uid}.isAdmin == true`` or an
    ``X-Admin-Key`` header matching ADMIN_API_KEY.
    """
    if x_admin_key and settings.admin_api_key:
        if hmac.compare_digest(x_admin_key, settings.admin_api_key):
            return {"uid": "admin-api-key", "email": ""}
        raise AuthenticationError("Invalid admin key")

    user = await get_current_user(authorization, settings, db)
    if not UserCRUD(db).is_admin(user["uid"]):
        logger.warning(f"Non-admin {user['uid']} attempted admin access")
        raise AuthorizationError("Admin access required")
    return user


def get_anonymous_id(request: Request, x_anonymous_id: Optional[str] = Header(None)) -> str:
    """Browser-supplied anonymous id, else a stable hash of the client IP."""
    if x_anonymous_id and x_anonymous_id.strip():
        return x_anonymous_id.strip()[:128]
    client_host = request.client.host if request.client else None
    ip = get_client_ip(request.headers, client_host)
    return "ip_" + hashlib.sha256(ip.encode()).hexdigest()[:24]


def get_image_host(settings: Settings = Depends(get_settings)) -> ImageHostClient:
    return ImageHostClient(settings.gambar_server_url, settings.gambar_api_token)


def get_image_generator() -> ImageGenerator:
    return ImageGenerator()


def get_file_storage(settings: Settings = Depends(get_settings)) -> LocalFileStorage:
    return LocalFileStorage(settings.uploads_dir)


def get_prompt_catalog(settings: Settings = Depends(get_settings)) -> PromptCatalogClient:
    return PromptCatalogClient(settings.prompt_catalog_url, settings.prompt_catalog_image_origin)


def get_geolocation_client() -> GeolocationClient:
    return GeolocationClient()


def get_notifier(settings: Settings = Depends(get_settings)) -> FeedbackNotifier:
    return FeedbackNotifier(settings.resend_api_key, settings.feedback_notify_email)


def get_midtrans_gateway(db=Depends(get_db_client)) -> Optional[MidtransGateway]:
    """Gateway built from the current Midtrans keys, None when unconfigured."""
    config = SettingsCRUD(db).get_midtrans()
    if config is None:
        return None
    return MidtransGateway(config.server_key, config.client_key, config.is_production)


class RateLimiter:
    """
    Sliding-window request limiter keyed by user or anonymous id.

    Keys live in a ``TTLCache`` so idle callers drop out once their window
    has passed, and at most ``max_keys`` callers are tracked at a time.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: int = 60,
        max_keys: int = 10_000,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.timer = timer
        self.requests: cachetools.TTLCache = cachetools.TTLCache(maxsize=max_keys, ttl=window_seconds, timer=timer)

    def is_allowed(self, key: str) -> bool:
        now = self.timer()
        cutoff = now - self.window_seconds
        recent = [t for t in self.requests.get(key, ()) if t > cutoff]
        allowed = len(recent) < self.max_requests
        if allowed:
            recent.append(now)
        self.requests[key] = recent
        return allowed

    def reset(self) -> None:
        self.requests.clear()


generation_rate_limiter = RateLimiter(max_requests=10, window_seconds=60)


async def check_generation_rate_limit(
    user: Optional[Dict[str, str]] = Depends(get_optional_user),
    anonymous_id: str = Depends(get_anonymous_id),
) -> Optional[Dict[str, str]]:
    """Throttle AI generation per user (or anonymous id); passes the user through."""
    key = user["uid"] if user else anonymous_id
    if not generation_rate_limiter.is_allowed(key):
        raise QuotaExceededError("Too many generation requests. Please wait a minute.")
    return user
