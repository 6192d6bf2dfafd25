"""
Firebase token verification.
Uses the Admin SDK when it can be initialised, otherwise the Firebase Auth
REST API with the caller's own ID token.
"""

from typing import Any, Dict, Optional

import httpx
from starlette.concurrency import run_in_threadpool

from editaja.utils.exceptions import AuthenticationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)

ACCOUNTS_LOOKUP_URL = "https://identitytoolkit.googleapis.com/v1/accounts:lookup"


class FirebaseTokenVerifier:
    """Verifies Firebase ID tokens. Only used when Firebase is configured."""

    def __init__(
        self,
        credentials_path: str,
        web_api_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.credentials_path = credentials_path
        self.web_api_key = web_api_key
        self._transport = transport
        self._initialized = False
        self._admin_available = False

    def initialize(self) -> bool:
        """Initialize Firebase app if not already initialized. Returns Admin SDK availability."""
        if self._initialized:
            return self._admin_available
        self._initialized = True

        try:
            import firebase_admin
            from firebase_admin import credentials

            if not firebase_admin._apps:
                cred = credentials.Certificate(self.credentials_path)
                firebase_admin.initialize_app(cred)
            self._admin_available = True
            logger.info("Firebase Admin SDK initialized")
        except (ValueError, OSError) as e:
            logger.warning(f"Firebase Admin SDK unavailable, using REST verification: {e}")
            self._admin_available = False
        return self._admin_available

    async def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a Firebase ID token.

        Returns:
            ``{"uid": ..., "email": ...}``

        Raises:
            AuthenticationError: token invalid, expired or revoked
        """
        if self.initialize():
            from firebase_admin import auth

            try:
                decoded = await run_in_threadpool(auth.verify_id_token, token, check_revoked=True)
            except (auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError, ValueError) as e:
                logger.info(f"Token verification failed: {e}")
                raise AuthenticationError("Invalid or expired token") from e
            except auth.CertificateFetchError as e:
                logger.warning(f"Certificate fetch failed, trying REST verification: {e}")
                return await self._verify_via_rest(token)
            return {"uid": decoded["uid"], "email": decoded.get("email", "")}

        return await self._verify_via_rest(token)

    async def _verify_via_rest(self, token: str) -> Dict[str, Any]:
        if not self.web_api_key:
            raise AuthenticationError("Token verification is not configured")

        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                resp = await client.post(
                    ACCOUNTS_LOOKUP_URL,
                    params={"key": self.web_api_key},
                    json={"idToken": token},
                )
        except httpx.HTTPError as e:
            logger.error(f"Firebase REST verification failed: {e}")
            raise AuthenticationError("Token verification failed") from e

        if resp.status_code != 200:
            raise AuthenticationError("Invalid or expired token")

        users = resp.json().get("users") or []
        if not users:
            raise AuthenticationError("Invalid or expired token")
        return {"uid": users[0]["localId"], "email": users[0].get("email", "")}

    async def revoke(self, uid: str) -> None:
        """Revoke all refresh tokens of a user."""
        if not self.initialize():
            raise AuthenticationError("Session revocation requires the Firebase Admin SDK")
        from firebase_admin import auth

        await run_in_threadpool(auth.revoke_refresh_tokens, uid)
        logger.info(f"Revoked refresh tokens for {uid}")
