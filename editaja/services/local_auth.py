"""
Local account store for development without Firebase.
Accounts live in the `localAccounts` collection of the local store.
"""

import hashlib
from typing import Any, Dict, Optional

from editaja.core.security import create_access_token, decode_token, hash_password, verify_password
from editaja.utils.exceptions import AuthenticationError, ValidationError
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import to_datetime, utcnow

logger = get_logger(__name__)

COLLECTION = "localAccounts"


def _uid_for(email: str) -> str:
    return hashlib.sha256(email.encode()).hexdigest()[:28]


class LocalAuthService:
    """Signup, login and token verification against the local store."""

    def __init__(self, db):
        self.db = db

    def _accounts(self):
        return self.db.collection(COLLECTION)

    def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        email = email.strip().lower()
        uid = _uid_for(email)
        ref = self._accounts().document(uid)
        if ref.get().exists:
            raise ValidationError("Email already registered")
        ref.set({"email": email, "password": hash_password(password), "createdAt": utcnow()})
        logger.info(f"Local account created: {email} (uid: {uid})")
        return {"uid": uid, "email": email, "token": create_access_token({"sub": uid, "email": email})}

    def login(self, email: str, password: str) -> Dict[str, Any]:
        email = email.strip().lower()
        uid = _uid_for(email)
        doc = self._accounts().document(uid).get()
        account = doc.to_dict() or {}
        if not doc.exists or not verify_password(password, account.get("password", "")):
            logger.warning(f"Failed login attempt for {email}")
            raise AuthenticationError("Invalid credentials")
        return {"uid": uid, "email": email, "token": create_access_token({"sub": uid, "email": email})}

    def verify_token(self, token: str) -> Dict[str, Any]:
        payload = decode_token(token)
        uid = payload.get("sub")
        doc = self._accounts().document(uid).get() if uid else None
        if doc is None or not doc.exists:
            raise AuthenticationError("Invalid or expired token")

        account = doc.to_dict()
        valid_after = to_datetime(account.get("tokensValidAfter"))
        if valid_after and payload.get("iat", 0) <= int(valid_after.timestamp()):
            raise AuthenticationError("Session revoked")
        return {"uid": uid, "email": account.get("email", "")}

    def revoke(self, uid: str) -> None:
        ref = self._accounts().document(uid)
        if ref.get().exists:
            ref.update({"tokensValidAfter": utcnow()})

    def get_account(self, uid: str) -> Optional[Dict[str, Any]]:
        doc = self._accounts().document(uid).get()
        return doc.to_dict() if doc.exists else None
