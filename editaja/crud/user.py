"""
User CRUD Operations
Database operations for user management.
"""

from collections import Counter
from typing import Any, Dict, List, Optional

from editaja.crud.base import DESCENDING, BaseCRUD
from editaja.models.generation import ANONYMOUS_USER_ID
from editaja.models.user import UserModel
from editaja.utils.exceptions import NotFoundError
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import utcnow

logger = get_logger(__name__)


class UserCRUD(BaseCRUD):
    """CRUD operations for user documents."""

    @property
    def collection_name(self) -> str:
        return "users"

    def ensure_user(self, uid: str, email: Optional[str]) -> Dict[str, Any]:
        """
        Create the user document on first sign-in.

        Returns:
            The stored user document.
        """
        ref = self.document(uid)
        doc = ref.get()
        if doc.exists:
            data = doc.to_dict()
            if email and not data.get("email"):
                ref.update({"email": email, "updatedAt": utcnow()})
                data["email"] = email
            data["id"] = uid
            return data

        user = UserModel(uid=uid, email=email)
        ref.set(user.to_dict())
        logger.info(f"User document created: {uid}")
        return dict(user.to_dict(), id=uid)

    def get_users(self) -> List[Dict[str, Any]]:
        """All users, newest first."""
        return self.list(order_by="createdAt", direction=DESCENDING)

    def get_user_or_404(self, uid: str) -> Dict[str, Any]:
        user = self.get_by_id(uid)
        if not user:
            raise NotFoundError("User not found")
        return user

    def is_admin(self, uid: str) -> bool:
        doc = self.db.collection("admins").document(uid).get()
        return doc.exists and doc.to_dict().get("isAdmin") is True

    def set_admin(self, uid: str, is_admin: bool = True, email: Optional[str] = None) -> None:
        data: Dict[str, Any] = {"isAdmin": is_admin, "updatedAt": utcnow()}
        if email:
            data["email"] = email
        self.db.collection("admins").document(uid).set(data, merge=True)

    def get_admin_ids(self) -> set:
        return {doc.id for doc in self.db.collection("admins").get() if doc.to_dict().get("isAdmin") is True}

    def get_users_with_generation_count(self) -> List[Dict[str, Any]]:
        """
        Users joined with their generation counts for the admin user list.

        Admins are excluded. User ids that only appear on generations
        (anonymous visitors, accounts whose user doc is gone) are included.
        """
        admin_ids = self.get_admin_ids()
        counts = Counter(
            doc.to_dict().get("userId") or ANONYMOUS_USER_ID
            for doc in self.db.collection("generations").get()
        )

        rows: Dict[str, Dict[str, Any]] = {}
        for user in self.list():
            if user["id"] in admin_ids:
                continue
            rows[user["id"]] = {
                "id": user["id"],
                "email": user.get("email") or "No email",
                "createdAt": user.get("createdAt"),
                "generationCount": counts.get(user["id"], 0),
            }

        for user_id, count in counts.items():
            if user_id in rows or user_id in admin_ids:
                continue
            rows[user_id] = {
                "id": user_id,
                "email": "Anonymous User" if user_id == ANONYMOUS_USER_ID else "No email",
                "createdAt": None,
                "generationCount": count,
            }

        return sorted(rows.values(), key=lambda r: (-r["generationCount"], r["email"]))
