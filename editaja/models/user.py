"""
User Model
Represents user data stored in Firestore.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from editaja.utils.timeutils import utcnow


class UserModel(BaseModel):
    """User model representing a `users/{uid}` document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uid: str = Field(description="Unique user ID (from Firebase Auth)")
    email: Optional[str] = Field(default=None, description="Account e-mail")
    display_name: Optional[str] = Field(default=None, alias="displayName")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt", description="Account creation timestamp")

    def to_dict(self) -> Dict[str, Any]:
        """Convert user to dictionary for Firestore storage."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data.pop("uid", None)
        return data

    @classmethod
    def from_dict(cls, uid: str, data: Dict[str, Any]) -> "UserModel":
        """Create user from Firestore dictionary."""
        return cls(uid=uid, **data)
