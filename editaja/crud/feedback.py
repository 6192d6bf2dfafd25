"""
Feedback CRUD Operations
User feedback and its admin review state.
"""

from typing import Any, Dict, List, Optional

from editaja.crud.base import DESCENDING, BaseCRUD
from editaja.models.feedback import FeedbackStatus
from editaja.utils.exceptions import NotFoundError
from editaja.utils.timeutils import isoformat, utcnow


class FeedbackCRUD(BaseCRUD):
    """CRUD operations for feedback documents."""

    @property
    def collection_name(self) -> str:
        return "feedbacks"

    def save_feedback(self, data: Dict[str, Any]) -> str:
        data.setdefault("status", FeedbackStatus.PENDING.value)
        data.setdefault("isRead", False)
        return self.create(data)

    def get_all(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        if not category:
            return self.list(order_by="createdAt", direction=DESCENDING)
        items = self.list(filters=[("category", "==", category)])
        items.sort(key=lambda f: isoformat(f.get("createdAt")) or "", reverse=True)
        return items

    def get_user_feedbacks(self, user_id: str) -> List[Dict[str, Any]]:
        items = self.list(filters=[("userId", "==", user_id)])
        items.sort(key=lambda f: isoformat(f.get("createdAt")) or "", reverse=True)
        return items

    def get_or_404(self, feedback_id: str) -> Dict[str, Any]:
        feedback = self.get_by_id(feedback_id)
        if not feedback:
            raise NotFoundError("Feedback not found")
        return feedback

    def unread_count(self) -> int:
        # isRead may be missing on old documents, so count in memory
        return sum(1 for doc in self.get_collection().get() if doc.to_dict().get("isRead") is not True)

    def mark_as_read(self, feedback_id: str) -> None:
        self.get_or_404(feedback_id)
        self.update(feedback_id, {"isRead": True, "readAt": utcnow()})

    def update_review(self, feedback_id: str, status: Optional[str], admin_notes: Optional[str]) -> Dict[str, Any]:
        self.get_or_404(feedback_id)
        values: Dict[str, Any] = {}
        if status is not None:
            values["status"] = FeedbackStatus(status).value
        if admin_notes is not None:
            values["adminNotes"] = admin_notes
        if values:
            self.update(feedback_id, values)
        return self.get_or_404(feedback_id)

    def delete_feedback(self, feedback_id: str) -> None:
        self.get_or_404(feedback_id)
        self.delete(feedback_id)
