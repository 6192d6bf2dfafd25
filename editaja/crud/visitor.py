"""
Visitor CRUD Operations
Session heartbeats used for the live-visitor and conversion figures.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from editaja.crud.base import BaseCRUD
from editaja.utils.timeutils import start_of_day, to_datetime, utcnow

ACTIVE_WINDOW = timedelta(minutes=5)


class VisitorCRUD(BaseCRUD):
    """CRUD operations for `visitors/{sessionId}`."""

    @property
    def collection_name(self) -> str:
        return "visitors"

    def track(self, session_id: str, data: Dict[str, Any]) -> None:
        ref = self.document(session_id)
        now = utcnow()
        values = dict(data, lastSeenAt=now, isActive=True)
        if not ref.get().exists:
            values["createdAt"] = now
        ref.set(values, merge=True)

    def active_count(self, now: Optional[Any] = None) -> int:
        now = now or utcnow()
        cutoff = now - ACTIVE_WINDOW
        count = 0
        for doc in self.get_collection().get():
            data = doc.to_dict()
            seen = to_datetime(data.get("lastSeenAt"))
            if data.get("isActive") and seen and seen >= cutoff:
                count += 1
        return count

    def today_count(self, now: Optional[Any] = None) -> int:
        midnight = start_of_day(now)
        count = 0
        for doc in self.get_collection().get():
            data = doc.to_dict()
            seen = to_datetime(data.get("lastSeenAt")) or to_datetime(data.get("createdAt"))
            if seen and seen >= midnight:
                count += 1
        return count
