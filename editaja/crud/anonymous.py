"""
Anonymous Usage CRUD
Per-day generation counter for visitors without an account.
"""

from typing import Any, Dict

from editaja.crud.base import BaseCRUD
from editaja.crud.settings import SettingsCRUD
from editaja.utils.timeutils import today_key, utcnow


class AnonymousUsageCRUD(BaseCRUD):
    """Tracks `anonymousUsers/{anonymousId}` generation counts."""

    def __init__(self, db, settings_crud: SettingsCRUD = None):
        super().__init__(db)
        self.settings_crud = settings_crud or SettingsCRUD(db)

    @property
    def collection_name(self) -> str:
        return "anonymousUsers"

    def get_today_count(self, anonymous_id: str) -> int:
        doc = self.document(anonymous_id).get()
        if not doc.exists:
            return 0
        data = doc.to_dict()
        if data.get("lastGeneratedDate") != today_key():
            return 0
        return int(data.get("todayGenerationCount", 0))

    def get_status(self, anonymous_id: str) -> Dict[str, Any]:
        max_generations = self.settings_crud.get_tokens().max_anonymous_generations
        count = self.get_today_count(anonymous_id)
        return {
            "count": count,
            "max": max_generations,
            "remaining": max(0, max_generations - count),
            "canGenerate": count < max_generations,
        }

    def can_generate(self, anonymous_id: str) -> bool:
        return self.get_status(anonymous_id)["canGenerate"]

    def increment(self, anonymous_id: str) -> int:
        """Record one generation for today. Returns today's count."""
        count = self.get_today_count(anonymous_id) + 1
        self.document(anonymous_id).set(
            {
                "todayGenerationCount": count,
                "lastGeneratedDate": today_key(),
                "updatedAt": utcnow(),
            },
            merge=True,
        )
        return count
