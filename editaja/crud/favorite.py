"""
Favorite CRUD Operations
Styles a user bookmarked, keyed by a composite `{userId}_{styleId}` id.
"""

from typing import Any, Dict, List

from editaja.crud.base import BaseCRUD
from editaja.utils.timeutils import isoformat, utcnow


class FavoriteCRUD(BaseCRUD):
    """CRUD operations for favorite documents."""

    @property
    def collection_name(self) -> str:
        return "favorites"

    @staticmethod
    def _doc_id(user_id: str, style_id: str) -> str:
        return f"{user_id}_{style_id}"

    def add_favorite(self, user_id: str, style: Dict[str, Any]) -> str:
        """Bookmark a style, storing a snapshot so the list survives style edits."""
        doc_id = self._doc_id(user_id, style["id"])
        self.document(doc_id).set(
            {
                "userId": user_id,
                "styleId": style["id"],
                "styleName": style.get("name", ""),
                "stylePrompt": style.get("prompt", ""),
                "styleImageUrl": style.get("imageUrl", ""),
                "createdAt": utcnow(),
            }
        )
        return doc_id

    def remove_favorite(self, user_id: str, style_id: str) -> None:
        self.delete(self._doc_id(user_id, style_id))

    def is_favorite(self, user_id: str, style_id: str) -> bool:
        return self.exists(self._doc_id(user_id, style_id))

    def get_user_favorites(self, user_id: str) -> List[Dict[str, Any]]:
        favorites = self.list(filters=[("userId", "==", user_id)])
        favorites.sort(key=lambda f: isoformat(f.get("createdAt")) or "", reverse=True)
        return favorites

    def get_user_favorite_style_ids(self, user_id: str) -> List[str]:
        return [fav["styleId"] for fav in self.get_user_favorites(user_id)]

    def delete_user_favorites(self, user_id: str) -> int:
        return self.delete_where([("userId", "==", user_id)])
