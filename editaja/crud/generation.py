"""
Generation CRUD Operations
Completed style generations for user history and the admin gallery.
"""

from typing import Any, Dict, List, Optional

from editaja.crud.base import DESCENDING, BaseCRUD
from editaja.models.generation import GenerationModel
from editaja.utils.exceptions import AuthorizationError, NotFoundError
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import isoformat

logger = get_logger(__name__)


def _newest_first(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    items.sort(key=lambda g: isoformat(g.get("createdAt")) or "", reverse=True)
    return items


class GenerationCRUD(BaseCRUD):
    """CRUD operations for generation documents."""

    @property
    def collection_name(self) -> str:
        return "generations"

    def save_generation(self, generation: GenerationModel) -> str:
        doc_id = self.create(generation.to_dict())
        logger.info(f"Generation saved: {doc_id} (user {generation.user_id}, style {generation.style_id})")
        return doc_id

    def get_generations(
        self,
        style_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Generations newest first, optionally filtered by style and/or user."""
        filters = []
        if style_id:
            filters.append(("styleId", "==", style_id))
        if user_id:
            filters.append(("userId", "==", user_id))
        if not filters:
            return self.list(order_by="createdAt", direction=DESCENDING, limit=limit)
        # Equality filters sorted in memory to avoid composite indexes
        items = _newest_first(self.list(filters=filters))
        return items[:limit] if limit else items

    def get_user_generations(self, user_id: str) -> List[Dict[str, Any]]:
        return self.get_generations(user_id=user_id)

    def get_style_names(self) -> List[str]:
        names = {data.get("styleName") for data in (doc.to_dict() for doc in self.get_collection().get()) if data.get("styleName")}
        return sorted(names)

    def get_owned(self, generation_id: str, user_id: str) -> Dict[str, Any]:
        """Fetch a generation, enforcing that ``user_id`` owns it."""
        generation = self.get_by_id(generation_id)
        if not generation:
            raise NotFoundError("Generation not found")
        if generation.get("userId") != user_id:
            raise AuthorizationError("Unauthorized: You can only delete your own generations")
        return generation

    def get_or_404(self, generation_id: str) -> Dict[str, Any]:
        generation = self.get_by_id(generation_id)
        if not generation:
            raise NotFoundError("Generation not found")
        return generation

    def delete_user_generations(self, user_id: str) -> List[Dict[str, Any]]:
        """Delete all generations of a user and return what was deleted."""
        generations = self.list(filters=[("userId", "==", user_id)])
        for generation in generations:
            self.delete(generation["id"])
        return generations
