"""
Style CRUD Operations
Database operations for admin-curated styles.
"""

import random
import string
import time
from collections import Counter
from typing import Any, Dict, List, Optional

from editaja.crud.base import DESCENDING, BaseCRUD, snapshot_to_dict, validate_model
from editaja.models.style import StyleImportItem, StyleModel, StyleStatus
from editaja.utils.exceptions import NotFoundError
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import isoformat, utcnow

logger = get_logger(__name__)

TRENDING_LIMIT = 6


def generate_style_code(counter: int = 0) -> str:
    """Style code used as the name of imported styles."""
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"STYLE-{int(time.time() * 1000)}-{counter}-{suffix}"


class StyleCRUD(BaseCRUD):
    """CRUD operations for style documents."""

    @property
    def collection_name(self) -> str:
        return "styles"

    def get_styles(self) -> List[Dict[str, Any]]:
        """All styles, newest first."""
        return self.list(order_by="createdAt", direction=DESCENDING)

    def get_active_styles(self) -> List[Dict[str, Any]]:
        styles = self.list(filters=[("status", "==", StyleStatus.ACTIVE.value)])
        styles.sort(key=lambda s: isoformat(s.get("createdAt")) or "", reverse=True)
        return styles

    def get_style(self, style_id: str) -> Dict[str, Any]:
        style = self.get_by_id(style_id)
        if not style:
            raise NotFoundError("Style not found")
        return style

    def create_style(self, style: StyleModel) -> str:
        doc_id = self.create(style.to_dict())
        logger.info(f"Style created: {style.name} ({doc_id})")
        return doc_id

    def update_style(self, style_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """Validate the merged document and store it."""
        current = self.get_style(style_id)
        merged = validate_model(StyleModel, {**current, **values, "updatedAt": utcnow()})
        data = merged.to_dict()
        data.pop("createdAt", None)
        self.update(style_id, data)
        return {**current, **data}

    def delete_style(self, style_id: str) -> None:
        self.get_style(style_id)
        self.delete(style_id)
        logger.info(f"Style deleted: {style_id}")

    def delete_all_styles(self) -> int:
        docs = self.get_collection().get()
        for doc in docs:
            doc.reference.delete()
        logger.warning(f"Deleted all {len(docs)} styles")
        return len(docs)

    def search_styles(self, term: str) -> List[Dict[str, Any]]:
        """
        Search styles by name prefix, falling back to a substring match.

        The prefix query mirrors Firestore's `>=`/`<=` range trick. When it
        finds nothing the whole collection is scanned case-insensitively.
        """
        term = term.strip()
        if not term:
            return self.get_styles()

        prefix_hits = self.list(filters=[("name", ">=", term), ("name", "<=", term + "\uf8ff")])
        if prefix_hits:
            return prefix_hits

        needle = term.lower()

        def _matches(style: Dict[str, Any]) -> bool:
            haystack = [style.get("name", ""), style.get("prompt", ""), style.get("category", "")]
            haystack.extend(style.get("tags") or [])
            return any(needle in str(value).lower() for value in haystack)

        return [style for style in self.get_styles() if _matches(style)]

    def get_trending_styles(self, limit: int = TRENDING_LIMIT) -> List[Dict[str, Any]]:
        """
        Active styles ranked by how often they were generated.

        Falls back to the first active styles when nothing was generated yet.
        """
        active = self.get_active_styles()
        if not active:
            return []

        usage = Counter(
            data.get("styleId")
            for data in (doc.to_dict() for doc in self.db.collection("generations").get())
            if data.get("styleId")
        )
        used = [dict(style, usageCount=usage[style["id"]]) for style in active if usage[style["id"]] > 0]
        if not used:
            return [dict(style, usageCount=0) for style in active[:limit]]

        used.sort(key=lambda s: s["usageCount"], reverse=True)
        return used[:limit]

    def import_styles(self, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Bulk-create styles from an uploaded JSON array.

        Entries whose prompt already exists (case-insensitive, including
        earlier entries in the same file) are skipped.
        """
        existing_prompts = {
            (doc.to_dict().get("prompt") or "").strip().lower() for doc in self.get_collection().get()
        }
        created: List[str] = []
        skipped = 0
        errors: List[Dict[str, Any]] = []

        for index, raw in enumerate(items):
            if not isinstance(raw, dict):
                errors.append({"index": index + 1, "error": "Entry must be an object"})
                continue
            if not isinstance(raw.get("prompt"), str) or not raw["prompt"].strip():
                errors.append({"index": index + 1, "error": '"prompt" is required and must be a string'})
                continue

            item = StyleImportItem.model_validate(raw)
            normalized = item.prompt.strip().lower()
            if normalized in existing_prompts:
                skipped += 1
                continue
            existing_prompts.add(normalized)

            style = StyleModel(
                name=generate_style_code(len(created)),
                prompt=item.prompt,
                image_url=item.image_url,
                status=StyleStatus.INACTIVE if item.status == StyleStatus.INACTIVE.value else StyleStatus.ACTIVE,
                category=item.category if isinstance(item.category, str) else "",
                tags=[t for t in (item.tags or []) if isinstance(t, str)],
            )
            created.append(self.create_style(style))

        logger.info(f"Style import: {len(created)} created, {skipped} duplicates, {len(errors)} invalid")
        return {"created": len(created), "skipped": skipped, "errors": errors, "ids": created}

    def get_style_map(self, style_ids: Optional[List[str]] = None) -> Dict[str, Dict[str, Any]]:
        docs = self.get_collection().get()
        styles = {doc.id: snapshot_to_dict(doc) for doc in docs}
        if style_ids is not None:
            return {sid: styles[sid] for sid in style_ids if sid in styles}
        return styles
