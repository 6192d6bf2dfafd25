"""
Base CRUD Class
Base class for Firestore CRUD operations.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from google.cloud import firestore
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from editaja.services.local_store import LocalStore
from editaja.utils.exceptions import ValidationError
from editaja.utils.timeutils import utcnow

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

DESCENDING = "DESCENDING"
ASCENDING = "ASCENDING"


def snapshot_to_dict(doc) -> Dict[str, Any]:
    """Flatten a document snapshot into a dict carrying its id."""
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def run_transaction(db, callback: Callable[[Any], T]) -> T:
    """
    Run ``callback(transaction)`` atomically.

    On Firestore this uses ``firestore.transactional`` (with its automatic
    retries), so the callback must read through ``ref.get(transaction=...)``
    and write through the transaction object. The local store serialises the
    callback under its lock instead.
    """
    if isinstance(db, LocalStore):
        with db.locked():
            return callback(db.transaction())

    @firestore.transactional
    def _run(transaction):
        return callback(transaction)

    return _run(db.transaction())


class BaseCRUD(ABC):
    """
    Base CRUD class for Firestore operations.

    Works against both the Firestore client and the local store.
    """

    def __init__(self, db):
        """
        Initialize CRUD with a database client.

        Args:
            db: Firestore client or LocalStore instance
        """
        self.db = db

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Get collection name. Must be implemented by subclass."""

    def get_collection(self) -> Any:
        """Get collection reference."""
        return self.db.collection(self.collection_name)

    def document(self, doc_id: str) -> Any:
        return self.get_collection().document(doc_id)

    def create(self, data: Dict[str, Any], doc_id: Optional[str] = None) -> str:
        """
        Create a new document.

        Args:
            data: Document data dictionary
            doc_id: Explicit document id, generated when omitted

        Returns:
            Created document ID
        """
        data.setdefault("createdAt", utcnow())
        doc_ref = self.get_collection().document(doc_id) if doc_id else self.get_collection().document()
        doc_ref.set(data)
        return doc_ref.id

    def get_by_id(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Get document by ID.

        Returns:
            Document data or None if not found
        """
        doc = self.document(doc_id).get()
        if doc.exists:
            return snapshot_to_dict(doc)
        return None

    def update(self, doc_id: str, data: Dict[str, Any]) -> None:
        """Update fields of an existing document (NotFound if missing)."""
        data["updatedAt"] = utcnow()
        self.document(doc_id).update(data)

    def delete(self, doc_id: str) -> bool:
        self.document(doc_id).delete()
        return True

    def exists(self, doc_id: str) -> bool:
        return self.document(doc_id).get().exists

    def query(
        self,
        filters: Optional[List[tuple]] = None,
        order_by: Optional[str] = None,
        direction: str = ASCENDING,
        limit: Optional[int] = None,
    ) -> Any:
        query = self.get_collection()
        for field, operator, value in filters or []:
            query = query.where(field, operator, value)
        if order_by:
            query = query.order_by(order_by, direction=direction)
        if limit:
            query = query.limit(limit)
        return query

    def list(
        self,
        filters: Optional[List[tuple]] = None,
        order_by: Optional[str] = None,
        direction: str = ASCENDING,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        List documents with optional filters, ordering and limit.

        Args:
            filters: List of (field, operator, value) tuples
            order_by: Field to order results by
            direction: ASCENDING or DESCENDING
            limit: Maximum number of documents

        Returns:
            List of document dicts (each carrying its ``id``)
        """
        docs = self.query(filters, order_by, direction, limit).get()
        return [snapshot_to_dict(doc) for doc in docs]

    def paginate(
        self,
        filters: Optional[List[tuple]] = None,
        page: int = 1,
        page_size: int = 20,
        order_by: Optional[str] = None,
        direction: str = ASCENDING,
    ) -> Dict[str, Any]:
        """List documents with pagination info."""
        total = self.count(filters)
        query = self.query(filters, order_by, direction)
        docs = query.offset((page - 1) * page_size).limit(page_size).get()
        return {
            "items": [snapshot_to_dict(doc) for doc in docs],
            "total": total,
            "page": page,
            "page_size": page_size,
            "has_more": (page * page_size) < total,
        }

    def count(self, filters: Optional[List[tuple]] = None) -> int:
        return len(self.query(filters).get())

    def delete_where(self, filters: List[tuple]) -> int:
        """Delete every document matching the filters, returning the count."""
        docs = self.query(filters).get()
        for doc in docs:
            doc.reference.delete()
        return len(docs)


def validate_model(model: Type[M], data: Dict[str, Any]) -> M:
    """Validate ``data`` into ``model``, raising a 400 ValidationError on failure."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        errors = e.errors()
        message = str(errors[0].get("msg", "Invalid data")).removeprefix("Value error, ")
        raise ValidationError(
            message,
            details={"errors": [{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in errors]},
        ) from e
