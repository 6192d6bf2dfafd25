"""
File-backed data store that persists across process restarts.
Replaces Firestore with a JSON-file-backed dict store.
Used when no Firebase credentials are found (local development and tests).
"""

import copy
import json
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from google.api_core.exceptions import NotFound

from editaja.utils.logger import get_logger
from editaja.utils.timeutils import utcnow

logger = get_logger(__name__)

_DATETIME_KEY = "__datetime__"


def _json_serial(obj):
    """JSON serializer for objects not serializable by default."""
    if isinstance(obj, datetime):
        return {_DATETIME_KEY: obj.isoformat()}
    raise TypeError(f"Type {type(obj)} not serializable")


def _json_revive(obj: dict):
    if len(obj) == 1 and _DATETIME_KEY in obj:
        return datetime.fromisoformat(obj[_DATETIME_KEY])
    return obj


def _matches(doc_val: Any, op: str, value: Any) -> bool:
    try:
        if op == "==":
            return doc_val == value
        if op == "!=":
            return doc_val != value
        if op == ">=":
            return doc_val >= value
        if op == "<=":
            return doc_val <= value
        if op == ">":
            return doc_val > value
        if op == "<":
            return doc_val < value
        if op == "in":
            return doc_val in value
        if op == "not-in":
            return doc_val not in value
        if op == "array_contains":
            return isinstance(doc_val, list) and value in doc_val
        if op == "array_contains_any":
            return isinstance(doc_val, list) and any(v in doc_val for v in value)
    except TypeError:
        return False
    raise ValueError(f"Unsupported filter operator: {op}")


class LocalStore:
    """File-backed data store that mimics the Firestore client operations we use."""

    def __init__(self, data_dir: Optional[str] = None):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.RLock()

        self._data_dir: Optional[Path] = Path(data_dir) if data_dir else None
        if self._data_dir is not None:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            self._load_data()

    def _load_data(self):
        """Load every persisted collection from the data dir."""
        for path in sorted(self._data_dir.glob("*.json")):
            with open(path) as f:
                self.collections[path.stem] = json.load(f, object_hook=_json_revive)
        logger.info(f"LocalStore loaded {len(self.collections)} collections from {self._data_dir}")

    def _persist(self, name: str):
        """Write a collection to disk as JSON."""
        if self._data_dir is None:
            return
        path = self._data_dir / f"{name}.json"
        try:
            with open(path, "w") as f:
                json.dump(self.collections.get(name, {}), f, indent=2, default=_json_serial)
        except OSError as e:
            logger.warning(f"LocalStore failed to persist '{name}': {e}")

    def collection(self, name: str) -> "CollectionRef":
        with self._lock:
            self.collections.setdefault(name, {})
        return CollectionRef(self, name)

    def transaction(self) -> "LocalTransaction":
        return LocalTransaction()

    @contextmanager
    def locked(self):
        with self._lock:
            yield

    def reset(self):
        """Drop all data (tests and `--reset` runs)."""
        with self._lock:
            names = list(self.collections)
            self.collections.clear()
            for name in names:
                if self._data_dir is not None:
                    (self._data_dir / f"{name}.json").unlink(missing_ok=True)


class CollectionRef:
    """Mimics a Firestore collection reference / query."""

    def __init__(self, store: LocalStore, name: str):
        self._store = store
        self._name = name
        self._filters: List[Tuple[str, str, Any]] = []
        self._orders: List[Tuple[str, str]] = []
        self._limit_val: Optional[int] = None
        self._offset_val: int = 0

    @property
    def id(self) -> str:
        return self._name

    def _clone(self) -> "CollectionRef":
        new_ref = CollectionRef(self._store, self._name)
        new_ref._filters = list(self._filters)
        new_ref._orders = list(self._orders)
        new_ref._limit_val = self._limit_val
        new_ref._offset_val = self._offset_val
        return new_ref

    def document(self, doc_id: Optional[str] = None) -> "DocumentRef":
        return DocumentRef(self._store, self._name, doc_id or uuid.uuid4().hex[:20])

    def where(self, field: str, op: str, value) -> "CollectionRef":
        new_ref = self._clone()
        new_ref._filters.append((field, op, value))
        return new_ref

    def order_by(self, field: str, direction: str = "ASCENDING") -> "CollectionRef":
        new_ref = self._clone()
        new_ref._orders.append((field, direction))
        return new_ref

    def limit(self, count: int) -> "CollectionRef":
        new_ref = self._clone()
        new_ref._limit_val = count
        return new_ref

    def offset(self, count: int) -> "CollectionRef":
        new_ref = self._clone()
        new_ref._offset_val = count
        return new_ref

    def get(self, transaction=None) -> List["DocumentSnapshot"]:
        with self._store._lock:
            results = [
                (doc_id, copy.deepcopy(doc))
                for doc_id, doc in self._store.collections.get(self._name, {}).items()
            ]

        # Firestore drops documents that lack a filtered field
        for field, op, value in self._filters:
            results = [
                (doc_id, doc)
                for doc_id, doc in results
                if field in doc and _matches(doc[field], op, value)
            ]

        # Ordering also drops documents missing the field, like Firestore
        for field, _ in self._orders:
            results = [(doc_id, doc) for doc_id, doc in results if doc.get(field) is not None]
        for field, direction in reversed(self._orders):
            results.sort(key=lambda item: item[1][field], reverse=direction == "DESCENDING")

        if self._offset_val:
            results = results[self._offset_val:]
        if self._limit_val is not None:
            results = results[: self._limit_val]

        return [
            DocumentSnapshot(doc_id, doc, DocumentRef(self._store, self._name, doc_id))
            for doc_id, doc in results
        ]

    def stream(self, transaction=None):
        return iter(self.get(transaction=transaction))

    def add(self, data: dict, document_id: Optional[str] = None):
        doc_ref = self.document(document_id)
        doc_ref.set(data)
        return utcnow(), doc_ref


class DocumentRef:
    """Mimics Firestore document reference."""

    def __init__(self, store: LocalStore, collection_name: str, doc_id: str):
        self._store = store
        self._name = collection_name
        self._id = doc_id

    @property
    def id(self) -> str:
        return self._id

    @property
    def path(self) -> str:
        return f"{self._name}/{self._id}"

    def _docs(self) -> Dict[str, dict]:
        return self._store.collections.setdefault(self._name, {})

    def get(self, transaction=None) -> "DocumentSnapshot":
        with self._store._lock:
            doc = self._docs().get(self._id)
            return DocumentSnapshot(self._id, copy.deepcopy(doc), self)

    def set(self, data: dict, merge: bool = False):
        with self._store._lock:
            docs = self._docs()
            if merge and self._id in docs:
                docs[self._id].update(copy.deepcopy(data))
            else:
                docs[self._id] = copy.deepcopy(data)
            self._store._persist(self._name)

    def update(self, data: dict):
        with self._store._lock:
            docs = self._docs()
            if self._id not in docs:
                raise NotFound(f"No document to update: {self.path}")
            docs[self._id].update(copy.deepcopy(data))
            self._store._persist(self._name)

    def delete(self):
        with self._store._lock:
            self._docs().pop(self._id, None)
            self._store._persist(self._name)


class DocumentSnapshot:
    """Mimics Firestore document snapshot."""

    def __init__(self, doc_id: str, data: Optional[dict], reference: Optional[DocumentRef] = None):
        self.id = doc_id
        self._data = data
        self.reference = reference

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[dict]:
        return copy.deepcopy(self._data)

    def get(self, field: str):
        """Field value; missing fields raise KeyError like Firestore."""
        if self._data is None:
            return None
        return self._data[field]


class LocalTransaction:
    """Write half of a Firestore transaction; the caller holds the store lock."""

    def set(self, ref: DocumentRef, data: dict, merge: bool = False):
        ref.set(data, merge=merge)

    def update(self, ref: DocumentRef, data: dict):
        ref.update(data)

    def delete(self, ref: DocumentRef):
        ref.delete()


# ── Singleton ────────────────────────────────────────────────────

_local_store: Optional[LocalStore] = None


def get_local_store(data_dir: Optional[str] = None) -> LocalStore:
    """Get or create the singleton LocalStore instance."""
    global _local_store
    if _local_store is None:
        _local_store = LocalStore(data_dir)
    return _local_store
