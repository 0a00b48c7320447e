"""
Item store: the single owner of the item collection.

All mutation of items happens through objects obtained from this store.
Components that hold an item across a slow call (the distillation worker)
re-locate it with ``get(id)`` afterwards instead of keeping the reference.
"""

import json
import logging
import threading
from typing import Any, Optional

from .document_store import DocumentStore
from .types import Collection, Item

logger = logging.getLogger(__name__)

# Key of the collection document in the key/value store
STORAGE_KEY = "seed_soil_data"


class ItemStore:
    """
    In-memory collection backed by a persisted JSON document.

    Access is serialized with a re-entrant lock; callers that need several
    reads and writes to be atomic can hold ``store.lock`` around them.
    """

    def __init__(self, doc_store: DocumentStore, *, key: str = STORAGE_KEY):
        self._doc_store = doc_store
        self._key = key
        self.lock = threading.RLock()
        self._collection = self._load()

    def _load(self) -> Collection:
        record = self._doc_store.get(self._key)
        if record is None:
            return Collection()
        try:
            collection = Collection.from_data(record.decode())
        except (json.JSONDecodeError, ValueError) as e:
            # Refuse to start from empty: the next save would overwrite the data
            raise ValueError(
                f"Stored collection under '{self._key}' is unreadable: {e}"
            ) from e
        logger.debug("Loaded %d items, %d gaps", len(collection.items), len(collection.gaps))
        return collection

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def items(self) -> list[Item]:
        """Current items, newest first. The list is a copy; items are live."""
        with self.lock:
            return list(self._collection.items)

    def gaps(self) -> list[str]:
        with self.lock:
            return list(self._collection.gaps)

    def get(self, item_id: str) -> Optional[Item]:
        with self.lock:
            return self._collection.find(item_id)

    def count(self) -> int:
        with self.lock:
            return len(self._collection.items)

    def snapshot(self) -> dict[str, Any]:
        """Serialized copy of the whole collection (safe to hand to another thread)."""
        with self.lock:
            return self._collection.to_dict()

    # -------------------------------------------------------------------------
    # Writes (in memory; call save() to persist)
    # -------------------------------------------------------------------------

    def add(self, item: Item) -> None:
        """Insert a newly captured item at the front (most recent first)."""
        with self.lock:
            self._collection.items.insert(0, item)

    def set_gaps(self, gaps: list[str]) -> None:
        """Replace gaps wholesale."""
        with self.lock:
            self._collection.gaps = list(gaps)

    def replace(self, collection: Collection) -> None:
        """Replace the whole collection (remote pull)."""
        with self.lock:
            self._collection = collection

    def clear(self) -> int:
        """Remove every item and gap. Returns the number of items removed."""
        with self.lock:
            removed = len(self._collection.items)
            self._collection = Collection()
            return removed

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self) -> None:
        """Persist the collection document."""
        with self.lock:
            self._doc_store.put(self._key, self._collection.to_dict())

    def close(self) -> None:
        self._doc_store.close()
