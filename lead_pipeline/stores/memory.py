"""Thread-safe in-process record store, optionally persisted to a JSON snapshot."""
from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import DocumentExistsError, RecordNotFoundError, StoreError
from .base import Document

LOGGER = logging.getLogger(__name__)


class MemoryRecordStore:
    """Dictionary-backed store; every operation holds a single lock."""

    def __init__(self, data: Optional[Dict[str, Dict[str, Document]]] = None) -> None:
        self._collections: Dict[str, Dict[str, Document]] = copy.deepcopy(data or {})
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    @classmethod
    def from_snapshot(cls, path: str | Path) -> "MemoryRecordStore":
        snapshot = Path(path)
        if not snapshot.exists():
            LOGGER.info("Snapshot %s does not exist yet - starting empty", snapshot)
            return cls()
        try:
            data = json.loads(snapshot.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Could not read snapshot '{snapshot}': {exc}") from exc
        return cls(data)

    def save_snapshot(self, path: str | Path) -> Path:
        destination = Path(path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            payload = json.dumps(self._collections, indent=2, sort_keys=True, ensure_ascii=False)
        destination.write_text(payload, encoding="utf-8")
        return destination

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            document = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(document) if document is not None else None

    def create(self, collection: str, doc_id: str, data: Document) -> None:
        with self._lock:
            documents = self._collections.setdefault(collection, {})
            if doc_id in documents:
                raise DocumentExistsError(collection, doc_id)
            documents[doc_id] = copy.deepcopy(data)

    def set(self, collection: str, doc_id: str, data: Document) -> None:
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def update(self, collection: str, doc_id: str, changes: Document) -> Document:
        with self._lock:
            documents = self._collections.get(collection, {})
            if doc_id not in documents:
                raise RecordNotFoundError(collection, doc_id)
            documents[doc_id].update(copy.deepcopy(changes))
            return copy.deepcopy(documents[doc_id])

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._collections.get(collection, {}).pop(doc_id, None) is not None

    def find(self, collection: str, field: str, value: Any) -> List[Document]:
        with self._lock:
            return [
                copy.deepcopy(document)
                for document in self._collections.get(collection, {}).values()
                if document.get(field) == value
            ]

    def find_documents(self, collection: str, field: str) -> List[Document]:
        with self._lock:
            return [
                copy.deepcopy(document)
                for document in self._collections.get(collection, {}).values()
                if document.get(field) is not None
            ]

    def increment(self, collection: str, doc_id: str, field: str, amount: int = 1) -> Document:
        with self._lock:
            documents = self._collections.get(collection, {})
            if doc_id not in documents:
                raise RecordNotFoundError(collection, doc_id)
            document = documents[doc_id]
            document[field] = int(document.get(field) or 0) + amount
            return copy.deepcopy(document)

    def collection(self, name: str) -> Dict[str, Document]:
        """Return a copy of every document in ``name`` keyed by id."""

        with self._lock:
            return copy.deepcopy(self._collections.get(name, {}))
