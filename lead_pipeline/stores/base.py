"""Interface every record store backend implements."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

Document = Dict[str, Any]


class RecordStore(Protocol):
    """Minimal document-store surface used by the pipeline.

    Documents are plain dictionaries addressed by ``collection`` and
    ``doc_id``. Every method returns copies; mutating a returned document never
    changes stored state.
    """

    def get(self, collection: str, doc_id: str) -> Optional[Document]:  # pragma: no cover - protocol
        """Return the document or ``None`` when absent."""

    def create(self, collection: str, doc_id: str, data: Document) -> None:  # pragma: no cover - protocol
        """Insert a new document, raising ``DocumentExistsError`` if the id is taken."""

    def set(self, collection: str, doc_id: str, data: Document) -> None:  # pragma: no cover - protocol
        """Create or replace a document."""

    def update(self, collection: str, doc_id: str, changes: Document) -> Document:  # pragma: no cover - protocol
        """Merge top-level ``changes`` into an existing document and return the result."""

    def delete(self, collection: str, doc_id: str) -> bool:  # pragma: no cover - protocol
        """Remove a document, returning whether one existed."""

    def find(self, collection: str, field: str, value: Any) -> List[Document]:  # pragma: no cover - protocol
        """Return documents whose ``field`` equals ``value``."""

    def find_documents(self, collection: str, field: str) -> List[Document]:  # pragma: no cover - protocol
        """Return documents where ``field`` is present and not ``None``."""

    def increment(self, collection: str, doc_id: str, field: str, amount: int = 1) -> Document:  # pragma: no cover - protocol
        """Atomically add ``amount`` to a numeric field and return the updated document."""
