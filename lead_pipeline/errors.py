"""Exception hierarchy shared across the pipeline."""
from __future__ import annotations


class LeadPipelineError(Exception):
    """Base class for errors surfaced to callers of the pipeline."""


class StoreError(LeadPipelineError):
    """Raised when the record store cannot complete a read or write."""


class RecordNotFoundError(LeadPipelineError):
    """Raised when a document that an operation depends on does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"{collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class DocumentExistsError(StoreError):
    """Raised when creating a document whose identifier is already taken."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"{collection}/{doc_id} already exists")
        self.collection = collection
        self.doc_id = doc_id


class DuplicateRecordError(LeadPipelineError):
    """Raised when a single-record operation targets a phone number already on file."""

    def __init__(self, phone_number: str, duplicate_type: str, record_id: str | None = None) -> None:
        message = f"Phone number {phone_number} already exists in {duplicate_type}"
        if record_id:
            message += f" ({record_id})"
        super().__init__(message)
        self.phone_number = phone_number
        self.duplicate_type = duplicate_type
        self.record_id = record_id


__all__ = [
    "DocumentExistsError",
    "DuplicateRecordError",
    "LeadPipelineError",
    "RecordNotFoundError",
    "StoreError",
]
