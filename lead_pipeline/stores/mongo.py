"""MongoDB-backed record store."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from pymongo import MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..errors import DocumentExistsError, RecordNotFoundError, StoreError
from .base import Document

LOGGER = logging.getLogger(__name__)


def _strip_id(document: Optional[Document]) -> Optional[Document]:
    if document is None:
        return None
    document = dict(document)
    document.pop("_id", None)
    return document


class MongoRecordStore:
    """Record store over a pymongo database; document ids map to ``_id``."""

    def __init__(self, database) -> None:
        self._db = database

    @classmethod
    def from_url(cls, url: str, database: str, *, timeout_ms: int = 2000) -> "MongoRecordStore":
        try:
            client = MongoClient(url, serverSelectionTimeoutMS=timeout_ms)
            client.server_info()
        except PyMongoError as exc:
            raise StoreError(f"Could not connect to MongoDB at {url}: {exc}") from exc
        LOGGER.info("Connected to MongoDB database %s", database)
        return cls(client[database])

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        try:
            return _strip_id(self._db[collection].find_one({"_id": doc_id}))
        except PyMongoError as exc:
            raise StoreError(f"Failed to read {collection}/{doc_id}: {exc}") from exc

    def create(self, collection: str, doc_id: str, data: Document) -> None:
        try:
            self._db[collection].insert_one({**data, "_id": doc_id})
        except DuplicateKeyError as exc:
            raise DocumentExistsError(collection, doc_id) from exc
        except PyMongoError as exc:
            raise StoreError(f"Failed to create {collection}/{doc_id}: {exc}") from exc

    def set(self, collection: str, doc_id: str, data: Document) -> None:
        try:
            self._db[collection].replace_one({"_id": doc_id}, {**data, "_id": doc_id}, upsert=True)
        except PyMongoError as exc:
            raise StoreError(f"Failed to write {collection}/{doc_id}: {exc}") from exc

    def update(self, collection: str, doc_id: str, changes: Document) -> Document:
        try:
            updated = self._db[collection].find_one_and_update(
                {"_id": doc_id},
                {"$set": dict(changes)},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise StoreError(f"Failed to update {collection}/{doc_id}: {exc}") from exc
        if updated is None:
            raise RecordNotFoundError(collection, doc_id)
        return _strip_id(updated)

    def delete(self, collection: str, doc_id: str) -> bool:
        try:
            result = self._db[collection].delete_one({"_id": doc_id})
        except PyMongoError as exc:
            raise StoreError(f"Failed to delete {collection}/{doc_id}: {exc}") from exc
        return result.deleted_count > 0

    def find(self, collection: str, field: str, value: Any) -> List[Document]:
        try:
            return [_strip_id(document) for document in self._db[collection].find({field: value})]
        except PyMongoError as exc:
            raise StoreError(f"Failed to query {collection} by {field}: {exc}") from exc

    def find_documents(self, collection: str, field: str) -> List[Document]:
        try:
            cursor = self._db[collection].find({field: {"$exists": True, "$ne": None}})
            return [_strip_id(document) for document in cursor]
        except PyMongoError as exc:
            raise StoreError(f"Failed to query {collection} by {field}: {exc}") from exc

    def increment(self, collection: str, doc_id: str, field: str, amount: int = 1) -> Document:
        try:
            updated = self._db[collection].find_one_and_update(
                {"_id": doc_id},
                {"$inc": {field: amount}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise StoreError(f"Failed to increment {collection}/{doc_id}.{field}: {exc}") from exc
        if updated is None:
            raise RecordNotFoundError(collection, doc_id)
        return _strip_id(updated)
