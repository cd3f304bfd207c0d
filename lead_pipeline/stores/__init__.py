"""Document store backends."""

from .base import Document, RecordStore
from .memory import MemoryRecordStore
from .mongo import MongoRecordStore

__all__ = ["Document", "MemoryRecordStore", "MongoRecordStore", "RecordStore"]
