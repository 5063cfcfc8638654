"""
PackWarden Storage Package

Record store and data access layer.
"""

from .database import DatabaseManager
from .models import RecordRow
from .revisioned_store import RevisionedRecordStore, StoredRecord
from .detection_store import DetectionStore
from .pack_store import PackStore
from .schema_store import SchemaRecord, SchemaStore

__all__ = [
    "DatabaseManager",
    "RecordRow",
    "RevisionedRecordStore",
    "StoredRecord",
    "DetectionStore",
    "PackStore",
    "SchemaRecord",
    "SchemaStore",
]
