"""
PackWarden Schema Store

Revisioned log type schema records. Managed schemas ship with releases;
custom schemas are written by users, and neither may overwrite the other.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .revisioned_store import RevisionedRecordStore, StoredRecord

logger = logging.getLogger(__name__)

KIND_SCHEMA = "schema"


@dataclass
class SchemaRecord:
    """A log type schema and its revision."""
    name: str
    managed: bool = False
    release: str = ""
    description: str = ""
    reference_url: str = ""
    spec: str = ""
    disabled: bool = False
    revision: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def schema_record_id(name: str) -> str:
    return name.upper()


class SchemaStore:
    
    def __init__(self, records: RevisionedRecordStore):
        self.records = records
    
    def get_schema(self, name: str) -> Optional[SchemaRecord]:
        stored = self.records.get(KIND_SCHEMA, schema_record_id(name))
        return _to_schema(stored) if stored else None
    
    def scan_schemas(self) -> List[SchemaRecord]:
        return [_to_schema(stored) for stored in self.records.scan(KIND_SCHEMA)]
    
    def put_schema(self, record: SchemaRecord, user_id: str = "") -> SchemaRecord:
        """
        Write a schema record, expecting it to still be at ``record.revision``.
        
        Raises:
            ConflictError: NOT_MANAGED when a custom schema would replace a
                managed one (or the reverse), REVISION_CONFLICT when the
                stored schema has moved on
        """
        stored = self.records.put(
            KIND_SCHEMA,
            schema_record_id(record.name),
            expected_revision=record.revision,
            data={
                "name": record.name,
                "release": record.release,
                "description": record.description,
                "reference_url": record.reference_url,
                "spec": record.spec,
                "disabled": record.disabled,
            },
            managed=record.managed,
            user_id=user_id,
        )
        logger.info(f"Saved schema {record.name} at revision {stored.revision}")
        return _to_schema(stored)


def _to_schema(stored: StoredRecord) -> SchemaRecord:
    data = stored.data
    return SchemaRecord(
        name=data.get("name", stored.record_id),
        managed=stored.managed,
        release=data.get("release", ""),
        description=data.get("description", ""),
        reference_url=data.get("reference_url", ""),
        spec=data.get("spec", ""),
        disabled=bool(data.get("disabled", False)),
        revision=stored.revision,
        created_at=stored.created_at,
        updated_at=stored.updated_at,
    )
