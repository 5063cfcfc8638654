"""
PackWarden Pack Store

Data access layer for pack records.
"""

import logging
from dataclasses import replace
from typing import List, Optional

from .revisioned_store import RevisionedRecordStore, StoredRecord
from ..packs.models import PackRecord

logger = logging.getLogger(__name__)

KIND_PACK = "pack"


class PackStore:
    """
    Reads and conditionally writes pack records. Packs are always managed.
    """
    
    def __init__(self, records: RevisionedRecordStore):
        self.records = records
    
    def get(self, pack_id: str) -> Optional[PackRecord]:
        stored = self.records.get(KIND_PACK, pack_id)
        return _to_pack(stored) if stored else None
    
    def list_packs(self) -> List[PackRecord]:
        return [_to_pack(stored) for stored in self.records.scan(KIND_PACK)]
    
    def put(self, pack: PackRecord, user_id: str) -> PackRecord:
        """
        Write a pack, expecting it to still be at ``pack.revision``.
        
        Raises:
            ConflictError: The stored pack changed since it was read
        """
        stored = self.records.put(
            KIND_PACK,
            pack.id,
            expected_revision=pack.revision,
            data=pack.to_dict(),
            managed=True,
            user_id=user_id,
        )
        logger.info(f"Saved pack {pack.id} at revision {stored.revision}")
        return _to_pack(stored)


def _to_pack(stored: StoredRecord) -> PackRecord:
    pack = PackRecord.from_dict({**stored.data, "id": stored.record_id})
    return replace(
        pack,
        revision=stored.revision,
        created_at=stored.created_at,
        updated_at=stored.updated_at,
        created_by=stored.created_by,
        last_modified_by=stored.last_modified_by,
    )
