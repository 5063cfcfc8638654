"""
PackWarden Detection Store

Data access layer for detection records.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, Optional

from .revisioned_store import RevisionedRecordStore, StoredRecord
from ..packs.models import DetectionRecord

logger = logging.getLogger(__name__)

KIND_DETECTION = "detection"


class DetectionStore:
    """
    Reads and conditionally writes detection records.
    """
    
    def __init__(self, records: RevisionedRecordStore):
        self.records = records
    
    def get(self, detection_id: str) -> Optional[DetectionRecord]:
        stored = self.records.get(KIND_DETECTION, detection_id)
        return _to_detection(stored) if stored else None
    
    def find_by_ids(self, detection_ids: Iterable[str]) -> Dict[str, DetectionRecord]:
        """
        Find all stored detections whose id matches one of the given ids.
        
        Matching ignores case, so a pack listing ``AWS.Root.Login`` finds a
        detection stored as ``aws.root.login``.
        
        Args:
            detection_ids: Ids to look for
            
        Returns:
            Matching detections keyed by their stored id
        """
        stored = self.records.scan(KIND_DETECTION, ids=list(detection_ids))
        return {record.record_id: _to_detection(record) for record in stored}
    
    def list_detections(self) -> Dict[str, DetectionRecord]:
        return {
            record.record_id: _to_detection(record)
            for record in self.records.scan(KIND_DETECTION)
        }
    
    def put(self, detection: DetectionRecord, user_id: str) -> DetectionRecord:
        """
        Write a detection, expecting it to still be at ``detection.revision``.
        
        Raises:
            ConflictError: The stored detection changed or has another owner
        """
        stored = self.records.put(
            KIND_DETECTION,
            detection.id,
            expected_revision=detection.revision,
            data=detection.to_dict(),
            managed=detection.managed,
            user_id=user_id,
        )
        return _to_detection(stored)


def _to_detection(stored: StoredRecord) -> DetectionRecord:
    detection = DetectionRecord.from_dict({**stored.data, "id": stored.record_id})
    return replace(
        detection,
        managed=stored.managed,
        revision=stored.revision,
        created_at=stored.created_at,
        updated_at=stored.updated_at,
        created_by=stored.created_by,
        last_modified_by=stored.last_modified_by,
    )
