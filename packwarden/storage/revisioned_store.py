"""
PackWarden Revisioned Record Store

Conditional writes with per-record revision numbers.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import RecordRow
from ..packs.errors import ConflictError, ConflictReason
from ..utils import get_current_timestamp, safe_json_loads

logger = logging.getLogger(__name__)


@dataclass
class StoredRecord:
    """A record document together with its store bookkeeping."""
    kind: str
    record_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    managed: bool = True
    revision: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: str = ""
    last_modified_by: str = ""

    @classmethod
    def from_row(cls, row: RecordRow) -> "StoredRecord":
        return cls(
            kind=row.kind,
            record_id=row.record_id,
            data=safe_json_loads(row.data, default={}),
            managed=row.managed,
            revision=row.revision,
            created_at=row.created_at,
            updated_at=row.updated_at,
            created_by=row.created_by or "",
            last_modified_by=row.last_modified_by or "",
        )


class RevisionedRecordStore:
    """
    Optimistic-concurrency writes over the ``records`` table.

    A put succeeds when the record does not exist yet (it is created at
    revision 1) or when the caller's expected revision and ownership flag both
    match the stored record (the revision is then incremented by one). Any
    other put fails with a ConflictError that says whether the stored record
    belongs to a different owner or has simply moved on to a newer revision.

    Every call runs in its own transaction. Nothing is retried here.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        """
        Initialize the store.

        Args:
            session_factory: Callable returning a new SQLAlchemy session
        """
        self._session_factory = session_factory

    def get(self, kind: str, record_id: str) -> Optional[StoredRecord]:
        with self._session_factory() as session:
            row = session.get(RecordRow, (kind, record_id))
            return StoredRecord.from_row(row) if row else None

    def scan(self, kind: str, ids: Optional[Iterable[str]] = None) -> List[StoredRecord]:
        """
        Return all records of a kind, optionally filtered by id.

        Args:
            kind: Record kind
            ids: Only return records whose id matches one of these, ignoring case

        Returns:
            Matching records ordered by id
        """
        query = select(RecordRow).where(RecordRow.kind == kind)
        if ids is not None:
            lowered = {record_id.lower() for record_id in ids}
            if not lowered:
                return []
            query = query.where(RecordRow.lower_id.in_(lowered))
        query = query.order_by(RecordRow.record_id)

        with self._session_factory() as session:
            return [StoredRecord.from_row(row) for row in session.scalars(query)]

    def put(
        self,
        kind: str,
        record_id: str,
        expected_revision: int,
        data: Dict[str, Any],
        managed: bool = True,
        user_id: str = "",
    ) -> StoredRecord:
        """
        Conditionally write a record.

        Args:
            kind: Record kind
            record_id: Record id
            expected_revision: Revision the caller last read (0 for a new record)
            data: Full record document
            managed: Ownership flag the caller expects the record to carry
            user_id: Identity performing the write

        Returns:
            The stored record at its new revision

        Raises:
            ConflictError: The stored record has a different owner or revision
            TypeError: The document is not JSON serializable; nothing is written
        """
        now = get_current_timestamp()
        payload = json.dumps(data, sort_keys=True)

        with self._session_factory() as session:
            result = session.execute(
                update(RecordRow)
                .where(
                    RecordRow.kind == kind,
                    RecordRow.record_id == record_id,
                    RecordRow.revision == expected_revision,
                    RecordRow.managed == managed,
                )
                .values(
                    data=payload,
                    revision=RecordRow.revision + 1,
                    last_modified_by=user_id,
                    updated_at=now,
                )
            )
            if result.rowcount == 1:
                row = session.get(RecordRow, (kind, record_id), populate_existing=True)
                stored = StoredRecord.from_row(row)
                session.commit()
                logger.debug(f"Updated {kind} {record_id} to revision {stored.revision}")
                return stored

            row = RecordRow(
                kind=kind,
                record_id=record_id,
                lower_id=record_id.lower(),
                managed=managed,
                revision=1,
                data=payload,
                created_by=user_id,
                last_modified_by=user_id,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise self._explain_conflict(session, kind, record_id, managed)

            logger.debug(f"Created {kind} {record_id} at revision 1")
            return StoredRecord.from_row(row)

    def _explain_conflict(
        self,
        session: Session,
        kind: str,
        record_id: str,
        managed: bool,
    ) -> ConflictError:
        row = session.get(RecordRow, (kind, record_id), populate_existing=True)
        if row is not None and row.managed != managed:
            return ConflictError(kind, record_id, ConflictReason.NOT_MANAGED)
        stored_revision = row.revision if row is not None else None
        return ConflictError(
            kind, record_id, ConflictReason.REVISION_CONFLICT, stored_revision=stored_revision
        )
