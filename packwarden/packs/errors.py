"""
PackWarden Errors

Typed failures raised by release verification, pack operations and the
revisioned record store.
"""

from enum import Enum
from typing import List, Optional


class PackWardenError(Exception):
    """Base class for all PackWarden failures."""


class ReleaseRepositoryError(PackWardenError):
    """The remote release repository could not be reached or answered badly."""


class InvalidVersionError(PackWardenError):
    """The release name does not match the repository tag for its id."""


class MissingAssetsError(PackWardenError):
    """The release is missing its bundle or signature asset."""

    def __init__(self, release_name: str, missing: List[str]):
        self.release_name = release_name
        self.missing = missing
        super().__init__(f"missing assets in release {release_name}: {', '.join(missing)}")


class SignatureInvalidError(PackWardenError):
    """The bundle signature does not verify against the trusted key."""


class BundleFormatError(PackWardenError):
    """The bundle archive or one of its specs could not be parsed."""


class NotFoundError(PackWardenError):
    """A pack, or a version of a pack, does not exist."""


class InvalidRequestError(PackWardenError):
    """The request is well formed but not permitted in the current state."""


class ConflictReason(str, Enum):
    """Why a conditional write was rejected."""
    NOT_MANAGED = "not_managed"
    REVISION_CONFLICT = "revision_conflict"


class ConflictError(PackWardenError):
    """
    A conditional write lost against the stored record.

    ``reason`` tells apart an ownership mismatch (the stored record belongs to
    a different domain and must not be touched) from a stale read, in which
    case ``stored_revision`` is the revision to re-read and retry against.
    """

    def __init__(
        self,
        kind: str,
        record_id: str,
        reason: ConflictReason,
        stored_revision: Optional[int] = None,
    ):
        self.kind = kind
        self.record_id = record_id
        self.reason = reason
        self.stored_revision = stored_revision

        if reason == ConflictReason.NOT_MANAGED:
            message = f"{kind} record {record_id!r} belongs to a different owner"
        else:
            message = f"{kind} record {record_id!r} is at revision {stored_revision}"
        super().__init__(message)


class BatchWriteError(PackWardenError):
    """A multi-record write stopped partway; earlier writes remain applied."""

    def __init__(self, kind: str, failed_id: str, applied_ids: List[str], cause: Exception):
        self.kind = kind
        self.failed_id = failed_id
        self.applied_ids = applied_ids
        self.cause = cause
        super().__init__(
            f"writing {kind} {failed_id!r} failed after {len(applied_ids)} "
            f"successful writes: {cause}"
        )
