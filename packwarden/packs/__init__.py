"""
PackWarden Packs Package

Pack reconciliation and version switching.
"""

from .errors import (
    BatchWriteError,
    BundleFormatError,
    ConflictError,
    ConflictReason,
    InvalidRequestError,
    InvalidVersionError,
    MissingAssetsError,
    NotFoundError,
    PackWardenError,
    ReleaseRepositoryError,
    SignatureInvalidError,
)
from .models import (
    SYSTEM_USER_ID,
    DetectionRecord,
    DetectionType,
    PackDefinition,
    PackRecord,
    Release,
)
from .reconciler import PackReconciler
from .switcher import PackVersionSwitcher

__all__ = [
    "BatchWriteError",
    "BundleFormatError",
    "ConflictError",
    "ConflictReason",
    "InvalidRequestError",
    "InvalidVersionError",
    "MissingAssetsError",
    "NotFoundError",
    "PackWardenError",
    "ReleaseRepositoryError",
    "SignatureInvalidError",
    "SYSTEM_USER_ID",
    "DetectionRecord",
    "DetectionType",
    "PackDefinition",
    "PackRecord",
    "Release",
    "PackReconciler",
    "PackVersionSwitcher",
]
