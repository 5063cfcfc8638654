"""
PackWarden Pack Models

Releases, detections and packs as they move between release bundles and the
record store.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set

# Reserved identity used for records written by the system itself
SYSTEM_USER_ID = "00000000-0000-4000-8000-000000000000"


@dataclass(frozen=True)
class Release:
    """A release of the remote content repository. Identity is the pair."""
    id: int
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Release":
        return cls(id=int(data["id"]), name=str(data["name"]))


class DetectionType(str, Enum):
    RULE = "rule"
    POLICY = "policy"
    GLOBAL = "global"
    DATA_MODEL = "data-model"


class FieldPolicy(str, Enum):
    """How a pack switch treats a detection field that already exists locally."""
    FROM_RELEASE = "from_release"  # overwritten with the release value
    FROM_PACK = "from_pack"  # follows the pack's enabled flag
    PRESERVE = "preserve"  # local tuning, never clobbered


@dataclass
class DetectionRecord:
    """
    A single rule/policy/global/data-model definition.
    """
    id: str
    type: DetectionType = DetectionType.RULE
    body: str = ""
    description: str = ""
    display_name: str = ""
    enabled: bool = False
    resource_types: Set[str] = field(default_factory=set)  # aka log types
    reference: str = ""
    reports: Dict[str, List[str]] = field(default_factory=dict)
    runbook: str = ""
    tags: Set[str] = field(default_factory=set)
    tests: List[Dict[str, Any]] = field(default_factory=list)

    # Locally tunable
    severity: str = "INFO"
    threshold: int = 1
    dedup_period_minutes: int = 60
    output_ids: List[str] = field(default_factory=list)

    # Store bookkeeping
    managed: bool = True
    revision: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: str = ""
    last_modified_by: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "body": self.body,
            "description": self.description,
            "display_name": self.display_name,
            "enabled": self.enabled,
            "resource_types": sorted(self.resource_types),
            "reference": self.reference,
            "reports": self.reports,
            "runbook": self.runbook,
            "tags": sorted(self.tags),
            "tests": self.tests,
            "severity": self.severity,
            "threshold": self.threshold,
            "dedup_period_minutes": self.dedup_period_minutes,
            "output_ids": list(self.output_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionRecord":
        return cls(
            id=data["id"],
            type=DetectionType(data.get("type", DetectionType.RULE.value)),
            body=data.get("body", ""),
            description=data.get("description", ""),
            display_name=data.get("display_name", ""),
            enabled=bool(data.get("enabled", False)),
            resource_types=set(data.get("resource_types") or []),
            reference=data.get("reference", ""),
            reports=data.get("reports") or {},
            runbook=data.get("runbook", ""),
            tags=set(data.get("tags") or []),
            tests=data.get("tests") or [],
            severity=data.get("severity", "INFO"),
            threshold=int(data.get("threshold", 1)),
            dedup_period_minutes=int(data.get("dedup_period_minutes", 60)),
            output_ids=list(data.get("output_ids") or []),
        )


# Adding a content field to DetectionRecord requires one entry here.
DETECTION_FIELD_POLICY: Dict[str, FieldPolicy] = {
    "body": FieldPolicy.FROM_RELEASE,
    "description": FieldPolicy.FROM_RELEASE,
    "display_name": FieldPolicy.FROM_RELEASE,
    "enabled": FieldPolicy.FROM_PACK,
    "resource_types": FieldPolicy.FROM_RELEASE,
    "reference": FieldPolicy.FROM_RELEASE,
    "reports": FieldPolicy.FROM_RELEASE,
    "runbook": FieldPolicy.FROM_RELEASE,
    "tags": FieldPolicy.FROM_RELEASE,
    "tests": FieldPolicy.FROM_RELEASE,
    "severity": FieldPolicy.PRESERVE,
    "threshold": FieldPolicy.PRESERVE,
    "dedup_period_minutes": FieldPolicy.PRESERVE,
    "output_ids": FieldPolicy.PRESERVE,
}

# Identity and bookkeeping fields are never part of a pack update
DETECTION_RECORD_FIELDS = frozenset({
    "id", "type", "managed", "revision", "created_at", "updated_at",
    "created_by", "last_modified_by",
})


def apply_pack_update(
    existing: DetectionRecord,
    release_version: DetectionRecord,
    pack_enabled: bool,
) -> DetectionRecord:
    """
    Overlay a release's detection onto the locally stored one.

    Fields are copied according to DETECTION_FIELD_POLICY; identity and store
    bookkeeping (including the revision used for the conditional write) stay
    with the existing record.
    """
    changes: Dict[str, Any] = {}
    for name, policy in DETECTION_FIELD_POLICY.items():
        if policy == FieldPolicy.FROM_RELEASE:
            changes[name] = getattr(release_version, name)
        elif policy == FieldPolicy.FROM_PACK:
            changes[name] = pack_enabled
    return replace(existing, **changes)


def detection_content_fields() -> Set[str]:
    """Names of every DetectionRecord field a pack update may have to handle."""
    return {f.name for f in fields(DetectionRecord)} - DETECTION_RECORD_FIELDS


@dataclass
class PackDefinition:
    """Selects the detections that belong to a pack. Only id lists are supported."""
    ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"ids": list(self.ids)}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PackDefinition":
        return cls(ids=list((data or {}).get("ids") or []))


@dataclass
class PackRecord:
    """
    A named group of detections managed as one enable/disable/version unit.
    """
    id: str
    enabled: bool = False
    available_versions: List[Release] = field(default_factory=list)
    current_version: Optional[Release] = None
    update_available: bool = False
    detection_pattern: PackDefinition = field(default_factory=PackDefinition)
    detection_type_counts: Dict[DetectionType, int] = field(default_factory=dict)
    description: str = ""
    display_name: str = ""
    created_by: str = ""
    last_modified_by: str = ""

    # Store bookkeeping
    revision: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def has_version(self, release: Release) -> bool:
        return release in self.available_versions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "enabled": self.enabled,
            "available_versions": [r.to_dict() for r in self.available_versions],
            "current_version": self.current_version.to_dict() if self.current_version else None,
            "update_available": self.update_available,
            "detection_pattern": self.detection_pattern.to_dict(),
            "detection_type_counts": {
                t.value: count for t, count in self.detection_type_counts.items()
            },
            "description": self.description,
            "display_name": self.display_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackRecord":
        current = data.get("current_version")
        return cls(
            id=data["id"],
            enabled=bool(data.get("enabled", False)),
            available_versions=[Release.from_dict(r) for r in data.get("available_versions") or []],
            current_version=Release.from_dict(current) if current else None,
            update_available=bool(data.get("update_available", False)),
            detection_pattern=PackDefinition.from_dict(data.get("detection_pattern")),
            detection_type_counts={
                DetectionType(t): int(count)
                for t, count in (data.get("detection_type_counts") or {}).items()
            },
            description=data.get("description", ""),
            display_name=data.get("display_name", ""),
        )
