import base64
from typing import Any, Dict, Iterable, List, Optional

import pytest
import yaml
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from packwarden.config.settings import ReleasesConfig
from packwarden.packs.errors import ReleaseRepositoryError
from packwarden.storage import (
    DatabaseManager,
    DetectionStore,
    PackStore,
    RevisionedRecordStore,
    SchemaStore,
)
from packwarden.updates import ReleaseBundle, ReleaseVerifier, RemoteRelease

BUNDLE_ASSET = "panther-analysis-all.zip"
SIGNATURE_ASSET = "panther-analysis-all.sig"


def detection_spec(
    detection_id: str,
    analysis_type: str = "rule",
    **overrides: Any,
) -> Dict[str, Any]:
    id_keys = {
        "rule": "RuleID",
        "scheduled_rule": "RuleID",
        "policy": "PolicyID",
        "global": "GlobalID",
        "datamodel": "DataModelID",
    }
    spec = {
        "AnalysisType": analysis_type,
        id_keys[analysis_type]: detection_id,
        "Filename": f"{detection_id}.py",
        "DisplayName": f"{detection_id} display",
        "Description": f"{detection_id} description",
        "Enabled": True,
        "LogTypes": ["AWS.CloudTrail"],
        "Reference": "https://example.com/reference",
        "Runbook": "Investigate the source",
        "Tags": ["AWS"],
        "Tests": [{"Name": "matches", "ExpectedResult": True, "Log": {"eventName": "x"}}],
        "Severity": "Medium",
        "Threshold": 1,
        "DedupPeriodMinutes": 60,
    }
    spec.update(overrides)
    return spec


def build_bundle(
    packs: Dict[str, List[str]],
    detections: Iterable[Dict[str, Any]],
    bodies: Optional[Dict[str, str]] = None,
) -> bytes:
    """Zip pack and detection specs the way a content release lays them out."""
    bodies = bodies or {}
    files: Dict[str, Any] = {}

    for pack_id, detection_ids in packs.items():
        files[f"packs/{pack_id}.yml"] = yaml.safe_dump({
            "AnalysisType": "pack",
            "PackID": pack_id,
            "DisplayName": f"{pack_id} display",
            "Description": f"{pack_id} description",
            "PackDefinition": {"IDs": list(detection_ids)},
        })

    for spec in detections:
        detection_id = next(
            spec[key] for key in ("RuleID", "PolicyID", "GlobalID", "DataModelID") if key in spec
        )
        files[f"rules/{detection_id}.yml"] = yaml.safe_dump(spec)
        if spec.get("Filename"):
            files[f"rules/{spec['Filename']}"] = bodies.get(
                detection_id, f"def rule(event):\n    return '{detection_id}'\n"
            )

    return ReleaseBundle.build_archive(files)


class FakeRepository:
    """In-memory release repository."""

    def __init__(self):
        self.releases: Dict[int, Dict[str, Any]] = {}
        self.downloads: List[int] = []

    def add_release(self, release_id: int, tag_name: str, assets: Dict[str, bytes]):
        self.releases[release_id] = {"tag_name": tag_name, "assets": assets}

    def list_releases(self) -> List[RemoteRelease]:
        return [
            RemoteRelease(id=release_id, tag_name=release["tag_name"])
            for release_id, release in self.releases.items()
        ]

    def get_tag_name(self, release_id: int) -> str:
        if release_id not in self.releases:
            raise ReleaseRepositoryError(f"release {release_id} not found")
        return self.releases[release_id]["tag_name"]

    def download_assets(self, release_id: int, asset_names: Iterable[str]) -> Dict[str, bytes]:
        self.downloads.append(release_id)
        assets = self.releases[release_id]["assets"]
        return {name: assets[name] for name in asset_names if name in assets}


@pytest.fixture(scope="session")
def signing_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_pem(signing_key):
    return signing_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture
def sign(signing_key):
    def _sign(data: bytes) -> bytes:
        signature = signing_key.sign(data, padding.PKCS1v15(), hashes.SHA512())
        return base64.b64encode(signature)
    return _sign


@pytest.fixture
def releases_config():
    return ReleasesConfig(
        bundle_asset=BUNDLE_ASSET,
        signature_asset=SIGNATURE_ASSET,
        minimum_version="v1.14.0",
    )


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def publish(repository, sign):
    """Publish a signed release to the fake repository."""
    def _publish(release_id: int, tag_name: str, packs, detections, bodies=None) -> bytes:
        data = build_bundle(packs, detections, bodies)
        repository.add_release(release_id, tag_name, {
            BUNDLE_ASSET: data,
            SIGNATURE_ASSET: sign(data),
        })
        return data
    return _publish


@pytest.fixture
def verifier(repository, releases_config, public_pem):
    return ReleaseVerifier(repository, releases_config, public_key_pem=public_pem)


@pytest.fixture
def database():
    manager = DatabaseManager("sqlite://", echo=False)
    manager.init_db()
    yield manager
    manager.close()


@pytest.fixture
def records(database):
    return RevisionedRecordStore(database.session_factory)


@pytest.fixture
def pack_store(records):
    return PackStore(records)


@pytest.fixture
def detection_store(records):
    return DetectionStore(records)


@pytest.fixture
def schema_store(records):
    return SchemaStore(records)


@pytest.fixture
def spec():
    return detection_spec


@pytest.fixture
def bundle():
    return build_bundle
