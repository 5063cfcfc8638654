import io
import logging
import posixpath
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from ..packs.errors import BundleFormatError
from ..packs.models import DetectionRecord, DetectionType, PackDefinition, PackRecord

logger = logging.getLogger(__name__)

# AnalysisType -> (id key, detection type); packs are handled separately
DETECTION_ANALYSIS_TYPES: Dict[str, Tuple[str, DetectionType]] = {
    "rule": ("RuleID", DetectionType.RULE),
    "scheduled_rule": ("RuleID", DetectionType.RULE),
    "policy": ("PolicyID", DetectionType.POLICY),
    "global": ("GlobalID", DetectionType.GLOBAL),
    "datamodel": ("DataModelID", DetectionType.DATA_MODEL),
}

SPEC_SUFFIXES = (".yml", ".yaml")

class ReleaseBundle:

    def __init__(self, data: bytes):
        self.data = data

    def parse(self) -> Tuple[Dict[str, PackRecord], Dict[str, DetectionRecord]]:
        try:
            archive = zipfile.ZipFile(io.BytesIO(self.data))
        except zipfile.BadZipFile as e:
            raise BundleFormatError(f"bundle is not a zip archive: {e}") from e

        with archive:
            files = {
                info.filename: archive.read(info)
                for info in archive.infolist()
                if not info.is_dir()
            }

        packs: Dict[str, PackRecord] = {}
        detections: Dict[str, DetectionRecord] = {}

        for name in sorted(files):
            if not name.lower().endswith(SPEC_SUFFIXES):
                continue

            spec = self._load_spec(name, files[name])
            if spec is None:
                continue

            analysis_type = str(spec["AnalysisType"]).lower()

            if analysis_type == "pack":
                pack = self._pack_from_spec(name, spec)
                if pack.id in packs:
                    raise BundleFormatError(f"duplicate pack id {pack.id} in {name}")
                packs[pack.id] = pack

            elif analysis_type in DETECTION_ANALYSIS_TYPES:
                detection = self._detection_from_spec(name, spec, analysis_type, files)
                if detection.id in detections:
                    raise BundleFormatError(f"duplicate detection id {detection.id} in {name}")
                detections[detection.id] = detection

            else:
                logger.debug(f"Skipping {name}: unsupported analysis type {analysis_type}")

        logger.info(f"Parsed bundle with {len(packs)} packs and {len(detections)} detections")
        return packs, detections

    def _load_spec(self, name: str, raw: bytes) -> Optional[Dict[str, Any]]:
        try:
            spec = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise BundleFormatError(f"invalid YAML in {name}: {e}") from e

        if not isinstance(spec, dict) or "AnalysisType" not in spec:
            return None
        return spec

    def _pack_from_spec(self, name: str, spec: Dict[str, Any]) -> PackRecord:
        pack_id = _required(name, spec, "PackID")
        definition = _mapping(name, spec, "PackDefinition")

        return PackRecord(
            id=pack_id,
            description=_text(name, spec, "Description"),
            display_name=_text(name, spec, "DisplayName"),
            detection_pattern=PackDefinition(ids=_string_list(name, definition, "IDs")),
        )

    def _detection_from_spec(
        self,
        name: str,
        spec: Dict[str, Any],
        analysis_type: str,
        files: Mapping[str, bytes],
    ) -> DetectionRecord:
        id_key, detection_type = DETECTION_ANALYSIS_TYPES[analysis_type]
        detection_id = _required(name, spec, id_key)

        body = ""
        filename = spec.get("Filename")
        if filename:
            body_path = posixpath.join(posixpath.dirname(name), str(filename))
            if body_path not in files:
                raise BundleFormatError(f"{name} references missing file {body_path}")
            try:
                body = files[body_path].decode("utf-8")
            except UnicodeDecodeError as e:
                raise BundleFormatError(f"{body_path} is not valid UTF-8: {e}") from e

        if spec.get("LogTypes") is not None:
            resource_types = _string_list(name, spec, "LogTypes")
        else:
            resource_types = _string_list(name, spec, "ResourceTypes")

        reports = _mapping(name, spec, "Reports")

        tests = spec.get("Tests")
        if tests is None:
            tests = []
        elif not isinstance(tests, list):
            raise BundleFormatError(f"{name}: Tests must be a list")

        return DetectionRecord(
            id=detection_id,
            type=detection_type,
            body=body,
            description=_text(name, spec, "Description"),
            display_name=_text(name, spec, "DisplayName"),
            enabled=bool(spec.get("Enabled", False)),
            resource_types=set(resource_types),
            reference=_text(name, spec, "Reference"),
            reports={str(key): _string_list(name, reports, key) for key in reports},
            runbook=_text(name, spec, "Runbook"),
            tags=set(_string_list(name, spec, "Tags")),
            tests=tests,
            severity=_text(name, spec, "Severity") or "INFO",
            threshold=_integer(name, spec, "Threshold", 1),
            dedup_period_minutes=_integer(name, spec, "DedupPeriodMinutes", 60),
            output_ids=_string_list(name, spec, "OutputIds"),
        )

    @staticmethod
    def build_archive(files: Mapping[str, Any]) -> bytes:
        """Zip a mapping of archive path -> text or bytes content."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for path in sorted(files):
                content = files[path]
                if isinstance(content, str):
                    content = content.encode("utf-8")
                archive.writestr(path, content)
        return buffer.getvalue()

    @classmethod
    def create(cls, source_dir: str, output_path: str) -> str:
        source = Path(source_dir)
        if not source.is_dir():
            raise ValueError(f"Content directory not found: {source_dir}")

        files = {
            path.relative_to(source).as_posix(): path.read_bytes()
            for path in source.rglob("*")
            if path.is_file()
        }

        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(cls.build_archive(files))

        logger.info(f"Created release bundle: {output} ({len(files)} files)")
        return str(output)


def _required(name: str, spec: Dict[str, Any], key: str) -> str:
    value = spec.get(key)
    if not value:
        raise BundleFormatError(f"{name} is missing {key}")
    return str(value)


def _text(name: str, spec: Mapping[str, Any], key: str) -> str:
    value = spec.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise BundleFormatError(f"{name}: {key} must be a string")
    return str(value)


def _integer(name: str, spec: Mapping[str, Any], key: str, default: int) -> int:
    if key not in spec:
        return default
    value = spec[key]
    if isinstance(value, bool):
        raise BundleFormatError(f"{name}: {key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise BundleFormatError(f"{name}: {key} must be an integer, got {value!r}") from e


def _mapping(name: str, spec: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = spec.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise BundleFormatError(f"{name}: {key} must be a mapping")
    return value


def _string_list(name: str, spec: Mapping[str, Any], key: str) -> List[str]:
    # a bare string here would otherwise be split into characters
    value = spec.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or any(isinstance(item, (dict, list)) for item in value):
        raise BundleFormatError(f"{name}: {key} must be a list of strings")
    return [str(item) for item in value]
