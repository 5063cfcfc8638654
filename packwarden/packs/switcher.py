"""
PackWarden Pack Version Switcher

Moves one pack to a specific release, upgrading or downgrading its detections.
"""

import logging
from dataclasses import replace
from typing import Dict, List

from .errors import BatchWriteError, InvalidRequestError, NotFoundError, PackWardenError
from .lookup import detection_set_lookup, detection_type_counts
from .models import DetectionRecord, PackRecord, Release, apply_pack_update
from .versions import is_new_release_available

logger = logging.getLogger(__name__)


class PackVersionSwitcher:
    """
    Applies a user's request to run a pack at a given release.

    The switch re-downloads and re-verifies the target release, rewrites the
    pack's detections and then the pack record. Detection writes are applied
    one at a time and are not rolled back if a later write fails.
    """

    def __init__(self, verifier, pack_store, detection_store):
        """
        Initialize switcher.

        Args:
            verifier: ReleaseVerifier used to fetch the target release
            pack_store: PackStore holding installed packs
            detection_store: DetectionStore holding detections
        """
        self.verifier = verifier
        self.pack_store = pack_store
        self.detection_store = detection_store

    def switch(self, pack_id: str, release: Release, enabled: bool, user_id: str) -> PackRecord:
        """
        Switch a pack to ``release`` and set its enabled flag.

        Args:
            pack_id: Installed pack id
            release: Target release, must be one of the pack's available versions
            enabled: Enabled flag after the switch
            user_id: User requesting the switch

        Returns:
            The stored pack record

        Raises:
            NotFoundError: Unknown pack, or release not available for it
            InvalidRequestError: Version change requested for a disabled pack
            BatchWriteError: A detection write failed after earlier ones succeeded
            ConflictError: The pack record changed since it was read
        """
        old_pack = self.pack_store.get(pack_id)
        if old_pack is None:
            raise NotFoundError(f"Cannot find pack {pack_id}")

        if not enabled and release != old_pack.current_version:
            raise InvalidRequestError(f"Cannot change version of a disabled pack ({pack_id})")

        if not old_pack.has_version(release):
            raise NotFoundError(f"Version {release.name} is not available for pack {pack_id}")

        new_packs, new_detections = self.verifier.download_validate(release)
        release_pack = new_packs.get(pack_id)
        if release_pack is None:
            logger.error(f"Pack {pack_id} does not exist in release {release.name}")
            raise NotFoundError(f"Pack {pack_id} does not exist in release {release.name}")

        pack_detections = detection_set_lookup(new_detections, release_pack.detection_pattern)
        self._write_detections(pack_detections, enabled, user_id)

        new_pack = replace(
            old_pack,
            enabled=enabled,
            current_version=release,
            update_available=is_new_release_available(release, old_pack.available_versions),
            detection_pattern=release_pack.detection_pattern,
            detection_type_counts=detection_type_counts(pack_detections),
            description=release_pack.description,
            display_name=release_pack.display_name,
            available_versions=list(old_pack.available_versions),
        )
        saved = self.pack_store.put(new_pack, user_id)

        logger.info(
            f"Switched pack {pack_id} to {release.name} "
            f"({'enabled' if enabled else 'disabled'}, {len(pack_detections)} detections)"
        )
        return saved

    def prepare_detections(
        self,
        pack_detections: Dict[str, DetectionRecord],
        enabled: bool,
    ) -> List[DetectionRecord]:
        """
        Build the detection records a switch will write.

        Existing detections keep their local tuning and revision; detections
        that do not exist yet are taken from the release unchanged.
        """
        existing = {
            stored_id.lower(): detection
            for stored_id, detection in self.detection_store.find_by_ids(pack_detections.keys()).items()
        }

        items: List[DetectionRecord] = []
        for detection_id, release_detection in pack_detections.items():
            current = existing.get(detection_id.lower())
            if current is not None:
                items.append(apply_pack_update(current, release_detection, enabled))
            else:
                items.append(release_detection)
        return items

    def _write_detections(
        self,
        pack_detections: Dict[str, DetectionRecord],
        enabled: bool,
        user_id: str,
    ):
        applied: List[str] = []
        for detection in self.prepare_detections(pack_detections, enabled):
            try:
                self.detection_store.put(detection, user_id)
            except PackWardenError as e:
                logger.error(f"Error updating pack detection {detection.id}: {e}")
                raise BatchWriteError("detection", detection.id, applied, e) from e
            applied.append(detection.id)
