"""
PackWarden Pack Reconciler

Works out which pack records change when a new release becomes known.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Mapping, Sequence

from .lookup import detection_set_lookup, detection_type_counts
from .models import SYSTEM_USER_ID, DetectionRecord, PackRecord, Release

logger = logging.getLogger(__name__)


class PackReconciler:
    """
    Computes pack metadata mutations for a newly verified release.

    Reconciliation only touches availability metadata of installed packs;
    active content, enablement and current version change exclusively through
    a version switch. Packs that appear for the first time are created
    disabled at the new release. Packs missing from the release are left
    alone, which freezes their available versions.
    """

    def reconcile(
        self,
        release: Release,
        new_packs: Mapping[str, PackRecord],
        new_detections: Mapping[str, DetectionRecord],
        old_packs: Sequence[PackRecord],
    ) -> List[PackRecord]:
        """
        Build the list of pack records to persist.
        
        Args:
            release: Release the fragments were taken from
            new_packs: Pack fragments in the release, by pack id
            new_detections: Detections in the release, by detection id
            old_packs: Currently installed packs
            
        Returns:
            Pack records to write, in release order. Inputs are not modified.
        """
        installed: Dict[str, PackRecord] = {pack.id: pack for pack in old_packs}
        mutations: List[PackRecord] = []

        for pack_id, new_pack in new_packs.items():
            old_pack = installed.get(pack_id)

            if old_pack is not None:
                if old_pack.has_version(release):
                    continue
                mutations.append(replace(
                    old_pack,
                    available_versions=old_pack.available_versions + [release],
                    update_available=True,
                ))
                logger.debug(f"Pack {pack_id} gained version {release.name}")
            else:
                mutations.append(self._new_pack(release, new_pack, new_detections))
                logger.debug(f"Pack {pack_id} first seen in {release.name}")

        return mutations

    def _new_pack(
        self,
        release: Release,
        fragment: PackRecord,
        new_detections: Mapping[str, DetectionRecord],
    ) -> PackRecord:
        detections = detection_set_lookup(new_detections, fragment.detection_pattern)
        return replace(
            fragment,
            enabled=False,
            available_versions=[release],
            current_version=release,
            update_available=False,
            detection_type_counts=detection_type_counts(detections),
            created_by=SYSTEM_USER_ID,
            last_modified_by=SYSTEM_USER_ID,
            revision=0,
            created_at=None,
            updated_at=None,
        )
