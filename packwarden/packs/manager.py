"""
PackWarden Pack Manager

Entry points for release reconciliation and pack version switches.
"""

import logging
from typing import Dict, List, Optional

from .errors import BatchWriteError, PackWardenError
from .models import PackRecord, Release
from .reconciler import PackReconciler
from .switcher import PackVersionSwitcher
from ..config import Settings, get_settings
from ..storage import DatabaseManager, DetectionStore, PackStore, RevisionedRecordStore
from ..updates import ReleaseRepository, ReleaseVerifier

logger = logging.getLogger(__name__)


class PackManager:
    """
    Manages the pack lifecycle: release discovery, reconciliation and switching.

    Every operation is a self-contained unit of work against the injected
    stores. Conditional-write conflicts are surfaced to the caller, never
    retried.
    """

    def __init__(
        self,
        verifier: ReleaseVerifier,
        pack_store: PackStore,
        detection_store: DetectionStore,
        reconciler: Optional[PackReconciler] = None,
    ):
        """
        Initialize pack manager.

        Args:
            verifier: Release verifier (wraps the remote repository)
            pack_store: Installed pack records
            detection_store: Detection records
            reconciler: Reconciliation strategy
        """
        self.verifier = verifier
        self.pack_store = pack_store
        self.detection_store = detection_store
        self.reconciler = reconciler or PackReconciler()
        self.switcher = PackVersionSwitcher(verifier, pack_store, detection_store)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PackManager":
        """Build a manager wired to the configured repository and record store."""
        settings = settings or get_settings()

        database = DatabaseManager(settings.database_url(), settings.database.echo)
        database.init_db()
        records = RevisionedRecordStore(database.session_factory)

        repository = ReleaseRepository(settings.releases)
        verifier = ReleaseVerifier(repository, settings.releases)

        return cls(verifier, PackStore(records), DetectionStore(records))

    def list_releases(self) -> List[Release]:
        """List releases that support packs, oldest first."""
        return self.verifier.list_available_releases()

    def reconcile_release(self, release: Release) -> List[PackRecord]:
        """
        Bring installed pack metadata up to date with a release.

        Args:
            release: Release to reconcile against

        Returns:
            Pack records written, at their new revisions

        Raises:
            BatchWriteError: A pack write failed; packs written before it stay written
        """
        new_packs, new_detections = self.verifier.download_validate(release)
        old_packs = self.pack_store.list_packs()

        mutations = self.reconciler.reconcile(release, new_packs, new_detections, old_packs)

        saved: List[PackRecord] = []
        for pack in mutations:
            try:
                saved.append(self.pack_store.put(pack, pack.last_modified_by))
            except PackWardenError as e:
                logger.error(f"Failed to reconcile pack {pack.id} with {release.name}: {e}")
                raise BatchWriteError("pack", pack.id, [p.id for p in saved], e) from e

        logger.info(f"Reconciled release {release.name}: {len(saved)} packs updated")
        return saved

    def sync_releases(self) -> Dict[str, int]:
        """
        Reconcile every available release, oldest first.

        Releases already known to all packs produce no writes, so this is
        safe to run on a schedule.

        Returns:
            Release name -> number of packs written
        """
        results: Dict[str, int] = {}
        for release in self.list_releases():
            results[release.name] = len(self.reconcile_release(release))
        return results

    def switch_pack_version(
        self,
        pack_id: str,
        release: Release,
        enabled: bool,
        user_id: str,
    ) -> PackRecord:
        """Switch one pack to a release it knows about. See PackVersionSwitcher.switch."""
        return self.switcher.switch(pack_id, release, enabled, user_id)

    def get_pack(self, pack_id: str) -> Optional[PackRecord]:
        return self.pack_store.get(pack_id)

    def list_packs(self) -> List[PackRecord]:
        return self.pack_store.list_packs()
