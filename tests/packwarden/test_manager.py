import pytest

from packwarden.config.settings import DatabaseConfig, Settings
from packwarden.packs.errors import BatchWriteError, ConflictError, ConflictReason
from packwarden.packs.manager import PackManager
from packwarden.packs.models import SYSTEM_USER_ID, DetectionType, Release
from packwarden.storage import PackStore

V1 = Release(1, "v1.14.0")
V2 = Release(2, "v1.15.0")


class FailingPackStore(PackStore):

    def __init__(self, records, fail_on):
        super().__init__(records)
        self.fail_on = fail_on

    def put(self, pack, user_id):
        if pack.id == self.fail_on:
            raise ConflictError("pack", pack.id, ConflictReason.REVISION_CONFLICT, stored_revision=1)
        return super().put(pack, user_id)


class TestPackManager:

    @pytest.fixture
    def releases(self, publish, spec):
        publish(1, "v1.14.0", {"p1": ["r1"], "p2": ["r2", "dm"]}, [
            spec("r1"),
            spec("r2"),
            spec("dm", "datamodel"),
        ])
        publish(2, "v1.15.0", {"p1": ["r1"], "p3": ["r3"]}, [
            spec("r1"),
            spec("r3"),
        ])

    @pytest.fixture
    def manager(self, verifier, pack_store, detection_store):
        return PackManager(verifier, pack_store, detection_store)

    def test_reconcile_new_release(self, manager, releases, detection_store):
        saved = manager.reconcile_release(V1)

        assert [p.id for p in saved] == ["p1", "p2"]
        p2 = manager.get_pack("p2")
        assert p2.enabled is False
        assert p2.revision == 1
        assert p2.current_version == V1
        assert p2.available_versions == [V1]
        assert p2.detection_type_counts == {DetectionType.RULE: 1, DetectionType.DATA_MODEL: 1}
        assert p2.created_by == SYSTEM_USER_ID

        # reconciliation never installs detection content
        assert detection_store.list_detections() == {}

    def test_reconcile_later_release(self, manager, releases):
        manager.reconcile_release(V1)

        saved = manager.reconcile_release(V2)

        assert {p.id for p in saved} == {"p1", "p3"}
        p1 = manager.get_pack("p1")
        assert p1.available_versions == [V1, V2]
        assert p1.update_available is True
        assert p1.current_version == V1
        assert p1.revision == 2

        p2 = manager.get_pack("p2")
        assert p2.available_versions == [V1]
        assert p2.revision == 1

    def test_reconcile_is_idempotent(self, manager, releases):
        manager.reconcile_release(V1)

        assert manager.reconcile_release(V1) == []
        assert manager.get_pack("p1").revision == 1

    def test_reconcile_partial_failure(self, verifier, records, detection_store, releases):
        pack_store = FailingPackStore(records, fail_on="p2")
        manager = PackManager(verifier, pack_store, detection_store)

        with pytest.raises(BatchWriteError) as exc_info:
            manager.reconcile_release(V1)

        assert exc_info.value.kind == "pack"
        assert exc_info.value.failed_id == "p2"
        assert exc_info.value.applied_ids == ["p1"]
        assert [p.id for p in manager.list_packs()] == ["p1"]

        # rerunning picks up where the failed run stopped
        pack_store.fail_on = None
        assert [p.id for p in manager.reconcile_release(V1)] == ["p2"]

    def test_sync_releases(self, manager, releases):
        assert manager.sync_releases() == {"v1.14.0": 2, "v1.15.0": 2}
        assert manager.sync_releases() == {"v1.14.0": 0, "v1.15.0": 0}

        assert [p.id for p in manager.list_packs()] == ["p1", "p2", "p3"]

    def test_reconcile_then_switch(self, manager, releases, detection_store):
        manager.sync_releases()

        pack = manager.switch_pack_version("p1", V2, True, "alice")

        assert pack.enabled is True
        assert pack.current_version == V2
        assert pack.update_available is False
        assert detection_store.get("r1").enabled is True

    def test_list_releases(self, manager, releases):
        assert manager.list_releases() == [V1, V2]

    def test_from_settings(self, tmp_path):
        settings = Settings(
            database=DatabaseConfig(path="db/packwarden.db"),
            base_path=tmp_path,
        )

        manager = PackManager.from_settings(settings)

        assert manager.list_packs() == []
        assert (tmp_path / "db" / "packwarden.db").exists()
        manager.verifier.repository.close()
