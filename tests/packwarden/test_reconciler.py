import copy

import pytest

from packwarden.packs.models import (
    SYSTEM_USER_ID,
    DetectionRecord,
    DetectionType,
    PackDefinition,
    PackRecord,
    Release,
)
from packwarden.packs.reconciler import PackReconciler

V1 = Release(1, "v1.14.0")
V2 = Release(2, "v1.15.0")
V3 = Release(3, "v1.16.0")


class TestPackReconciler:

    @pytest.fixture
    def reconciler(self):
        return PackReconciler()

    @pytest.fixture
    def new_detections(self):
        return {
            "a": DetectionRecord(id="a", type=DetectionType.RULE),
            "b": DetectionRecord(id="b", type=DetectionType.POLICY),
        }

    @pytest.fixture
    def new_packs(self):
        return {
            "p1": PackRecord(
                id="p1",
                display_name="Pack One",
                detection_pattern=PackDefinition(ids=["a", "b"]),
            ),
        }

    @pytest.fixture
    def installed(self):
        return PackRecord(
            id="p1",
            enabled=True,
            available_versions=[V1, V2],
            current_version=V1,
            update_available=True,
            detection_pattern=PackDefinition(ids=["a"]),
            revision=3,
            created_by="alice",
            last_modified_by="alice",
        )

    def test_existing_pack_gains_release(self, reconciler, new_packs, new_detections, installed):
        mutations = reconciler.reconcile(V3, new_packs, new_detections, [installed])

        assert len(mutations) == 1
        pack = mutations[0]
        assert pack.available_versions == [V1, V2, V3]
        assert pack.update_available is True
        assert pack.current_version == V1
        assert pack.enabled is True
        assert pack.revision == 3
        assert pack.detection_pattern.ids == ["a"]
        assert pack.last_modified_by == "alice"

    def test_known_release_is_skipped(self, reconciler, new_packs, new_detections, installed):
        assert reconciler.reconcile(V2, new_packs, new_detections, [installed]) == []

    def test_idempotent(self, reconciler, new_packs, new_detections, installed):
        first = reconciler.reconcile(V3, new_packs, new_detections, [installed])
        second = reconciler.reconcile(V3, new_packs, new_detections, first)

        assert second == []

    def test_new_pack_defaults(self, reconciler, new_packs, new_detections):
        mutations = reconciler.reconcile(V2, new_packs, new_detections, [])

        assert len(mutations) == 1
        pack = mutations[0]
        assert pack.id == "p1"
        assert pack.enabled is False
        assert pack.available_versions == [V2]
        assert pack.current_version == V2
        assert pack.update_available is False
        assert pack.display_name == "Pack One"
        assert pack.detection_type_counts == {DetectionType.RULE: 1, DetectionType.POLICY: 1}
        assert pack.created_by == SYSTEM_USER_ID
        assert pack.last_modified_by == SYSTEM_USER_ID
        assert pack.revision == 0

    def test_missing_pack_is_left_alone(self, reconciler, new_detections, installed):
        mutations = reconciler.reconcile(V3, {}, new_detections, [installed])

        assert mutations == []

    def test_inputs_not_modified(self, reconciler, new_packs, new_detections, installed):
        packs_before = copy.deepcopy(new_packs)
        installed_before = copy.deepcopy(installed)

        reconciler.reconcile(V3, new_packs, new_detections, [installed])

        assert new_packs == packs_before
        assert installed == installed_before
        assert installed.available_versions == [V1, V2]

    def test_mixed_release(self, reconciler, new_detections, installed):
        new_packs = {
            "p1": PackRecord(id="p1", detection_pattern=PackDefinition(ids=["a"])),
            "p2": PackRecord(id="p2", detection_pattern=PackDefinition(ids=["b", "gone"])),
        }

        mutations = {
            p.id: p for p in reconciler.reconcile(V3, new_packs, new_detections, [installed])
        }

        assert set(mutations) == {"p1", "p2"}
        assert mutations["p1"].update_available is True
        assert mutations["p2"].enabled is False
        assert mutations["p2"].detection_type_counts == {DetectionType.POLICY: 1}
