"""Tests for the evidence store and SIA collection."""

from datetime import date

import pytest

from eye_portfolio.models import DEFAULT_TITLE, EvidenceStatus, EvidenceType
from eye_portfolio.portfolio import EvidenceNotFoundError, EvidenceStore, IdGenerator, SIACollection


class TestUpsert:
    """Tests for EvidenceStore.upsert()."""

    def test_create_applies_defaults(self, store):
        item = store.upsert()

        assert item.title == DEFAULT_TITLE
        assert item.type == EvidenceType.OTHER
        assert item.status == EvidenceStatus.DRAFT
        assert item.date == date.today()
        assert item.id in store

    def test_new_records_are_prepended(self, store):
        first = store.upsert(title="First")
        second = store.upsert(title="Second")

        assert [i.id for i in store] == [second.id, first.id]

    def test_rapid_creations_get_distinct_ids(self):
        """Creations in the same millisecond never share an id."""
        store = EvidenceStore(id_generator=IdGenerator(clock=lambda: 42, random_part=lambda: "same"))

        ids = [store.upsert(title=f"Item {n}").id for n in range(25)]

        assert len(set(ids)) == 25
        assert len(store) == 25

    def test_merge_keeps_unspecified_fields(self, store):
        """Updating one field leaves the others as they were."""
        item = store.upsert(
            type=EvidenceType.CBD,
            title="Case discussion",
            sia="Glaucoma",
            notes="first draft",
        )

        store.upsert(item.id, status=EvidenceStatus.SUBMITTED)

        updated = store.get(item.id)
        assert updated.status == EvidenceStatus.SUBMITTED
        assert updated.title == "Case discussion"
        assert updated.sia == "Glaucoma"
        assert updated.notes == "first draft"
        assert len(store) == 1

    def test_merging_none_keeps_required_fields(self, store):
        """None for type/status/title/date leaves the stored value in place."""
        item = store.upsert(type=EvidenceType.CRS, title="CRS - Retinoscopy", notes="draft")

        store.upsert(item.id, status=None, title=None, type=None, date=None, notes=None)

        assert item.status == EvidenceStatus.DRAFT
        assert item.title == "CRS - Retinoscopy"
        assert item.type == EvidenceType.CRS
        assert item.date == date.today()
        assert item.notes is None
        assert store.counts_by_status()["Draft"] == 1
        assert item.to_dict()["status"] == "Draft"

    def test_unmatched_caller_id_is_kept(self, store):
        item = store.upsert("imported-7", title="Imported")

        assert item.id == "imported-7"
        assert store.get("imported-7") is item

    def test_raw_values_are_coerced(self, store):
        item = store.upsert(type="CRS", status="COMPLETE", date="2025-06-01T09:30:00Z")

        assert item.type == EvidenceType.CRS
        assert item.status == EvidenceStatus.SIGNED_OFF
        assert item.date == date(2025, 6, 1)

    def test_unknown_field_rejected(self, store):
        with pytest.raises(ValueError, match="colour"):
            store.upsert(colour="blue")


class TestQueries:
    """Tests for lookups, filters and counts."""

    def test_find_requires_matching_type(self, populated_controller):
        store = populated_controller.store

        assert store.find("crs-1", EvidenceType.CRS).id == "crs-1"
        assert store.find("crs-1", EvidenceType.EPA) is None
        assert store.find(None) is None

    def test_require_unknown_raises(self, store):
        with pytest.raises(EvidenceNotFoundError) as exc_info:
            store.require("missing")

        assert exc_info.value.evidence_id == "missing"

    def test_filter_by_several_criteria(self, populated_controller):
        store = populated_controller.store

        result = store.filter(sia="Cataract Surgery", status=EvidenceStatus.SUBMITTED)

        assert [i.id for i in result] == ["crs-1"]

    def test_filter_with_predicate(self, populated_controller):
        store = populated_controller.store

        result = store.filter(predicate=lambda item: bool(item.linked_evidence))

        assert [i.id for i in result] == ["epa-1"]

    def test_remove(self, populated_controller):
        store = populated_controller.store

        assert store.remove("crs-1") is True
        assert store.remove("crs-1") is False
        assert "crs-1" not in store

    def test_counts_by_status_lists_every_status(self, populated_controller):
        counts = populated_controller.store.counts_by_status()

        assert counts == {"Draft": 1, "Submitted": 1, "COMPLETE": 1}

    def test_counts_by_type(self, populated_controller):
        counts = populated_controller.store.counts_by_type()

        assert counts == {"CRS": 1, "DOPs": 1, "EPA": 1}


class TestActiveMSF:
    def test_signed_off_msf_is_not_active(self, store):
        store.upsert(type=EvidenceType.MSF, status=EvidenceStatus.SIGNED_OFF)

        assert store.active_msf() is None

    def test_submitted_msf_is_active(self, store):
        msf = store.upsert(type=EvidenceType.MSF, status=EvidenceStatus.SUBMITTED)

        assert store.active_msf() is msf


class TestSIACollection:
    """Tests for SIACollection."""

    def test_add_generates_id(self):
        sias = SIACollection()

        sia = sias.add("Oculoplastics", 2, supervisor_name="Maria Lopez")

        assert sia.id
        assert sias.get(sia.id) is sia
        assert sia.supervisor_initials == "ML"

    def test_update_recomputes_initials(self):
        sias = SIACollection()
        sia = sias.add("Oculoplastics", 2, supervisor_name="Maria Lopez")

        sias.update(sia.id, supervisor_name="Tom Hardy", level=3)

        assert sia.supervisor_initials == "TH"
        assert sia.level == 3

    def test_update_unknown_returns_none(self):
        assert SIACollection().update("nope", level=2) is None

    @pytest.mark.parametrize("field_name", ["id", "supervisor_initials", "colour"])
    def test_update_rejects_protected_fields(self, field_name):
        sias = SIACollection()
        sia = sias.add("Retina", 1)

        with pytest.raises(ValueError):
            sias.update(sia.id, **{field_name: "x"})

    def test_remove(self):
        sias = SIACollection()
        sia = sias.add("Retina", 1)

        assert sias.remove(sia.id) is True
        assert sias.remove(sia.id) is False
        assert len(sias) == 0
