"""Tests for evidence and SIA models."""

from datetime import date

import pytest

from eye_portfolio.models import (
    DEFAULT_TITLE,
    SIA,
    EvidenceItem,
    EvidenceStatus,
    EvidenceType,
    MSFRespondent,
    RespondentStatus,
    coerce_field,
    supervisor_initials,
)


class TestEvidenceItem:
    """Tests for EvidenceItem."""

    def test_defaults(self):
        item = EvidenceItem(id="ev-1")

        assert item.type == EvidenceType.OTHER
        assert item.status == EvidenceStatus.DRAFT
        assert item.title == DEFAULT_TITLE
        assert item.date == date.today()
        assert item.linked_evidence == {}

    def test_signed_off_serializes_as_complete(self):
        assert EvidenceStatus.SIGNED_OFF.value == "COMPLETE"

    def test_to_dict_omits_empty_fields(self):
        item = EvidenceItem(id="ev-1", type=EvidenceType.CBD, date=date(2025, 1, 31))

        data = item.to_dict()

        assert data == {
            "id": "ev-1",
            "type": "CbD",
            "title": DEFAULT_TITLE,
            "date": "2025-01-31",
            "status": "Draft",
        }

    def test_from_dict_restores_nested_values(self):
        item = EvidenceItem.from_dict({
            "id": "msf-1",
            "type": "MSF",
            "date": "2025-02-01",
            "status": "Submitted",
            "msf_respondents": [{"id": "r1", "name": "Sam", "status": "Completed"}],
            "linked_evidence": {"EPA-L1-0-0": ["a"]},
        })

        assert item.type == EvidenceType.MSF
        assert item.status == EvidenceStatus.SUBMITTED
        assert item.date == date(2025, 2, 1)
        assert item.msf_respondents[0].is_complete
        assert item.linked_ids == {"a"}

    def test_to_row_splits_columns_and_data(self):
        item = EvidenceItem(
            id="epa-1",
            type=EvidenceType.EPA,
            title="EPA",
            date=date(2025, 3, 1),
            level=2,
            supervisor_name="Dr Who",
            linked_evidence={"EPA-L2-0-0": ["crs-1"]},
            form_data={"epaFormData": {"comments": "ok"}},
        )

        row = item.to_row()

        assert row["event_date"] == "2025-03-01"
        assert row["type"] == "EPA"
        assert row["level"] == 2
        assert row["supervisor_name"] == "Dr Who"
        assert row["notes"] is None
        assert row["data"] == {
            "epaFormData": {"comments": "ok"},
            "linkedEvidence": {"EPA-L2-0-0": ["crs-1"]},
        }

    def test_from_row_reads_hosted_shape(self):
        item = EvidenceItem.from_row({
            "id": "msf-1",
            "type": "MSF",
            "status": "COMPLETE",
            "title": "",
            "event_date": "2025-04-02T00:00:00+00:00",
            "sia": None,
            "data": {
                "msfRespondents": [{"id": "r1", "inviteSent": True, "lastReminded": "2025-04-03"}],
                "linkedEvidence": {"GSAT-Research-1": ["x"]},
                "extra": 1,
            },
        })

        assert item.title == DEFAULT_TITLE
        assert item.status == EvidenceStatus.SIGNED_OFF
        assert item.date == date(2025, 4, 2)
        assert item.msf_respondents[0].invite_sent is True
        assert item.msf_respondents[0].last_reminded == "2025-04-03"
        assert item.linked_evidence == {"GSAT-Research-1": ["x"]}
        assert item.form_data == {"extra": 1}

    def test_apply_merges_and_coerces(self):
        item = EvidenceItem(id="ev-1", title="Keep me")

        item.apply({"status": "Submitted", "notes": "note"})

        assert item.status == EvidenceStatus.SUBMITTED
        assert item.notes == "note"
        assert item.title == "Keep me"

    def test_apply_rejects_id_change(self):
        item = EvidenceItem(id="ev-1")

        with pytest.raises(ValueError):
            item.apply({"id": "ev-2"})

    def test_apply_rejects_unknown_field(self):
        item = EvidenceItem(id="ev-1")

        with pytest.raises(ValueError):
            item.apply({"colour": "blue"})


class TestCoerceField:
    def test_linked_evidence_deduplicated(self):
        assert coerce_field("linked_evidence", {"k": ["a", "b", "a"]}) == {"k": ["a", "b"]}

    def test_respondent_dicts_become_models(self):
        result = coerce_field("msf_respondents", [{"id": "r1"}, MSFRespondent(id="r2")])

        assert [r.id for r in result] == ["r1", "r2"]
        assert result[0].status == RespondentStatus.AWAITING


class TestSIA:
    """Tests for SIA and supervisor initials."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Jane van Smith", "JVS"),
            ("alex doe", "AD"),
            (None, "–"),
            ("   ", "–"),
        ],
    )
    def test_supervisor_initials(self, name, expected):
        assert supervisor_initials(name) == expected

    def test_initials_follow_name_changes(self):
        sia = SIA(id="s1", specialty="Glaucoma", level=2, supervisor_name="Ann Lee")
        assert sia.supervisor_initials == "AL"

        sia.supervisor_name = "Bo Ray Tan"

        assert sia.supervisor_initials == "BRT"

    def test_to_dict_and_from_dict(self):
        sia = SIA.from_dict({"id": "s1", "specialty": "Retina", "level": 3})

        assert sia.supervisor_name is None
        assert sia.to_dict() == {"id": "s1", "specialty": "Retina", "level": 3}
