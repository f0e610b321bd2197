"""Evidence item data models."""

from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Any, Optional


class EvidenceType(str, Enum):
    """Assessment form or evidence category."""

    EPA = "EPA"
    DOPS = "DOPs"
    OSATS = "OSATs"
    CBD = "CbD"
    CRS = "CRS"
    GSAT = "GSAT"
    MSF = "MSF"
    MAR = "MAR"
    EPA_OPERATING_LIST = "EPA Operating List"
    REFLECTION = "Reflection"
    ARCP_PREP = "ARCP Preparation"
    OTHER = "Other"


class EvidenceStatus(str, Enum):
    """Workflow status of an evidence item."""

    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    SIGNED_OFF = "COMPLETE"


class RespondentStatus(str, Enum):
    """Progress of a single MSF respondent."""

    AWAITING = "Awaiting response"
    COMPLETED = "Completed"


# Roles an MSF respondent can hold
MSF_ROLES = (
    "Consultant",
    "Trainee/Fellow",
    "Senior nurse, theatre",
    "Senior nurse, OPD",
    "Outpatient staff",
    "Medical secretary",
)

DEFAULT_TITLE = "Untitled Evidence"

# Fields that always hold a value; merging None into them is ignored
REQUIRED_FIELDS = frozenset({"type", "status", "title", "date"})

# Statuses that count as an MSF still in progress
ACTIVE_STATUSES = (EvidenceStatus.DRAFT, EvidenceStatus.SUBMITTED)

# Top-level columns of the hosted evidence table; everything else lives in `data`
ROW_COLUMNS = {
    "id": "id",
    "type": "type",
    "status": "status",
    "title": "title",
    "date": "event_date",
    "sia": "sia",
    "level": "level",
    "notes": "notes",
    "supervisor_gmc": "supervisor_gmc",
    "supervisor_name": "supervisor_name",
    "supervisor_email": "supervisor_email",
}


@dataclass
class MSFRespondent:
    """A colleague invited to give multi-source feedback."""

    id: str
    name: str = ""
    email: str = ""
    role: str = "Consultant"
    status: RespondentStatus = RespondentStatus.AWAITING
    invite_sent: bool = False
    last_reminded: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.status == RespondentStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status.value,
            "invite_sent": self.invite_sent,
        }
        if self.last_reminded:
            result["last_reminded"] = self.last_reminded
        return result

    def to_row(self) -> dict[str, Any]:
        """Shape stored inside the hosted evidence `data` column."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status.value,
            "inviteSent": self.invite_sent,
            "lastReminded": self.last_reminded,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MSFRespondent":
        """Create from either the snapshot or the hosted row shape."""
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            email=data.get("email", ""),
            role=data.get("role", "Consultant"),
            status=RespondentStatus(data.get("status", RespondentStatus.AWAITING.value)),
            invite_sent=data.get("invite_sent", data.get("inviteSent", False)),
            last_reminded=data.get("last_reminded", data.get("lastReminded")),
        )


@dataclass
class EvidenceItem:
    """A single piece of portfolio evidence.

    Attributes:
        id: Generated identifier, never changes once assigned
        type: Form or evidence category
        title: Display title
        date: Event date
        status: Draft, Submitted or signed off
        sia: Specialist interest area the evidence belongs to
        level: Curriculum level
        notes: Free-text notes
        supervisor_name: Assessor or supervisor name
        supervisor_email: Assessor or supervisor email
        supervisor_gmc: Assessor GMC number, recorded at sign-off
        msf_respondents: Respondent list (MSF only)
        linked_evidence: Requirement key -> linked evidence ids (EPA/GSAT)
        form_data: Remaining type-specific answers
    """

    id: str
    type: EvidenceType = EvidenceType.OTHER
    title: str = DEFAULT_TITLE
    date: date = field(default_factory=date.today)
    status: EvidenceStatus = EvidenceStatus.DRAFT
    sia: Optional[str] = None
    level: Optional[int] = None
    notes: Optional[str] = None
    supervisor_name: Optional[str] = None
    supervisor_email: Optional[str] = None
    supervisor_gmc: Optional[str] = None
    msf_respondents: list[MSFRespondent] = field(default_factory=list)
    linked_evidence: dict[str, list[str]] = field(default_factory=dict)
    form_data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_draft(self) -> bool:
        return self.status == EvidenceStatus.DRAFT

    @property
    def is_active(self) -> bool:
        """Draft or Submitted, i.e. not yet signed off."""
        return self.status in ACTIVE_STATUSES

    @property
    def linked_ids(self) -> set[str]:
        """Every evidence id this item links to, across requirement keys."""
        return {eid for ids in self.linked_evidence.values() for eid in ids}

    def apply(self, changes: dict[str, Any]) -> None:
        """Merge field values into this item; last write wins per field.

        None is ignored for required fields, as it is when creating.

        Raises:
            ValueError: If a field is unknown or the id would change
        """
        for name, value in changes.items():
            if name not in EVIDENCE_FIELDS:
                raise ValueError(f"Unknown evidence field: {name}")
            if name == "id":
                if value is not None and value != self.id:
                    raise ValueError("Evidence id cannot change")
                continue
            if value is None and name in REQUIRED_FIELDS:
                continue
            setattr(self, name, coerce_field(name, value))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for YAML/JSON serialization."""
        result = {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "date": self.date.isoformat(),
            "status": self.status.value,
        }

        for key in ("sia", "level", "notes", "supervisor_name", "supervisor_email", "supervisor_gmc"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.msf_respondents:
            result["msf_respondents"] = [r.to_dict() for r in self.msf_respondents]
        if self.linked_evidence:
            result["linked_evidence"] = {k: list(v) for k, v in self.linked_evidence.items()}
        if self.form_data:
            result["form_data"] = self.form_data

        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EvidenceItem":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            type=EvidenceType(data.get("type", EvidenceType.OTHER.value)),
            title=data.get("title", DEFAULT_TITLE),
            date=coerce_field("date", data.get("date")) if data.get("date") else date.today(),
            status=EvidenceStatus(data.get("status", EvidenceStatus.DRAFT.value)),
            sia=data.get("sia"),
            level=data.get("level"),
            notes=data.get("notes"),
            supervisor_name=data.get("supervisor_name"),
            supervisor_email=data.get("supervisor_email"),
            supervisor_gmc=data.get("supervisor_gmc"),
            msf_respondents=[MSFRespondent.from_dict(r) for r in data.get("msf_respondents", [])],
            linked_evidence={k: list(v) for k, v in data.get("linked_evidence", {}).items()},
            form_data=data.get("form_data", {}),
        )

    def to_row(self) -> dict[str, Any]:
        """Map to the hosted evidence row: known columns plus a JSON `data` column.

        The caller adds `trainee_id`.
        """
        row: dict[str, Any] = {}
        for attr, column in ROW_COLUMNS.items():
            value = getattr(self, attr)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, date):
                value = value.isoformat()
            row[column] = value if value not in ("", 0) else None

        data = dict(self.form_data)
        if self.msf_respondents:
            data["msfRespondents"] = [r.to_row() for r in self.msf_respondents]
        if self.linked_evidence:
            data["linkedEvidence"] = {k: list(v) for k, v in self.linked_evidence.items()}
        row["data"] = data
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "EvidenceItem":
        """Create from a hosted evidence row."""
        data = dict(row.get("data") or {})
        respondents = data.pop("msfRespondents", None) or []
        linked = data.pop("linkedEvidence", None) or {}

        return cls(
            id=row["id"],
            type=EvidenceType(row.get("type") or EvidenceType.OTHER.value),
            title=row.get("title") or DEFAULT_TITLE,
            date=coerce_field("date", row["event_date"]) if row.get("event_date") else date.today(),
            status=EvidenceStatus(row.get("status") or EvidenceStatus.DRAFT.value),
            sia=row.get("sia") or None,
            level=row.get("level") or None,
            notes=row.get("notes") or None,
            supervisor_name=row.get("supervisor_name") or None,
            supervisor_email=row.get("supervisor_email") or None,
            supervisor_gmc=row.get("supervisor_gmc") or None,
            msf_respondents=[MSFRespondent.from_dict(r) for r in respondents],
            linked_evidence={k: list(v) for k, v in linked.items()},
            form_data=data,
        )


EVIDENCE_FIELDS = frozenset(f.name for f in fields(EvidenceItem))


def coerce_field(name: str, value: Any) -> Any:
    """Convert a raw value (e.g. from a form callback) to the field's type."""
    if value is None:
        return None
    if name == "type" and not isinstance(value, EvidenceType):
        return EvidenceType(value)
    if name == "status" and not isinstance(value, EvidenceStatus):
        return EvidenceStatus(value)
    if name == "date" and isinstance(value, str):
        # Accept full timestamps as well as plain dates
        return date.fromisoformat(value[:10])
    if name == "msf_respondents":
        return [r if isinstance(r, MSFRespondent) else MSFRespondent.from_dict(r) for r in value]
    if name == "linked_evidence":
        return {k: list(dict.fromkeys(v)) for k, v in value.items()}
    return value
