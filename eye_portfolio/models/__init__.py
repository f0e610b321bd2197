"""Data models for Eye Portfolio."""

from .evidence import (
    DEFAULT_TITLE,
    EVIDENCE_FIELDS,
    MSF_ROLES,
    EvidenceItem,
    EvidenceStatus,
    EvidenceType,
    MSFRespondent,
    RespondentStatus,
    coerce_field,
)
from .sia import SIA, supervisor_initials

__all__ = [
    "DEFAULT_TITLE",
    "EVIDENCE_FIELDS",
    "MSF_ROLES",
    "EvidenceItem",
    "EvidenceStatus",
    "EvidenceType",
    "MSFRespondent",
    "RespondentStatus",
    "SIA",
    "coerce_field",
    "supervisor_initials",
]
