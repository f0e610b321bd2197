"""Screens the portfolio controller can switch between."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models.evidence import EvidenceType


class View(str, Enum):
    """Application screens. Form bodies are opaque to the controller."""

    DASHBOARD = "dashboard"
    EVIDENCE = "evidence"
    PROGRESS = "progress"
    EPA_FORM = "epa-form"
    GSAT_FORM = "gsat-form"
    DOPS_FORM = "dops-form"
    OSATS_FORM = "osats-form"
    CBD_FORM = "cbd-form"
    CRS_FORM = "crs-form"
    EPA_OPERATING_LIST_FORM = "epa-operating-list-form"
    ADD_EVIDENCE = "add-evidence"
    RECORD_FORM = "record-form"
    MAR_FORM = "mar-form"
    MSF_FORM = "msf-form"
    MSF_SUBMISSION = "msf-submission"
    MSF_RESPONSE = "msf-response"
    ARCP_PREP = "arcp-prep"


@dataclass(frozen=True)
class ReturnTarget:
    """Screen and scroll position to restore after a linking flow."""

    origin_view: View
    section: int = 0
    index: Optional[int] = None


# Views that render a single evidence form of a fixed type
FORM_VIEW_TYPES: dict[View, EvidenceType] = {
    View.EPA_FORM: EvidenceType.EPA,
    View.GSAT_FORM: EvidenceType.GSAT,
    View.DOPS_FORM: EvidenceType.DOPS,
    View.OSATS_FORM: EvidenceType.OSATS,
    View.CBD_FORM: EvidenceType.CBD,
    View.CRS_FORM: EvidenceType.CRS,
    View.EPA_OPERATING_LIST_FORM: EvidenceType.EPA_OPERATING_LIST,
    View.MAR_FORM: EvidenceType.MAR,
    View.MSF_FORM: EvidenceType.MSF,
}

TYPE_FORM_VIEWS: dict[EvidenceType, View] = {
    evidence_type: view for view, evidence_type in FORM_VIEW_TYPES.items()
}
TYPE_FORM_VIEWS[EvidenceType.MSF] = View.MSF_SUBMISSION
TYPE_FORM_VIEWS[EvidenceType.ARCP_PREP] = View.ARCP_PREP

DEFAULT_BACK: dict[View, View] = {
    View.ADD_EVIDENCE: View.EVIDENCE,
    View.MSF_SUBMISSION: View.EVIDENCE,
    View.MSF_RESPONSE: View.MSF_SUBMISSION,
}


def evidence_type_for(view: View) -> Optional[EvidenceType]:
    """Evidence type edited by a form view, or None for non-form screens."""
    return FORM_VIEW_TYPES.get(view)


def form_view_for(evidence_type: EvidenceType) -> View:
    """Screen that edits evidence of the given type.

    Types without a dedicated form (Reflection, Other, ...) use the generic
    add-evidence screen.
    """
    return TYPE_FORM_VIEWS.get(evidence_type, View.ADD_EVIDENCE)


def default_back(view: View) -> View:
    """Where "back" goes when no origin was recorded."""
    if view in FORM_VIEW_TYPES:
        return View.RECORD_FORM
    return DEFAULT_BACK.get(view, View.DASHBOARD)
