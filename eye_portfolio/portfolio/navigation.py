"""Navigation controller for the portfolio screens.

The controller owns the whole application state: current view, the
parameter bag for that view, the evidence store, the SIA collection and
the link registry. Views are opaque; they read a :class:`FormState` from
:meth:`PortfolioController.current_form` and report user actions by
calling controller methods. Every method performs its mutation and the
resulting screen change in one step.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Iterable, Optional

from ..config import Settings, get_settings
from ..models.evidence import (
    EvidenceItem,
    EvidenceStatus,
    EvidenceType,
    MSFRespondent,
    RespondentStatus,
)
from ..models.sia import SIA
from ..utils.logging import get_logger
from .ids import IdGenerator
from .linking import LinkRegistry, arcp_prep_field, gsat_key, is_arcp_prep_key, parse_index, plain_key
from .store import EvidenceStore, SIACollection
from .views import ReturnTarget, View, default_back, evidence_type_for, form_view_for

logger = get_logger(__name__)

MSF_IN_PROGRESS_NOTICE = "You already have an MSF in progress – only one MSF can be active at a time."
MSF_RESPONSE_NOTICE = "Thank you! Your response has been submitted."
ARCP_PREP_TITLE = "ARCP Preparation"

# Sub-forms an EPA criterion can require, and the screen for each
MANDATORY_FORM_VIEWS: dict[EvidenceType, View] = {
    EvidenceType.CRS: View.CRS_FORM,
    EvidenceType.OSATS: View.OSATS_FORM,
    EvidenceType.DOPS: View.DOPS_FORM,
    EvidenceType.CBD: View.CBD_FORM,
    EvidenceType.EPA_OPERATING_LIST: View.EPA_OPERATING_LIST_FORM,
    EvidenceType.EPA: View.EPA_FORM,
}

# Screens that edit the record held in AppState.editing_evidence_id
EDITING_VIEWS = (View.ADD_EVIDENCE, View.MSF_SUBMISSION, View.MSF_RESPONSE)


@dataclass
class FormParams:
    """Parameter bag handed to a screen; replaced wholesale on navigation."""

    sia: Optional[str] = None
    level: Optional[int] = None
    supervisor_name: Optional[str] = None
    supervisor_email: Optional[str] = None
    subtype: Optional[str] = None
    evidence_id: Optional[str] = None
    status: Optional[EvidenceStatus] = None
    initial_section: Optional[int] = None
    origin_view: Optional[View] = None
    origin_params: Optional["FormParams"] = None


@dataclass
class MandatoryFormContext:
    """An in-progress "complete sub-form X to satisfy requirement Y" flow."""

    expected_type: EvidenceType
    default_subtype: str
    requirement_key: str
    return_section: int
    return_index: int
    parent_params: FormParams
    created_id: Optional[str] = None


@dataclass
class FormState:
    """What a form view needs to render."""

    view: View
    params: FormParams
    evidence_type: Optional[EvidenceType]
    evidence: Optional[EvidenceItem]
    status: EvidenceStatus
    linked_evidence: dict[str, list[str]] = field(default_factory=dict)
    initial_section: Optional[int] = None
    scroll_index: Optional[int] = None

    @property
    def read_only(self) -> bool:
        return self.status != EvidenceStatus.DRAFT

    @property
    def is_new(self) -> bool:
        return self.evidence is None


@dataclass
class AppState:
    """Mutable navigation state owned by the controller."""

    view: View = View.DASHBOARD
    params: FormParams = field(default_factory=FormParams)
    return_target: Optional[ReturnTarget] = None
    mandatory: Optional[MandatoryFormContext] = None
    editing_evidence_id: Optional[str] = None
    active_respondent_id: Optional[str] = None
    notices: list[str] = field(default_factory=list)


class PortfolioController:
    """Maps user actions to store/registry mutations and view transitions.

    Args:
        store: Evidence records (a new empty store by default)
        sias: Specialist interest areas
        links: Requirement-key link registry
        settings: Settings to use (global settings by default)
    """

    def __init__(
        self,
        store: Optional[EvidenceStore] = None,
        sias: Optional[SIACollection] = None,
        links: Optional[LinkRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.config = settings.portfolio
        self.store = store if store is not None else EvidenceStore(
            id_generator=IdGenerator(max_attempts=self.config.id_max_attempts)
        )
        self.sias = sias if sias is not None else SIACollection(id_generator=self.store.id_generator)
        self.links = links if links is not None else LinkRegistry()
        self.state = AppState()

    @property
    def view(self) -> View:
        return self.state.view

    @property
    def params(self) -> FormParams:
        return self.state.params

    def _trace(self, action: str, **details: Any) -> None:
        if not self.config.debug_navigation:
            return
        extra = " ".join(f"{k}={v}" for k, v in details.items())
        logger.debug("[nav] %s view=%s %s", action, self.state.view.value, extra)

    # ------------------------------------------------------------------
    # Core navigation
    # ------------------------------------------------------------------

    def navigate(self, view: View, params: Optional[FormParams] = None) -> None:
        """Switch to ``view`` with a fresh parameter bag."""
        previous = self.state.view
        self.state.view = View(view)
        self.state.params = params if params is not None else FormParams()
        self._trace("navigate", previous=previous.value, evidence_id=self.state.params.evidence_id)

    def go_back(self) -> None:
        """Return to the recorded origin, or the screen's default parent."""
        params = self.state.params
        current = self.state.view

        if current == View.EVIDENCE and self.links.is_selecting:
            self.cancel_selection()
            return

        mandatory = self.state.mandatory
        if mandatory is not None and params.origin_params is mandatory.parent_params:
            logger.info("Mandatory %s form abandoned", mandatory.expected_type.value)
            self.state.mandatory = None

        if current in (View.ADD_EVIDENCE, View.MSF_SUBMISSION):
            self.state.editing_evidence_id = None

        if params.origin_view is not None and params.origin_params is not None:
            self.navigate(params.origin_view, params.origin_params)
        elif params.origin_view is not None:
            self.navigate(params.origin_view)
        else:
            self.navigate(default_back(current))

    def open_form(self, view: View, **params: Any) -> None:
        """Open a form fresh from the record-form picker or the dashboard."""
        view = View(view)
        if view in (View.MSF_FORM, View.MSF_SUBMISSION):
            self.start_msf()
            return
        self.state.return_target = None
        self.navigate(view, FormParams(**params))

    def add_evidence(
        self,
        sia: Optional[str] = None,
        level: Optional[int] = None,
        subtype: Optional[str] = None,
    ) -> None:
        """Open the generic add-evidence screen for a new record."""
        self.state.editing_evidence_id = None
        if sia and level:
            params = FormParams(sia=sia, level=level, subtype=subtype)
        else:
            params = FormParams()
        self.navigate(View.ADD_EVIDENCE, params)

    def edit_evidence(self, evidence_id: str) -> EvidenceItem:
        """Open an existing record in the screen for its type.

        Raises:
            EvidenceNotFoundError: If the id is unknown
        """
        item = self.store.require(evidence_id)
        view = form_view_for(item.type)
        if view in EDITING_VIEWS:
            self.state.editing_evidence_id = item.id
        self.navigate(
            view,
            FormParams(
                sia=item.sia,
                level=item.level or 1,
                evidence_id=item.id,
                status=item.status,
                origin_view=self.state.view,
            ),
        )
        return item

    def delete_evidence(self, evidence_id: str) -> bool:
        """Remove a record and drop it from every link set."""
        removed = self.store.remove(evidence_id)
        if removed:
            self.links.discard_evidence(evidence_id)
        return removed

    # ------------------------------------------------------------------
    # Form state
    # ------------------------------------------------------------------

    def _editing_record(self) -> Optional[EvidenceItem]:
        evidence_id = self.state.editing_evidence_id or self.state.params.evidence_id
        return self.store.get(evidence_id) if evidence_id else None

    def current_form(self) -> Optional[FormState]:
        """Resolve edit-vs-create state for the current screen.

        Returns None on screens that do not edit evidence.
        """
        view = self.state.view
        params = self.state.params
        evidence_type = evidence_type_for(view)

        if view in EDITING_VIEWS:
            evidence = self._editing_record()
            if evidence is not None:
                evidence_type = evidence.type
        elif evidence_type is not None:
            evidence = self.store.find(params.evidence_id, evidence_type)
        else:
            return None

        if evidence is not None:
            status = params.status or evidence.status
        else:
            status = EvidenceStatus.DRAFT

        target = self.state.return_target
        restoring = target is not None and target.origin_view == view
        initial_section = params.initial_section
        if initial_section is None and restoring:
            initial_section = target.section

        return FormState(
            view=view,
            params=params,
            evidence_type=evidence_type,
            evidence=evidence,
            status=status,
            linked_evidence=self._visible_links(view, evidence),
            initial_section=initial_section,
            scroll_index=target.index if restoring else None,
        )

    def _visible_links(self, view: View, evidence: Optional[EvidenceItem]) -> dict[str, list[str]]:
        stored = evidence.linked_evidence if evidence is not None else {}
        if view == View.EPA_FORM:
            return self.links.for_level(self.state.params.level or 1, stored)

        if view == View.GSAT_FORM:
            merged = {k: list(v) for k, v in stored.items() if k.startswith("GSAT-")}
            merged.update({k: v for k, v in self.links.snapshot().items() if k.startswith("GSAT-")})
            return merged

        return {k: list(v) for k, v in stored.items()}

    def view_linked_evidence(self, evidence_id: str, section: Optional[int] = None) -> bool:
        """Open a linked record read-only; "back" returns to this exact section.

        Returns:
            False (and stays on the current screen) if the record is missing
        """
        evidence = self.store.get(evidence_id)
        if evidence is None:
            logger.error("Linked evidence not found: %s", evidence_id)
            return False

        origin_view = self.state.view
        origin_params = replace(self.state.params, initial_section=section)
        view = form_view_for(evidence.type)
        if view in EDITING_VIEWS:
            self.state.editing_evidence_id = evidence.id

        self.navigate(
            view,
            FormParams(
                sia=evidence.sia,
                level=evidence.level or 1,
                evidence_id=evidence.id,
                status=EvidenceStatus.SUBMITTED,
                origin_view=origin_view,
                origin_params=origin_params,
            ),
        )
        return True

    # ------------------------------------------------------------------
    # Linking
    # ------------------------------------------------------------------

    def request_link(
        self,
        requirement: str,
        section: Optional[int] = None,
        domain: Optional[str] = None,
        form_params: Optional[FormParams] = None,
    ) -> str:
        """Open the evidence browser in selection mode for a requirement.

        EPA forms pass full requirement keys; GSAT forms pass an item index
        plus its domain; other forms pass a bare requirement id. ``ARCP_PREP_*``
        keys select the lists held on the ARCP preparation record.

        Returns:
            The requirement key being linked

        Raises:
            ValueError: If an ARCP preparation key names no known list
        """
        if is_arcp_prep_key(str(requirement)):
            return self._request_arcp_prep_link(str(requirement))

        origin_view = self.state.view
        origin_params = form_params or self.state.params

        if origin_view == View.GSAT_FORM and domain is not None:
            key = gsat_key(domain, parse_index(str(requirement)))
        elif origin_view == View.EPA_FORM:
            key = str(requirement)
        else:
            key = plain_key(str(requirement))

        self._seed_from_record(key, origin_params)
        self.links.begin(key)
        self.state.return_target = ReturnTarget(
            origin_view=origin_view,
            section=section if section is not None else 0,
            index=parse_index(key) if section is not None else None,
        )
        self.navigate(View.EVIDENCE, FormParams(origin_view=origin_view, origin_params=origin_params))
        return key

    def _request_arcp_prep_link(self, key: str) -> str:
        field_name = arcp_prep_field(key)
        if field_name is None:
            raise ValueError(f"Unknown ARCP preparation key: {key}")

        record = self.arcp_prep_record()
        current = (record.form_data.get(field_name) if record is not None else None) or []
        # The selection starts from the list as currently saved
        self.links.pop(key)
        self.links.link(key, current)
        self.links.begin(key)
        self.state.return_target = ReturnTarget(origin_view=View.ARCP_PREP, section=0)
        self.navigate(View.EVIDENCE, FormParams(origin_view=View.ARCP_PREP))
        return key

    def _seed_from_record(self, key: str, params: FormParams) -> None:
        # The registry shadows stored links per key, so copy them in first
        if key in self.links or not params.evidence_id:
            return
        record = self.store.get(params.evidence_id)
        if record is not None and key in record.linked_evidence:
            self.links.link(key, record.linked_evidence[key])

    def selectable_evidence(self) -> list[EvidenceItem]:
        """Records offered in the evidence browser during a selection.

        Selecting from a non-EPA form hides records of that form's own type.
        The originating record itself is never offered, nor is the ARCP
        preparation record when selecting for it.
        """
        items = self.store.items
        if not self.links.is_selecting:
            return items

        target = self.state.return_target
        origin_type = evidence_type_for(target.origin_view) if target is not None else None
        if target is not None and target.origin_view == View.ARCP_PREP:
            origin_type = EvidenceType.ARCP_PREP
        origin_params = self.state.params.origin_params
        origin_id = origin_params.evidence_id if origin_params is not None else None

        return [
            item
            for item in items
            if item.id != origin_id
            and (origin_type in (None, EvidenceType.EPA) or item.type != origin_type)
        ]

    def preselected_ids(self) -> list[str]:
        """Ids already linked to the requirement being selected for."""
        if not self.links.is_selecting or self.links.pending_key is None:
            return []
        return self.links.get(self.links.pending_key)

    def confirm_selection(self, evidence_ids: Iterable[str]) -> str:
        """Link the chosen records and return to the recorded target.

        For ARCP preparation keys the chosen ids replace the saved list
        on the preparation record instead of being added to it.

        Raises:
            LinkStateError: If no selection is in progress
        """
        pending = self.links.pending_key
        if pending is not None and is_arcp_prep_key(pending):
            key = self.links.confirm(evidence_ids, replace=True)
            self._save_arcp_prep(arcp_prep_field(key), self.links.pop(key))
        else:
            key = self.links.confirm(evidence_ids)
        self._trace("confirm_selection", key=key)
        self._return_from_selection()
        return key

    def cancel_selection(self) -> None:
        """Leave selection mode without linking anything.

        Raises:
            LinkStateError: If no selection is in progress
        """
        pending = self.links.pending_key
        self.links.cancel()
        if pending is not None and is_arcp_prep_key(pending):
            self.links.pop(pending)
        self._return_from_selection()

    def _return_from_selection(self) -> None:
        target = self.state.return_target
        if target is None:
            self.navigate(View.DASHBOARD)
            return
        origin_params = self.state.params.origin_params or FormParams()
        self.navigate(target.origin_view, replace(origin_params, initial_section=target.section))

    def remove_link(self, key: str, evidence_id: str) -> None:
        """Unlink one record from a requirement; absent ids are ignored."""
        self._seed_from_record(key, self.state.params)
        self.links.unlink(key, evidence_id)

    # ------------------------------------------------------------------
    # Saving and mandatory sub-forms
    # ------------------------------------------------------------------

    def start_mandatory_form(
        self,
        form_type: EvidenceType,
        default_subtype: str,
        requirement_key: str,
        section: int,
        index: int,
        level: Optional[int] = None,
        sia: Optional[str] = None,
    ) -> None:
        """Open a sub-form whose submission will be linked to ``requirement_key``."""
        form_type = EvidenceType(form_type)
        if form_type not in MANDATORY_FORM_VIEWS:
            raise ValueError(f"{form_type.value} cannot be launched as a mandatory form")

        current = self.state.params
        parent = FormParams(
            sia=sia if sia is not None else current.sia,
            level=level or current.level or 1,
            supervisor_name=current.supervisor_name,
            supervisor_email=current.supervisor_email,
            evidence_id=current.evidence_id,
            status=current.status,
            initial_section=section,
            origin_view=current.origin_view,
            origin_params=current.origin_params,
        )
        self.state.mandatory = MandatoryFormContext(
            expected_type=form_type,
            default_subtype=default_subtype,
            requirement_key=requirement_key,
            return_section=section,
            return_index=index,
            parent_params=parent,
        )

        if form_type == EvidenceType.EPA_OPERATING_LIST:
            # Operating lists are scoped by subspecialty rather than SIA/level
            sub_params = FormParams(sia=default_subtype)
        else:
            sub_params = FormParams(sia=parent.sia, level=parent.level, subtype=default_subtype)
        sub_params.supervisor_name = current.supervisor_name
        sub_params.supervisor_email = current.supervisor_email
        sub_params.origin_view = View.EPA_FORM
        sub_params.origin_params = parent

        logger.info("Starting mandatory %s form for %s", form_type.value, requirement_key)
        self.navigate(MANDATORY_FORM_VIEWS[form_type], sub_params)

    def save_form(self, **fields: Any) -> EvidenceItem:
        """Save the current screen's record (the view's "save" callback).

        The first save of a new record pins its id in the parameter bag so
        later saves update the same record.
        """
        params = self.state.params
        evidence_type = evidence_type_for(self.state.view)
        evidence_id = fields.pop("id", None) or params.evidence_id
        if self.state.view in EDITING_VIEWS:
            evidence_id = evidence_id or self.state.editing_evidence_id
        if evidence_type is not None:
            fields.setdefault("type", evidence_type)
        if params.sia is not None:
            fields.setdefault("sia", params.sia)
        if params.level is not None:
            fields.setdefault("level", params.level)

        item = self.store.upsert(evidence_id, **fields)

        if params.evidence_id != item.id:
            self.state.params = replace(params, evidence_id=item.id)
        if self.state.view in EDITING_VIEWS:
            self.state.editing_evidence_id = item.id

        mandatory = self.state.mandatory
        if mandatory is not None and item.type == mandatory.expected_type:
            mandatory.created_id = item.id

        self._trace("save_form", evidence_id=item.id, status=item.status.value)
        return item

    def submit_form(self, **fields: Any) -> EvidenceItem:
        """Save with Submitted status, then leave the form.

        A submission that completes a mandatory sub-form is linked to the
        parent requirement and reopens the parent at the recorded section.
        Anything else returns to the evidence list.
        """
        fields.setdefault("status", EvidenceStatus.SUBMITTED)
        item = self.save_form(**fields)

        mandatory = self.state.mandatory
        self.state.mandatory = None
        self.state.editing_evidence_id = None

        if mandatory is not None and item.type == mandatory.expected_type:
            evidence_id = mandatory.created_id or item.id
            self.links.link(mandatory.requirement_key, [evidence_id])
            self.state.return_target = ReturnTarget(
                origin_view=View.EPA_FORM,
                section=mandatory.return_section,
                index=mandatory.return_index,
            )
            logger.info("Linked %s %s to %s", item.type.value, evidence_id, mandatory.requirement_key)
            self.navigate(
                View.EPA_FORM,
                replace(mandatory.parent_params, initial_section=mandatory.return_section),
            )
            return item

        if mandatory is not None:
            logger.info(
                "Submitted %s does not satisfy mandatory %s form; context cleared",
                item.type.value,
                mandatory.expected_type.value,
            )
        self.navigate(View.EVIDENCE)
        return item

    # ------------------------------------------------------------------
    # MSF
    # ------------------------------------------------------------------

    def start_msf(self) -> EvidenceItem:
        """Open the active MSF, or create one if none is in progress."""
        existing = self.store.active_msf()
        if existing is not None:
            self.notify(MSF_IN_PROGRESS_NOTICE)
            self.state.editing_evidence_id = existing.id
            self.navigate(View.MSF_SUBMISSION, FormParams(evidence_id=existing.id))
            return existing

        generator = self.store.id_generator
        used: set[str] = set()
        respondents = []
        for _ in range(self.config.msf_respondent_slots):
            respondent_id = generator.next_id(used)
            used.add(respondent_id)
            respondents.append(MSFRespondent(id=respondent_id))

        today = date.today()
        item = self.store.upsert(
            type=EvidenceType.MSF,
            title=f"MSF - {self.config.trainee_name} - {today:%B %Y}",
            date=today,
            status=EvidenceStatus.DRAFT,
            msf_respondents=respondents,
        )
        logger.info("Created MSF %s", item.id)
        self.state.editing_evidence_id = item.id
        self.navigate(View.MSF_SUBMISSION, FormParams(evidence_id=item.id))
        return item

    def open_msf_response(self, respondent_id: str) -> None:
        """Open the response form for one respondent of the MSF being edited."""
        self.state.active_respondent_id = respondent_id
        self.navigate(View.MSF_RESPONSE, FormParams(evidence_id=self.state.editing_evidence_id))

    def submit_msf_response(self) -> Optional[EvidenceItem]:
        """Mark the active respondent as completed and return to the MSF."""
        msf = self._editing_record()
        respondent_id = self.state.active_respondent_id
        updated = None

        if msf is not None and respondent_id:
            respondents = [
                replace(r, status=RespondentStatus.COMPLETED) if r.id == respondent_id else r
                for r in msf.msf_respondents
            ]
            updated = self.store.upsert(msf.id, msf_respondents=respondents)
            self.notify(MSF_RESPONSE_NOTICE)
        else:
            logger.warning("MSF response submitted with no active MSF or respondent")

        self.state.active_respondent_id = None
        self.navigate(View.MSF_SUBMISSION, FormParams(evidence_id=msf.id if msf else None))
        return updated

    # ------------------------------------------------------------------
    # ARCP preparation
    # ------------------------------------------------------------------

    def arcp_prep_record(self) -> Optional[EvidenceItem]:
        """The trainee's ARCP preparation record, if one has been started."""
        found = self.store.filter(evidence_type=EvidenceType.ARCP_PREP)
        return found[0] if found else None

    def arcp_prep_links(self, key: str) -> list[str]:
        """Ids saved on the preparation record for an ``ARCP_PREP_*`` key."""
        field_name = arcp_prep_field(key)
        record = self.arcp_prep_record()
        if field_name is None or record is None:
            return []
        return list(record.form_data.get(field_name) or [])

    def _save_arcp_prep(self, field_name: str, evidence_ids: list[str]) -> EvidenceItem:
        record = self.arcp_prep_record()
        form_data = dict(record.form_data) if record is not None else {}
        form_data[field_name] = list(evidence_ids)
        if record is None:
            record = self.store.upsert(
                type=EvidenceType.ARCP_PREP,
                title=ARCP_PREP_TITLE,
                status=EvidenceStatus.DRAFT,
                form_data=form_data,
            )
        else:
            self.store.upsert(record.id, form_data=form_data)
        logger.info("ARCP preparation %s set to %d item(s)", field_name, len(evidence_ids))
        return record

    # ------------------------------------------------------------------
    # SIAs and notices
    # ------------------------------------------------------------------

    def add_sia(
        self,
        specialty: str,
        level: int,
        supervisor_name: Optional[str] = None,
        supervisor_email: Optional[str] = None,
    ) -> SIA:
        return self.sias.add(specialty, level, supervisor_name, supervisor_email)

    def update_sia(self, sia_id: str, **changes: Any) -> Optional[SIA]:
        return self.sias.update(sia_id, **changes)

    def remove_sia(self, sia_id: str) -> bool:
        return self.sias.remove(sia_id)

    def notify(self, message: str) -> None:
        """Queue a user-visible message."""
        logger.info(message)
        self.state.notices.append(message)

    def pop_notices(self) -> list[str]:
        """Return and clear queued user-visible messages."""
        notices = self.state.notices
        self.state.notices = []
        return notices
