"""In-memory evidence store and SIA collection."""

from collections import Counter
from typing import Any, Callable, Iterator, Optional

from ..models.evidence import (
    EVIDENCE_FIELDS,
    EvidenceItem,
    EvidenceStatus,
    EvidenceType,
    coerce_field,
)
from ..models.sia import SIA
from ..utils.logging import get_logger
from .exceptions import EvidenceNotFoundError
from .ids import IdGenerator

logger = get_logger(__name__)


class EvidenceStore:
    """Evidence records keyed by generated id, newest first.

    Records are only ever changed through :meth:`upsert`.
    """

    def __init__(
        self,
        items: Optional[list[EvidenceItem]] = None,
        id_generator: Optional[IdGenerator] = None,
    ):
        self._items: list[EvidenceItem] = list(items or [])
        self.id_generator = id_generator or IdGenerator()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[EvidenceItem]:
        return iter(self._items)

    def __contains__(self, evidence_id: object) -> bool:
        return any(item.id == evidence_id for item in self._items)

    def load(self, items: list[EvidenceItem]) -> None:
        """Replace every record (e.g. from a saved snapshot)."""
        self._items = list(items)

    @property
    def items(self) -> list[EvidenceItem]:
        """Snapshot of all records, newest first."""
        return list(self._items)

    @property
    def ids(self) -> set[str]:
        return {item.id for item in self._items}

    def get(self, evidence_id: str) -> Optional[EvidenceItem]:
        """Get a record by id, or None."""
        for item in self._items:
            if item.id == evidence_id:
                return item
        return None

    def find(self, evidence_id: Optional[str], evidence_type: Optional[EvidenceType] = None) -> Optional[EvidenceItem]:
        """Get a record by id, optionally requiring a matching type."""
        if not evidence_id:
            return None
        item = self.get(evidence_id)
        if item is None:
            return None
        if evidence_type is not None and item.type != evidence_type:
            return None
        return item

    def require(self, evidence_id: str) -> EvidenceItem:
        """Get a record by id.

        Raises:
            EvidenceNotFoundError: If no record has this id
        """
        item = self.get(evidence_id)
        if item is None:
            raise EvidenceNotFoundError(evidence_id)
        return item

    def upsert(self, id: Optional[str] = None, **fields: Any) -> EvidenceItem:
        """Merge fields into an existing record or create a new one.

        A matching id merges the given fields into that record and leaves the
        others untouched. Otherwise a new record is prepended with defaults
        for date, status, title and type; a caller-supplied id is kept,
        else one is generated.

        Returns:
            The updated or created record

        Raises:
            ValueError: If a field name is not an evidence field
            IdGenerationError: If no unused id could be generated
        """
        unknown = set(fields) - EVIDENCE_FIELDS
        if unknown:
            raise ValueError(f"Unknown evidence field(s): {', '.join(sorted(unknown))}")

        existing = self.get(id) if id else None
        if existing is not None:
            existing.apply(fields)
            logger.debug("Updated evidence %s (%s)", existing.id, ", ".join(fields) or "no fields")
            return existing

        new_id = id or self.id_generator.next_id(self.ids)
        values = {name: coerce_field(name, value) for name, value in fields.items() if value is not None}
        item = EvidenceItem(id=new_id, **values)
        self._items.insert(0, item)
        logger.debug("Created %s evidence %s", item.type.value, item.id)
        return item

    def remove(self, evidence_id: str) -> bool:
        """Delete a record. Returns False if it was not present."""
        for index, item in enumerate(self._items):
            if item.id == evidence_id:
                del self._items[index]
                logger.debug("Removed evidence %s", evidence_id)
                return True
        return False

    def filter(
        self,
        evidence_type: Optional[EvidenceType] = None,
        status: Optional[EvidenceStatus] = None,
        sia: Optional[str] = None,
        level: Optional[int] = None,
        predicate: Optional[Callable[[EvidenceItem], bool]] = None,
    ) -> list[EvidenceItem]:
        """Records matching every given criterion, newest first."""
        result = []
        for item in self._items:
            if evidence_type is not None and item.type != evidence_type:
                continue
            if status is not None and item.status != status:
                continue
            if sia is not None and item.sia != sia:
                continue
            if level is not None and item.level != level:
                continue
            if predicate is not None and not predicate(item):
                continue
            result.append(item)
        return result

    def active_msf(self) -> Optional[EvidenceItem]:
        """The MSF currently in Draft or Submitted status, if any."""
        for item in self._items:
            if item.type == EvidenceType.MSF and item.is_active:
                return item
        return None

    def counts_by_status(self) -> dict[str, int]:
        """Number of records per status value."""
        counts = Counter(item.status.value for item in self._items)
        return {status.value: counts.get(status.value, 0) for status in EvidenceStatus}

    def counts_by_type(self) -> dict[str, int]:
        """Number of records per evidence type, omitting empty types."""
        return dict(Counter(item.type.value for item in self._items))


class SIACollection:
    """A trainee's specialist interest areas."""

    def __init__(self, sias: Optional[list[SIA]] = None, id_generator: Optional[IdGenerator] = None):
        self._sias: list[SIA] = list(sias or [])
        self.id_generator = id_generator or IdGenerator()

    def __len__(self) -> int:
        return len(self._sias)

    def __iter__(self) -> Iterator[SIA]:
        return iter(self._sias)

    def load(self, sias: list[SIA]) -> None:
        self._sias = list(sias)

    def get(self, sia_id: str) -> Optional[SIA]:
        for sia in self._sias:
            if sia.id == sia_id:
                return sia
        return None

    def add(
        self,
        specialty: str,
        level: int,
        supervisor_name: Optional[str] = None,
        supervisor_email: Optional[str] = None,
    ) -> SIA:
        """Append a new SIA with a generated id."""
        sia = SIA(
            id=self.id_generator.next_id({s.id for s in self._sias}),
            specialty=specialty,
            level=level,
            supervisor_name=supervisor_name,
            supervisor_email=supervisor_email,
        )
        self._sias.append(sia)
        logger.debug("Added SIA %s (%s, level %d)", sia.id, specialty, level)
        return sia

    def update(self, sia_id: str, **changes: Any) -> Optional[SIA]:
        """Apply field changes to an SIA. Returns None if it does not exist.

        Initials are derived from ``supervisor_name`` on read, so a name change
        is reflected immediately.
        """
        sia = self.get(sia_id)
        if sia is None:
            logger.warning("Cannot update unknown SIA %s", sia_id)
            return None
        for name, value in changes.items():
            if name == "id" or not hasattr(sia, name) or name == "supervisor_initials":
                raise ValueError(f"Cannot update SIA field: {name}")
            setattr(sia, name, value)
        return sia

    def remove(self, sia_id: str) -> bool:
        """Delete an SIA. Returns False if it was not present."""
        before = len(self._sias)
        self._sias = [s for s in self._sias if s.id != sia_id]
        return len(self._sias) < before
