"""Cross-form evidence linking.

A requirement key names one place in a form that evidence can be attached
to. EPA criteria use ``EPA-L{level}-{section}-{index}`` (or ``EPA-{id}``
for plain requirement ids) and GSAT domains use ``GSAT-{domain}-{index}``.
Lookups are exact-match; the registry does not interpret keys beyond the
level prefix used for filtering.
"""

from enum import Enum
from typing import Iterable, Optional

from ..utils.logging import get_logger
from .exceptions import LinkStateError

logger = get_logger(__name__)

EPA_LEVELS = (1, 2, 3, 4)


class LinkState(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"


def epa_key(level: int, section: int, index: int) -> str:
    return f"EPA-L{level}-{section}-{index}"


def gsat_key(domain: str, index: int) -> str:
    return f"GSAT-{domain}-{index}"


def plain_key(requirement: str) -> str:
    """Key for forms that pass a bare requirement id."""
    if requirement.startswith("EPA-"):
        return requirement
    return f"EPA-{requirement}"


def parse_index(key: str) -> int:
    """Trailing item index of a key, 0 if it has none."""
    tail = key.rsplit("-", 1)[-1]
    try:
        return int(tail)
    except ValueError:
        return 0


def level_prefix(level: Optional[int]) -> Optional[str]:
    """Key prefix for an EPA level, or None outside levels 1-4."""
    if level not in EPA_LEVELS:
        return None
    return f"EPA-L{level}-"


def filter_by_level(links: dict[str, list[str]], level: Optional[int]) -> dict[str, list[str]]:
    """Only the keys belonging to the given EPA level."""
    prefix = level_prefix(level)
    if prefix is None:
        return {}
    return {key: list(ids) for key, ids in links.items() if key.startswith(prefix)}


ARCP_PREP_PREFIX = "ARCP_PREP_"
ARCP_PREP_TARGETS = ("EPAS", "GSAT", "MSF", "ESR")
# Whole-list keys with their own field on the ARCP preparation record
ARCP_PREP_SPECIAL_FIELDS = {
    "ARCP_PREP_FORMR": "linked_form_r",
    "ARCP_PREP_LAST_ARCP": "last_arcp_evidence",
}


def is_arcp_prep_key(key: str) -> bool:
    return key.startswith(ARCP_PREP_PREFIX)


def arcp_prep_field(key: str) -> Optional[str]:
    """Field of the ARCP preparation record a key writes to.

    ``ARCP_PREP_LAST_EPAS`` maps to ``last_evidence_epas``,
    ``ARCP_PREP_CURRENT_MSF`` to ``current_evidence_msf`` and so on.
    Returns None for keys outside that scheme.
    """
    if key in ARCP_PREP_SPECIAL_FIELDS:
        return ARCP_PREP_SPECIAL_FIELDS[key]
    if not is_arcp_prep_key(key):
        return None
    parts = key[len(ARCP_PREP_PREFIX):].split("_")
    if len(parts) != 2 or parts[0] not in ("LAST", "CURRENT") or parts[1] not in ARCP_PREP_TARGETS:
        return None
    return f"{parts[0].lower()}_evidence_{parts[1].lower()}"


def union(current: Iterable[str], new: Iterable[str]) -> list[str]:
    """Ordered set union of two id sequences."""
    return list(dict.fromkeys([*current, *new]))


class LinkRegistry:
    """Requirement key -> linked evidence ids, plus the selection state machine.

    ``begin`` moves ``idle -> selecting``; ``confirm`` and ``cancel`` move back
    to ``idle``. Confirming unions the chosen ids into the pending key.
    """

    def __init__(self, links: Optional[dict[str, list[str]]] = None):
        self._links: dict[str, list[str]] = {k: union([], v) for k, v in (links or {}).items()}
        self.state = LinkState.IDLE
        self.pending_key: Optional[str] = None

    def __contains__(self, key: object) -> bool:
        return key in self._links

    @property
    def is_selecting(self) -> bool:
        return self.state == LinkState.SELECTING

    def begin(self, key: str) -> None:
        """Start selecting evidence for a requirement key."""
        if self.is_selecting:
            logger.warning("Selection for %s replaced by %s", self.pending_key, key)
        self.state = LinkState.SELECTING
        self.pending_key = key
        logger.debug("Selecting evidence for %s", key)

    def confirm(self, evidence_ids: Iterable[str], replace: bool = False) -> str:
        """Union the chosen ids into the pending key and go idle.

        With ``replace`` the chosen ids become the key's whole set.

        Returns:
            The key that was linked

        Raises:
            LinkStateError: If no selection is in progress
        """
        if not self.is_selecting or self.pending_key is None:
            raise LinkStateError()
        key = self.pending_key
        if replace:
            self._links[key] = union([], evidence_ids)
        else:
            self.link(key, evidence_ids)
        self._reset()
        return key

    def cancel(self) -> None:
        """Abandon the selection without changing any links.

        Raises:
            LinkStateError: If no selection is in progress
        """
        if not self.is_selecting:
            raise LinkStateError()
        logger.debug("Selection for %s cancelled", self.pending_key)
        self._reset()

    def _reset(self) -> None:
        self.state = LinkState.IDLE
        self.pending_key = None

    def link(self, key: str, evidence_ids: Iterable[str]) -> list[str]:
        """Add ids to a key's set; repeated ids are ignored."""
        self._links[key] = union(self._links.get(key, []), evidence_ids)
        return list(self._links[key])

    def unlink(self, key: str, evidence_id: str) -> None:
        """Remove one id from a key's set. Absent ids are ignored."""
        if key in self._links:
            self._links[key] = [eid for eid in self._links[key] if eid != evidence_id]

    def get(self, key: str) -> list[str]:
        return list(self._links.get(key, []))

    def pop(self, key: str) -> list[str]:
        """Remove a key and return its ids (empty if absent)."""
        return self._links.pop(key, [])

    def keys(self) -> list[str]:
        return list(self._links)

    def discard_evidence(self, evidence_id: str) -> None:
        """Drop an id from every key, e.g. after the evidence is deleted."""
        for key in self._links:
            self.unlink(key, evidence_id)

    def for_level(self, level: Optional[int], stored: Optional[dict[str, list[str]]] = None) -> dict[str, list[str]]:
        """Links visible to an EPA form at ``level``.

        Keys saved on the record are merged with the registry's own; the
        registry wins for keys present in both.
        """
        merged = filter_by_level(stored or {}, level)
        merged.update(filter_by_level(self._links, level))
        return merged

    def load(self, links: dict[str, list[str]]) -> None:
        """Replace every key with the given mapping (e.g. when opening a form)."""
        self._links = {k: union([], v) for k, v in links.items()}

    def snapshot(self) -> dict[str, list[str]]:
        return {k: list(v) for k, v in self._links.items()}
