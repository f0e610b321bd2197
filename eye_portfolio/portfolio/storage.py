"""Local snapshot storage for a portfolio using YAML files.

Used when no hosted backend is configured. Layout:

    data_dir/_index.yaml          - Record order, SIAs, links and stats
    data_dir/evidence/<id>.yaml   - Individual evidence records
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import yaml

from ..models.evidence import EvidenceItem
from ..models.sia import SIA
from ..utils.logging import get_logger
from .linking import LinkRegistry
from .store import EvidenceStore, SIACollection

logger = get_logger(__name__)

INDEX_FILE = "_index.yaml"
EVIDENCE_DIR = "evidence"


def _dump(data: dict[str, Any], path: Path) -> None:
    with open(path, "w") as f:
        yaml.dump(
            data,
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )


def _load(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


class PortfolioStorage:
    """Reads and writes a portfolio snapshot under ``data_dir``."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.evidence_dir = self.data_dir / EVIDENCE_DIR

    @property
    def index_path(self) -> Path:
        return self.data_dir / INDEX_FILE

    def item_path(self, evidence_id: str) -> Path:
        return self.evidence_dir / f"{evidence_id}.yaml"

    def exists(self) -> bool:
        return self.index_path.exists()

    def load_index(self) -> dict[str, Any]:
        """Raw index contents, empty if no snapshot has been saved."""
        if not self.index_path.exists():
            return {}
        return _load(self.index_path)

    def load_evidence(self) -> list[EvidenceItem]:
        """Load evidence records in their saved order.

        Records missing from the index order are appended; malformed files
        are skipped with a warning.
        """
        if not self.evidence_dir.exists():
            return []

        loaded: dict[str, EvidenceItem] = {}
        for yaml_file in sorted(self.evidence_dir.glob("*.yaml")):
            data = _load(yaml_file)
            try:
                item = EvidenceItem.from_dict(data)
            except (ValueError, KeyError) as e:
                logger.warning("Skipping malformed evidence file %s: %s", yaml_file.name, e)
                continue
            loaded[item.id] = item

        order = self.load_index().get("order", [])
        items = [loaded.pop(evidence_id) for evidence_id in order if evidence_id in loaded]
        items.extend(loaded.values())
        return items

    def load(self, store: EvidenceStore, sias: SIACollection, links: LinkRegistry) -> None:
        """Replace the contents of the given collections with the snapshot."""
        index = self.load_index()
        store.load(self.load_evidence())
        sias.load([SIA.from_dict(s) for s in index.get("sias", [])])
        links.load(index.get("links", {}))
        logger.info("Loaded %d evidence records from %s", len(store), self.data_dir)

    def save(
        self,
        store: EvidenceStore,
        sias: SIACollection,
        links: LinkRegistry,
        trainee_name: Optional[str] = None,
    ) -> Path:
        """Write every record plus the index. Files for removed records are deleted.

        Returns:
            Path to the index file
        """
        self.evidence_dir.mkdir(parents=True, exist_ok=True)

        current_ids = set()
        for item in store:
            _dump(item.to_dict(), self.item_path(item.id))
            current_ids.add(item.id)

        for yaml_file in self.evidence_dir.glob("*.yaml"):
            if yaml_file.stem not in current_ids:
                yaml_file.unlink()
                logger.debug("Deleted stale evidence file %s", yaml_file.name)

        index = {
            "trainee_name": trainee_name,
            "updated": datetime.now().isoformat(),
            "stats": {
                "total": len(store),
                "by_status": store.counts_by_status(),
                "by_type": store.counts_by_type(),
            },
            "order": [item.id for item in store],
            "sias": [sia.to_dict() for sia in sias],
            "links": links.snapshot(),
        }
        _dump(index, self.index_path)
        logger.info("Saved %d evidence records to %s", len(store), self.data_dir)
        return self.index_path
