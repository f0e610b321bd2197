"""Headless portfolio controller.

Provides:
- Evidence store with upsert-by-id semantics
- Cross-form linking registry
- Navigation controller for the form screens
- Local YAML snapshot storage
"""

from .exceptions import (
    EvidenceNotFoundError,
    IdGenerationError,
    LinkStateError,
    PortfolioError,
)
from .ids import IdGenerator
from .linking import LinkRegistry, LinkState, epa_key, gsat_key
from .navigation import (
    AppState,
    FormParams,
    FormState,
    MandatoryFormContext,
    PortfolioController,
)
from .storage import PortfolioStorage
from .store import EvidenceStore, SIACollection
from .views import ReturnTarget, View

__all__ = [
    # Exceptions
    "PortfolioError",
    "IdGenerationError",
    "EvidenceNotFoundError",
    "LinkStateError",
    # Core
    "IdGenerator",
    "EvidenceStore",
    "SIACollection",
    "LinkRegistry",
    "LinkState",
    "epa_key",
    "gsat_key",
    # Navigation
    "View",
    "ReturnTarget",
    "FormParams",
    "FormState",
    "AppState",
    "MandatoryFormContext",
    "PortfolioController",
    # Storage
    "PortfolioStorage",
]
