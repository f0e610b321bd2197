"""Eye Portfolio - Clinical trainee portfolio backend."""

__version__ = "0.1.0"

from .models import EvidenceItem, EvidenceStatus, EvidenceType, SIA

__all__ = [
    "__version__",
    "EvidenceItem",
    "EvidenceStatus",
    "EvidenceType",
    "SIA",
]
