"""Specialist Interest Area (SIA) model."""

from dataclasses import dataclass
from typing import Any, Optional

NO_INITIALS = "–"


def supervisor_initials(name: Optional[str]) -> str:
    """Derive initials from a supervisor name ("Jane van Smith" -> "JVS")."""
    if not name or not name.strip():
        return NO_INITIALS
    return "".join(part[0] for part in name.split()).upper()


@dataclass
class SIA:
    """A trainee's declared sub-specialty and its supervisor."""

    id: str
    specialty: str
    level: int = 1
    supervisor_name: Optional[str] = None
    supervisor_email: Optional[str] = None

    @property
    def supervisor_initials(self) -> str:
        return supervisor_initials(self.supervisor_name)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = {
            "id": self.id,
            "specialty": self.specialty,
            "level": self.level,
        }
        if self.supervisor_name:
            result["supervisor_name"] = self.supervisor_name
        if self.supervisor_email:
            result["supervisor_email"] = self.supervisor_email
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SIA":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            specialty=data["specialty"],
            level=data.get("level", 1),
            supervisor_name=data.get("supervisor_name"),
            supervisor_email=data.get("supervisor_email"),
        )
