"""Identifier generation for portfolio records.

Ids combine a per-generator call counter, the current time in milliseconds
and a random suffix, so two records created in the same millisecond still
differ. Each candidate is checked against the ids already in use before it
is handed out.
"""

import secrets
import string
import time
from typing import Callable, Container, Optional

from ..utils.logging import get_logger
from .exceptions import IdGenerationError

logger = get_logger(__name__)

_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    """Encode a non-negative integer in base 36."""
    if value < 0:
        raise ValueError("Cannot encode negative values")
    if value == 0:
        return "0"

    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def random_token(length: int = 6) -> str:
    """Random lowercase alphanumeric string."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


class IdGenerator:
    """Collision-checked id source.

    Args:
        max_attempts: Candidates tried before giving up
        clock: Returns the current time in milliseconds
        random_part: Returns the random component of an id
    """

    def __init__(
        self,
        max_attempts: int = 10,
        clock: Optional[Callable[[], int]] = None,
        random_part: Optional[Callable[[], str]] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self._clock = clock or (lambda: time.time_ns() // 1_000_000)
        self._random_part = random_part or random_token
        self._counter = 0

    @property
    def counter(self) -> int:
        """Number of candidates generated so far."""
        return self._counter

    def _candidate(self) -> str:
        self._counter += 1
        return f"{to_base36(self._clock())}-{to_base36(self._counter)}-{self._random_part()}"

    def next_id(self, existing: Container[str] = ()) -> str:
        """Return an id not present in ``existing``.

        Raises:
            IdGenerationError: If every attempt collided
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = self._candidate()
            if candidate not in existing:
                return candidate
            logger.warning("Id collision on attempt %d: %s", attempt, candidate)

        logger.error(
            "Id generation gave up after %d attempts (counter=%d)",
            self.max_attempts,
            self._counter,
        )
        raise IdGenerationError(self.max_attempts)
