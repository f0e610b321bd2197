"""Exceptions for the portfolio controller."""


class PortfolioError(Exception):
    """Base exception for portfolio operations."""

    pass


class IdGenerationError(PortfolioError):
    """Raised when no unused identifier could be produced."""

    def __init__(self, attempts: int = 0):
        message = (
            f"Could not generate a unique id after {attempts} attempts."
            if attempts
            else "Could not generate a unique id."
        )
        super().__init__(message)
        self.attempts = attempts


class EvidenceNotFoundError(PortfolioError):
    """Raised when an evidence id is not in the store."""

    def __init__(self, evidence_id: str = ""):
        message = f"Evidence not found: {evidence_id}" if evidence_id else "Evidence not found."
        super().__init__(message)
        self.evidence_id = evidence_id


class LinkStateError(PortfolioError):
    """Raised when a selection is confirmed or cancelled while none is open."""

    def __init__(self, message: str = "No evidence selection is in progress."):
        super().__init__(message)
