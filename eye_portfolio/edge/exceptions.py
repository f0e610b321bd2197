"""Exceptions raised by the edge function handlers.

Each carries the HTTP status the route should answer with.
"""

from typing import Optional


class EdgeFunctionError(Exception):
    """Base exception for edge function failures."""

    status_code = 500

    def __init__(self, message: str = "Internal error", status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(EdgeFunctionError):
    """Missing or malformed request input."""

    status_code = 400


class UnauthorizedError(EdgeFunctionError):
    """Missing or rejected credentials, or an unusable magic link."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: Optional[str] = None):
        super().__init__(message)
        self.details = details


class LinkNotFoundError(EdgeFunctionError):
    """The magic-link token does not exist."""

    status_code = 404

    def __init__(self, message: str = "Link not found"):
        super().__init__(message)


class LinkUsedError(EdgeFunctionError):
    """The magic-link token exists but can no longer be used."""

    status_code = 410

    def __init__(self, message: str = "Link has already been used"):
        super().__init__(message)


class SupabaseError(EdgeFunctionError):
    """The hosted database returned an error."""

    def __init__(self, message: str, status_code: int = 500, code: Optional[str] = None):
        super().__init__(message)
        # Upstream status is kept for diagnostics; routes still answer 500
        self.upstream_status = status_code
        self.code = code


class RecordNotFoundError(SupabaseError):
    """A single-row query matched no rows."""

    def __init__(self, table: str, message: Optional[str] = None):
        super().__init__(message or f"No {table} row matched", status_code=406, code="PGRST116")
        self.table = table


class EmailDeliveryError(EdgeFunctionError):
    """The email API rejected the message or could not be reached."""
