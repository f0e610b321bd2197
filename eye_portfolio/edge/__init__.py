"""Edge functions: notification email and magic-link handlers.

Provides:
- Hosted database client (REST, RPC, auth)
- Email templates and delivery client
- Handler functions and the FastAPI app that serves them
"""

from .email import EmailContent, ResendClient, render_magic_link, render_notification
from .exceptions import (
    BadRequestError,
    EdgeFunctionError,
    EmailDeliveryError,
    LinkNotFoundError,
    LinkUsedError,
    RecordNotFoundError,
    SupabaseError,
    UnauthorizedError,
)
from .supabase import SupabaseClient

__all__ = [
    "EmailContent",
    "ResendClient",
    "render_magic_link",
    "render_notification",
    "SupabaseClient",
    "EdgeFunctionError",
    "BadRequestError",
    "UnauthorizedError",
    "LinkNotFoundError",
    "LinkUsedError",
    "SupabaseError",
    "RecordNotFoundError",
    "EmailDeliveryError",
]
