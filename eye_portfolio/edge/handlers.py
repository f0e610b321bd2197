"""Edge function logic, independent of the HTTP layer.

Each handler performs a short sequence of collaborator calls and raises an
:class:`EdgeFunctionError` subclass on the first failure. Nothing is
retried and nothing is shared between invocations.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..utils.logging import get_logger
from .email import MSF_RESPONSE_FORM, ResendClient, render_magic_link, render_notification
from .exceptions import (
    BadRequestError,
    EdgeFunctionError,
    LinkNotFoundError,
    LinkUsedError,
    RecordNotFoundError,
    SupabaseError,
    UnauthorizedError,
)
from .supabase import SupabaseClient

logger = get_logger(__name__)

# Places inside evidence.data that hold requirement-key -> ids mappings
LINKED_EVIDENCE_PATHS = (
    ("linkedEvidence",),
    ("epaFormData", "linkedEvidence"),
    ("gsatFormData", "linkedEvidence"),
)

# Top-level fields of a magic-link form update and their evidence columns
UPDATE_COLUMNS = {
    "status": "status",
    "title": "title",
    "sia": "sia",
    "level": "level",
    "notes": "notes",
    "supervisorGmc": "supervisor_gmc",
    "supervisorName": "supervisor_name",
    "supervisorEmail": "supervisor_email",
    "signedOffBy": "signed_off_by",
    "signedOffAt": "signed_off_at",
}
# Fields never copied into the data column
RESERVED_FIELDS = {"id", "type", "epaFormData", *UPDATE_COLUMNS}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an Authorization header.

    Raises:
        UnauthorizedError: If the header is missing or empty
    """
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    token = authorization.removeprefix("Bearer ").strip()
    if not token:
        raise UnauthorizedError("Missing Authorization header")
    return token


def collect_linked_ids(data: Optional[dict[str, Any]]) -> list[str]:
    """All evidence ids referenced by an evidence row's data column."""
    ids: list[str] = []
    for path in LINKED_EVIDENCE_PATHS:
        node: Any = data or {}
        for part in path:
            node = node.get(part) if isinstance(node, dict) else None
        if not isinstance(node, dict):
            continue
        for values in node.values():
            ids.extend(v for v in values or [] if isinstance(v, str))
    return list(dict.fromkeys(ids))


def send_notification_email(
    supabase: SupabaseClient,
    mailer: ResendClient,
    user_id: Optional[str],
    notification_type: Optional[str],
    title: str = "",
    body: str = "",
    notification_id: Optional[str] = None,
    app_url: Optional[str] = None,
) -> None:
    """Email a notification to a user and mark it as sent.

    Raises:
        EdgeFunctionError: If the user has no email address
        SupabaseError: If the profile lookup fails
        EmailDeliveryError: If delivery fails
    """
    try:
        profile = supabase.select_single("user_profile", "email, name", user_id=user_id)
    except RecordNotFoundError as e:
        raise EdgeFunctionError(f"User email not found: {e}")
    if not profile.get("email"):
        raise EdgeFunctionError("User email not found: profile has no email")

    content = render_notification(notification_type or "", title, body, profile.get("name"), app_url)
    mailer.send(profile["email"], content)

    if notification_id:
        try:
            supabase.update("notifications", {"email_sent_at": _now().isoformat()}, id=notification_id)
        except SupabaseError as e:
            # The email is already out; a failed bookkeeping write must not trigger a resend
            logger.warning("Could not mark notification %s as sent: %s", notification_id, e)


def validate_magic_link(supabase: SupabaseClient, token: Optional[str]) -> dict[str, Any]:
    """Check a magic-link token and load everything its form needs.

    Raises:
        BadRequestError: If no token was given
        LinkNotFoundError: If the token does not exist
        LinkUsedError: If the token was already used or has expired
        SupabaseError: If a lookup fails
    """
    if not token:
        raise BadRequestError("No token provided")

    result = supabase.rpc("validate_magic_link", {"link_token": token})
    if isinstance(result, list):
        link = result[0] if result else None
    else:
        link = result or None

    if not link:
        raise LinkNotFoundError()
    if not link.get("is_valid"):
        raise LinkUsedError()

    evidence = supabase.select_single("evidence", "*", id=link["evidence_id"])

    linked_ids = collect_linked_ids(evidence.get("data"))
    linked_evidence = supabase.select("evidence", "*", id=linked_ids) if linked_ids else []

    profile = None
    if evidence.get("trainee_id"):
        profile = supabase.select_optional("user_profile", "name, gmc_number", user_id=evidence["trainee_id"])

    form_type = link.get("form_type")
    logger.info("Validated magic link for evidence %s (%s)", link["evidence_id"], form_type)
    return {
        "valid": True,
        "evidence": evidence,
        "linked_evidence": linked_evidence,
        "form_type": form_type,
        "recipient_email": link.get("recipient_email"),
        "trainee_name": (profile or {}).get("name") or "Unknown",
        "requires_gmc": form_type != MSF_RESPONSE_FORM,
    }


def create_magic_link(
    supabase: SupabaseClient,
    mailer: ResendClient,
    authorization: Optional[str],
    evidence_id: Optional[str],
    recipient_email: Optional[str],
    form_type: Optional[str],
    recipient_gmc: Optional[str] = None,
    app_url: str = "https://eyeportfolio.com",
) -> dict[str, Any]:
    """Issue a single-use link for an assessor and email it to them.

    Raises:
        UnauthorizedError: If the caller is not signed in
        BadRequestError: If a required field is missing
        EdgeFunctionError: 404 if the evidence does not exist
        SupabaseError: If a database call fails
        EmailDeliveryError: If the invitation could not be sent
    """
    user = supabase.get_user(bearer_token(authorization))

    if not evidence_id or not recipient_email or not form_type:
        raise BadRequestError("Missing required fields")

    try:
        evidence = supabase.select_single("evidence", "type, title, trainee_id", id=evidence_id)
    except RecordNotFoundError:
        raise EdgeFunctionError(f"Evidence not found: {evidence_id}", status_code=404)

    profile = None
    if evidence.get("trainee_id"):
        profile = supabase.select_optional("user_profile", "name", user_id=evidence["trainee_id"])
    trainee_name = (profile or {}).get("name") or "a trainee"

    token = secrets.token_hex(32)
    supabase.insert(
        "magic_links",
        {
            "evidence_id": evidence_id,
            "token": token,
            "recipient_email": recipient_email,
            "recipient_gmc": recipient_gmc or None,
            "form_type": form_type,
            "created_by": user["id"],
        },
    )

    link_url = f"{app_url.rstrip('/')}?token={token}"
    content = render_magic_link(
        form_type,
        evidence.get("type") or "",
        evidence.get("title") or "",
        trainee_name,
        link_url,
    )
    mailer.send(recipient_email, content)

    logger.info("Created %s magic link for evidence %s", form_type, evidence_id)
    return {"success": True, "magic_link": link_url, "token": token}


def build_evidence_update(
    updates: dict[str, Any],
    current_data: Optional[dict[str, Any]],
    now: datetime,
) -> dict[str, Any]:
    """Translate a form's update object into an evidence row patch.

    Known top-level fields become columns (empty values are skipped). When
    EPA form data is present the data column is rewritten as the current
    data plus the remaining fields, with ``epaFormData`` merged key by key.
    """
    payload: dict[str, Any] = {"updated_at": now.isoformat()}
    for field, column in UPDATE_COLUMNS.items():
        if updates.get(field):
            payload[column] = updates[field]

    epa_form_data = updates.get("epaFormData")
    if epa_form_data:
        data = dict(current_data or {})
        data.update({k: v for k, v in updates.items() if k not in RESERVED_FIELDS})
        data["epaFormData"] = {**(data.get("epaFormData") or {}), **epa_form_data}
        payload["data"] = data
    return payload


def submit_magic_link_form(
    supabase: SupabaseClient,
    token: Optional[str],
    evidence_id: Optional[str],
    updates: Optional[dict[str, Any]],
    complete: bool = False,
    expiry_hours: int = 24,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Apply an assessor's form answers through a magic link.

    Raises:
        BadRequestError: If token, evidence id or updates are missing
        UnauthorizedError: If the link is unknown, used or expired
        SupabaseError: If a database call fails
    """
    if not token or not evidence_id or not updates:
        raise BadRequestError("Missing required fields")
    now = now or _now()

    link = supabase.select_optional("magic_links", "*", token=token, evidence_id=evidence_id, used_at=None)
    if not link:
        raise UnauthorizedError("Invalid or expired magic link")

    created_at = link.get("created_at")
    if created_at and now > _parse_timestamp(created_at) + timedelta(hours=expiry_hours):
        raise UnauthorizedError("Magic link expired")

    current_data = None
    if updates.get("epaFormData"):
        current = supabase.select_optional("evidence", "data", id=evidence_id)
        current_data = (current or {}).get("data")

    supabase.update("evidence", build_evidence_update(updates, current_data, now), id=evidence_id)

    if complete:
        supabase.update("magic_links", {"used_at": now.isoformat()}, token=token)
        logger.info("Magic link for evidence %s completed", evidence_id)

    return {"success": True}
