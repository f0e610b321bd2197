"""Transactional email: templates and the delivery API client."""

from dataclasses import dataclass
from typing import Optional

import httpx

from ..config.settings import get_settings
from ..utils.logging import get_logger
from .exceptions import EmailDeliveryError

logger = get_logger(__name__)

BASE_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, "
    "'Helvetica Neue', Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 40px 20px;"
)
HEADING_STYLE = "color: #1e293b; margin-bottom: 16px;"
TEXT_STYLE = "color: #64748b; line-height: 1.6;"
SMALL_STYLE = "color: #94a3b8; font-size: 12px; margin-top: 24px;"

INDIGO = "#4f46e5"
GREEN = "#059669"

MSF_RESPONSE_FORM = "MSF_RESPONSE"


@dataclass
class EmailContent:
    """Rendered subject and HTML body."""

    subject: str
    html: str


def _button(url: str, label: str, color: str = INDIGO) -> str:
    return (
        f'<a href="{url}" style="display: inline-block; background: {color}; color: white; '
        f"padding: 12px 24px; border-radius: 8px; text-decoration: none; margin-top: 20px; "
        f'font-weight: 600;">{label}</a>'
    )


def _page(heading: str, *paragraphs: str, footer: str = "") -> str:
    parts = [f'<div style="{BASE_STYLE}">', f'<h1 style="{HEADING_STYLE}">{heading}</h1>']
    parts.extend(p if p.startswith("<a ") else f'<p style="{TEXT_STYLE}">{p}</p>' for p in paragraphs)
    if footer:
        parts.append(f'<p style="{SMALL_STYLE}">{footer}</p>')
    parts.append("</div>")
    return "\n".join(parts)


def render_notification(
    notification_type: str,
    title: str,
    body: str,
    user_name: Optional[str],
    app_url: Optional[str] = None,
) -> EmailContent:
    """Pick the template for a notification type.

    Unknown types use a generic template with ``title`` and ``body`` as
    given. Values are inserted without escaping; bodies may carry markup.
    """
    app_url = app_url or get_settings().magic_link.app_url
    name = user_name or ""

    if notification_type == "signup":
        return EmailContent(
            subject="Welcome to Eye Portfolio",
            html=_page(
                f"Welcome {name}!",
                "Your Eye Portfolio account has been successfully created.",
                "You can now start building your portfolio and tracking your training progress.",
                _button(app_url, "Open Portfolio"),
            ),
        )
    if notification_type == "form_signed":
        return EmailContent(
            subject=title,
            html=_page("Form Signed Off", f"Hi {name},", body, _button(app_url, "View in Portfolio", GREEN)),
        )
    if notification_type == "arcp_outcome":
        return EmailContent(
            subject="ARCP Outcome Received",
            html=_page("ARCP Outcome", f"Hi {name},", body, _button(app_url, "View Outcome")),
        )
    if notification_type == "arcp_broadcast":
        return EmailContent(subject=title, html=_page(title, f"Hi {name},", body))
    if notification_type == "msf_submitted":
        return EmailContent(
            subject="MSF Submitted for Review",
            html=_page(
                "Multi-Source Feedback Review",
                f"Hi {name},",
                body,
                "Please log in to review and sign off the feedback.",
                _button(app_url, "Review MSF"),
            ),
        )

    return EmailContent(subject=title, html=_page(title, body))


def render_magic_link(
    form_type: str,
    evidence_type: str,
    evidence_title: str,
    trainee_name: str,
    link_url: str,
) -> EmailContent:
    """Invitation email for an assessor or MSF respondent."""
    if form_type == MSF_RESPONSE_FORM:
        return EmailContent(
            subject=f"Multi-Source Feedback Request for {trainee_name}",
            html=_page(
                "Multi-Source Feedback Request",
                f"You have been invited to provide feedback for <strong>{trainee_name}</strong>.",
                "Your feedback is valuable and confidential. It will help the trainee "
                "understand their strengths and areas for development.",
                _button(link_url, "Complete Feedback Form"),
                footer="This link is unique to you. Please do not share it.",
            ),
        )

    return EmailContent(
        subject=f"Complete {evidence_type}: {evidence_title}",
        html=_page(
            "Form Ready for Sign-Off",
            f"A {evidence_type} form has been prepared for your review and sign-off.",
            f"<strong>Form:</strong> {evidence_title}",
            f"<strong>Trainee:</strong> {trainee_name}",
            _button(link_url, "Review and Sign Off", GREEN),
            footer="This link can only be used once. You will need to enter your GMC "
            "number to complete the sign-off.",
        ),
    )


class ResendClient:
    """Client for the Resend email API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        settings = get_settings()

        self.api_key = api_key or settings.email.api_key
        self.from_email = from_email or settings.email.from_email
        self.api_url = api_url or settings.email.api_url
        self.timeout = timeout or settings.email.timeout

        self._client = client or httpx.Client(timeout=self.timeout)

    def close(self) -> None:
        self._client.close()

    def send(self, to: str, content: EmailContent) -> None:
        """Deliver one message. No retries.

        Raises:
            EmailDeliveryError: If the API rejects the message or is unreachable
        """
        try:
            response = self._client.post(
                self.api_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "from": self.from_email,
                    "to": to,
                    "subject": content.subject,
                    "html": content.html,
                },
            )
        except httpx.TimeoutException:
            raise EmailDeliveryError("Resend API error: request timed out")
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Resend API error: {e}")

        if response.status_code >= 400:
            raise EmailDeliveryError(f"Resend API error: {response.text}")

        logger.info("Sent email '%s' to %s", content.subject, to)
