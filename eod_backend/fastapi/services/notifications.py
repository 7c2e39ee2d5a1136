"""
Email notifications through the Mailgun HTTP API.

Sends run as FastAPI background tasks after the response is produced. A
failed delivery is logged and never affects the request that triggered it.
"""

import html as html_lib
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import httpx

from eod_backend.fastapi.core.config import Settings
from eod_backend.fastapi.core.init_settings import global_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Mailgun rejected a message or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def unique_recipients(*groups: Iterable[str]) -> List[str]:
    """Merge recipient lists, lowercasing and keeping first-seen order."""
    seen = []
    for group in groups:
        for email in group:
            normalized = (email or "").strip().lower()
            if normalized and normalized not in seen:
                seen.append(normalized)
    return seen


def format_pln(amount: Decimal) -> str:
    """
    Format an amount the way Polish invoices print it.

    Examples:
        Decimal("2703.5") -> "2 703,50 zł"
    """
    quantized = Decimal(amount).quantize(Decimal("0.01"))
    whole, _, cents = f"{quantized:,.2f}".partition(".")
    return f"{whole.replace(',', ' ')},{cents} zł"


def send_email(
    to: str,
    subject: str,
    text: str,
    html: Optional[str] = None,
    settings: Settings = global_settings,
    transport: Optional[httpx.BaseTransport] = None,
) -> Dict:
    """
    Send one message through Mailgun.

    Args:
        to: Recipient address
        subject: Message subject
        text: Plain text body
        html: Optional HTML body
        settings: Settings holding the Mailgun credentials
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)

    Returns:
        Mailgun's JSON response

    Raises:
        EmailDeliveryError: If Mailgun is not configured, unreachable or
            answers with a non-2xx status
    """
    if not settings.mailgun_configured:
        raise EmailDeliveryError("Mailgun configuration missing: set MAILGUN_API_KEY and MAILGUN_DOMAIN")

    data = {
        "from": f"{settings.MAIL_FROM_NAME} <noreply@{settings.MAILGUN_DOMAIN}>",
        "to": to,
        "subject": subject,
        "text": text,
    }
    if html:
        data["html"] = html

    url = f"{settings.MAILGUN_BASE_URL.rstrip('/')}/v3/{settings.MAILGUN_DOMAIN}/messages"
    try:
        with httpx.Client(timeout=30.0, transport=transport) as client:
            response = client.post(url, data=data, auth=("api", settings.MAILGUN_API_KEY))
    except httpx.HTTPError as e:
        raise EmailDeliveryError(f"Mailgun request failed: {e}") from e

    if response.is_error:
        raise EmailDeliveryError(
            f"Mailgun API error: {response.status_code} - {response.text}",
            status_code=response.status_code,
        )
    return response.json()


def _deliver(
    recipients: List[str],
    subject: str,
    text: str,
    html: Optional[str],
    settings: Settings,
    transport: Optional[httpx.BaseTransport],
) -> int:
    if not settings.mailgun_configured:
        logger.warning("Mailgun is not configured, skipping '%s' to %d recipient(s)", subject, len(recipients))
        return 0

    delivered = 0
    for recipient in recipients:
        try:
            send_email(recipient, subject, text, html, settings=settings, transport=transport)
            delivered += 1
        except EmailDeliveryError as e:
            logger.error("Failed to send '%s' to %s: %s", subject, recipient, e)
    logger.info("Sent '%s' to %d of %d recipient(s)", subject, delivered, len(recipients))
    return delivered


def notify_report_submitted(
    recipients: List[str],
    venue_name: str,
    for_date: date,
    submitted_by: str,
    summary: Dict[str, Decimal],
    settings: Settings = global_settings,
    transport: Optional[httpx.BaseTransport] = None,
) -> int:
    """
    Tell admins that a report was submitted.

    ``summary`` carries the report's mini calculations: total_sale_gross,
    total_service, total_card_payment, total_cash, total_delivery_income,
    gross_revenue and net_revenue.

    Returns:
        Number of recipients the message was delivered to
    """
    subject = f"New EOD Report Submitted - {venue_name} - {for_date.isoformat()}"
    lines = [
        ("Total Sales", summary.get("total_sale_gross", Decimal("0"))),
        ("Total Service (75%)", summary.get("total_service", Decimal("0"))),
        ("Card Payments", summary.get("total_card_payment", Decimal("0"))),
        ("Total Cash", summary.get("total_cash", Decimal("0"))),
        ("Delivery Income (70%)", summary.get("total_delivery_income", Decimal("0"))),
        ("Gross Revenue", summary.get("gross_revenue", Decimal("0"))),
        ("Net Revenue", summary.get("net_revenue", Decimal("0"))),
    ]

    text = "\n".join(
        [
            "A new End of Day report has been submitted.",
            "",
            f"Venue: {venue_name}",
            f"Date: {for_date.isoformat()}",
            f"Submitted by: {submitted_by}",
            "",
            "Sales Summary:",
        ]
        + [f"- {label}: {format_pln(value)}" for label, value in lines]
        + ["", "Please review the report in the admin dashboard."]
    )

    items = "".join(
        f'<li style="margin-bottom: 8px;"><strong>{html_lib.escape(label)}:</strong> {format_pln(value)}</li>'
        for label, value in lines
    )
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #059669;">New EOD Report Submitted</h2>'
        f"<p><strong>Venue:</strong> {html_lib.escape(venue_name)}</p>"
        f"<p><strong>Date:</strong> {for_date.isoformat()}</p>"
        f"<p><strong>Submitted by:</strong> {html_lib.escape(submitted_by)}</p>"
        f'<ul style="list-style: none; padding: 0;">{items}</ul>'
        '<p style="color: #6b7280; font-size: 14px;">Please review the report in the admin dashboard.</p>'
        "</div>"
    )
    return _deliver(recipients, subject, text, html, settings, transport)


def notify_signup(
    recipients: List[str],
    email: str,
    display_name: Optional[str],
    settings: Settings = global_settings,
    transport: Optional[httpx.BaseTransport] = None,
) -> int:
    """Tell admins that a new account is waiting for approval."""
    name = display_name or email
    subject = f"New user awaiting approval - {name}"
    text = (
        f"{name} ({email}) signed up and is waiting for approval.\n\n"
        f"Approve the account in the user management page: {settings.CLIENT_URL.rstrip('/')}/admin/users"
    )
    return _deliver(recipients, subject, text, None, settings, transport)


def notify_password_reset(
    email: str,
    reset_link: str,
    settings: Settings = global_settings,
    transport: Optional[httpx.BaseTransport] = None,
) -> int:
    """Send a password reset link to the account owner."""
    subject = f"Password Reset Request - {settings.APP_NAME}"
    text = (
        "You requested to reset your password.\n\n"
        f"Open this link to choose a new password: {reset_link}\n\n"
        f"This link will expire in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes. "
        "If you didn't request this, you can ignore this email."
    )
    link = html_lib.escape(reset_link, quote=True)
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #333;">Password Reset Request</h2>'
        "<p>You requested to reset your password. Click the link below to reset it:</p>"
        f'<p><a href="{link}" style="background-color: #059669; color: white; padding: 10px 20px; '
        f'text-decoration: none; border-radius: 5px;">Reset Password</a></p>'
        f'<p style="color: #6b7280; font-size: 14px;">This link will expire in '
        f"{settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes.</p>"
        "</div>"
    )
    return _deliver([email], subject, text, html, settings, transport)


def notify_user_created(
    admin_recipients: List[str],
    email: str,
    display_name: Optional[str],
    role: str,
    created_by: str,
    settings: Settings = global_settings,
    transport: Optional[httpx.BaseTransport] = None,
) -> int:
    """
    Announce an account created by an admin.

    Admins get a notice with the new user's details and the user gets a
    welcome message with the login link. Passwords are never mailed.

    Returns:
        Number of messages delivered
    """
    name = display_name or email
    login_url = f"{settings.CLIENT_URL.rstrip('/')}/login"

    admin_text = "\n".join([
        "A new user account has been created.",
        "",
        f"Name: {name}",
        f"Email: {email}",
        f"Role: {role}",
        f"Created by: {created_by}",
        "",
        "The user has been automatically approved and can now log in.",
    ])
    delivered = _deliver(
        [r for r in admin_recipients if r != email.lower()],
        f"New User Created - {name}",
        admin_text,
        None,
        settings,
        transport,
    )

    welcome_text = (
        f"Hello {name},\n\n"
        f"An account has been created for you in {settings.APP_NAME}.\n"
        f"Log in with {email} at {login_url}\n\n"
        "Ask your administrator for your password or use the password reset link on the login page."
    )
    welcome_html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #059669;">Welcome to {html_lib.escape(settings.APP_NAME)}</h2>'
        f"<p>Hello {html_lib.escape(name)},</p>"
        f"<p>An account has been created for you. Log in with <strong>{html_lib.escape(email)}</strong>.</p>"
        f'<p><a href="{html_lib.escape(login_url, quote=True)}">Go to login</a></p>'
        "</div>"
    )
    delivered += _deliver([email], f"Welcome to {settings.APP_NAME}", welcome_text, welcome_html, settings, transport)
    return delivered
