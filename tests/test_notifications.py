from datetime import date
from decimal import Decimal

import httpx
import pytest

from eod_backend.fastapi.core.config import DevSettings
from eod_backend.fastapi.services.notifications import (
    EmailDeliveryError,
    format_pln,
    notify_password_reset,
    notify_report_submitted,
    notify_signup,
    notify_user_created,
    send_email,
    unique_recipients,
)

SUMMARY = {
    "total_sale_gross": Decimal("2891.00"),
    "total_service": Decimal("49.50"),
    "total_card_payment": Decimal("2346.00"),
    "total_cash": Decimal("341.50"),
    "total_delivery_income": Decimal("72.80"),
    "gross_revenue": Decimal("2859.80"),
    "net_revenue": Decimal("2760.30"),
}


@pytest.fixture()
def mailgun_settings():
    return DevSettings(
        MAILGUN_API_KEY="key-test",
        MAILGUN_DOMAIN="mg.coco.pl",
        MAILGUN_BASE_URL="https://api.eu.mailgun.net",
    )


def _recording_transport(sent, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(status_code, json={"id": "<msg@mg.coco.pl>", "message": "Queued."})
    return httpx.MockTransport(handler)


def test_format_pln():
    assert format_pln(Decimal("2703.5")) == "2 703,50 zł"
    assert format_pln(Decimal("0")) == "0,00 zł"
    assert format_pln(Decimal("1234567.891")) == "1 234 567,89 zł"


def test_unique_recipients_merges_and_lowercases():
    assert unique_recipients(["Admin@coco.pl", ""], ["admin@coco.pl", "szef@coco.pl"]) == [
        "admin@coco.pl", "szef@coco.pl",
    ]


def test_send_email_posts_to_mailgun(mailgun_settings):
    sent = []
    send_email(
        "admin@coco.pl", "Hello", "Body", html="<p>Body</p>",
        settings=mailgun_settings, transport=_recording_transport(sent),
    )
    request = sent[0]
    assert str(request.url) == "https://api.eu.mailgun.net/v3/mg.coco.pl/messages"
    assert request.headers["authorization"].startswith("Basic ")
    body = request.content.decode()
    assert "to=admin%40coco.pl" in body
    assert "html=" in body


def test_send_email_raises_on_api_error(mailgun_settings):
    with pytest.raises(EmailDeliveryError) as excinfo:
        send_email("admin@coco.pl", "Hello", "Body", settings=mailgun_settings,
                   transport=_recording_transport([], status_code=401))
    assert excinfo.value.status_code == 401


def test_send_email_requires_configuration():
    with pytest.raises(EmailDeliveryError):
        send_email("admin@coco.pl", "Hello", "Body", settings=DevSettings(MAILGUN_API_KEY="", MAILGUN_DOMAIN=""))


def test_report_submitted_notification(mailgun_settings):
    sent = []
    delivered = notify_report_submitted(
        ["admin@coco.pl", "szef@coco.pl"],
        "Sushi Old Town",
        date(2025, 9, 24),
        "Kasia",
        SUMMARY,
        settings=mailgun_settings,
        transport=_recording_transport(sent),
    )
    assert delivered == 2
    body = httpx.QueryParams(sent[0].content.decode())
    assert body["subject"] == "New EOD Report Submitted - Sushi Old Town - 2025-09-24"
    assert "Total Service (75%): 49,50 zł" in body["text"]
    assert "Delivery Income (70%): 72,80 zł" in body["text"]


def test_failed_recipient_does_not_stop_others(mailgun_settings):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500 if len(calls) == 1 else 200, json={})

    delivered = notify_signup(
        ["a@coco.pl", "b@coco.pl"], "nowy@coco.pl", "Nowy",
        settings=mailgun_settings, transport=httpx.MockTransport(handler),
    )
    assert delivered == 1
    assert len(calls) == 2


def test_unconfigured_mailgun_skips_delivery():
    settings = DevSettings(MAILGUN_API_KEY="", MAILGUN_DOMAIN="")
    assert notify_signup(["a@coco.pl"], "nowy@coco.pl", None, settings=settings) == 0


def test_report_submitted_html_escapes_user_text(mailgun_settings):
    sent = []
    notify_report_submitted(
        ["admin@coco.pl"],
        "Sushi <Old> Town",
        date(2025, 9, 24),
        '<a href="http://evil.example">click</a>',
        SUMMARY,
        settings=mailgun_settings,
        transport=_recording_transport(sent),
    )
    body = httpx.QueryParams(sent[0].content.decode())
    assert "&lt;a href=&quot;http://evil.example&quot;&gt;click&lt;/a&gt;" in body["html"]
    assert "<a href" not in body["html"]
    assert "Sushi &lt;Old&gt; Town" in body["html"]
    assert '<a href="http://evil.example">click</a>' in body["text"]


def test_password_reset_email_carries_link(mailgun_settings):
    sent = []
    link = "http://localhost:3000/auth/reset-password?token=abc.def&x=1"
    delivered = notify_password_reset(
        "kasia@coco.pl", link, settings=mailgun_settings, transport=_recording_transport(sent),
    )
    assert delivered == 1
    body = httpx.QueryParams(sent[0].content.decode())
    assert body["to"] == "kasia@coco.pl"
    assert body["subject"].startswith("Password Reset Request")
    assert link in body["text"]
    assert "token=abc.def&amp;x=1" in body["html"]
    assert "expire in 60 minutes" in body["text"]


def test_user_created_notifies_admins_and_welcomes_user():
    settings = DevSettings(
        MAILGUN_API_KEY="key-test",
        MAILGUN_DOMAIN="mg.coco.pl",
        CLIENT_URL="https://eod.coco.pl/",
    )
    sent = []
    delivered = notify_user_created(
        ["admin@coco.pl", "nowy@coco.pl"],
        "nowy@coco.pl",
        "Nowy",
        "staff",
        "Admin",
        settings=settings,
        transport=_recording_transport(sent),
    )
    assert delivered == 2
    admin_notice, welcome = [httpx.QueryParams(request.content.decode()) for request in sent]

    assert admin_notice["to"] == "admin@coco.pl"
    assert admin_notice["subject"] == "New User Created - Nowy"
    assert "Role: staff" in admin_notice["text"]
    assert "Created by: Admin" in admin_notice["text"]

    assert welcome["to"] == "nowy@coco.pl"
    assert welcome["subject"].startswith("Welcome to")
    assert "https://eod.coco.pl/login" in welcome["text"]
    assert 'href="https://eod.coco.pl/login"' in welcome["html"]
