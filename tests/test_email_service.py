from datetime import datetime

from app.core.config import settings
from app.services import email_service
from app.services.email_service import build_booking_status_html, send_booking_status_email

SLOT = datetime(2030, 1, 7, 9, 0)


def test_confirmed_notice_shows_visit_and_time():
    html = build_booking_status_html("Anna", "confirmed", SLOT, 30, "follow_up")
    assert "Booking Confirmed" in html
    assert "Follow up" in html
    assert "Monday, January 07, 2030" in html
    assert "09:00 – 09:30" in html


def test_recipient_name_is_escaped(monkeypatch):
    sent = {}
    monkeypatch.setattr(
        email_service,
        "_send_email_sync",
        lambda to_email, subject, html_body: sent.update(to=to_email, subject=subject, html=html_body),
    )
    send_booking_status_email("anna@example.com", "<b>Anna</b>", "cancelled", SLOT, "checkup")
    assert "&lt;b&gt;Anna&lt;/b&gt;" in sent["html"]
    assert sent["subject"] == f"{settings.site_name} – Booking Cancelled"


def test_disabled_smtp_sends_nothing(monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", "")

    def fail(*args, **kwargs):
        raise AssertionError("SMTP should not be used")

    monkeypatch.setattr(email_service.smtplib, "SMTP", fail)
    email_service._send_email_sync("anna@example.com", "subject", "<p>hi</p>")
