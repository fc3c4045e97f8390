import logging
import smtplib
from datetime import datetime, timedelta
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.core.config import settings

logger = logging.getLogger(__name__)

_HEADLINES = {
    "pending": ("Booking Received", "we have received your booking request and will confirm it shortly."),
    "confirmed": ("Booking Confirmed", "your visit is confirmed."),
    "cancelled": ("Booking Cancelled", "your visit has been cancelled."),
}


def _send_email_sync(to_email: str, subject: str, html_body: str) -> None:
    """Send email via SMTP (blocking). Use from background task."""
    if not settings.email_enabled:
        logger.debug("Email disabled (SMTP not configured), skipping send")
        return
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.from_name} <{settings.from_email}>"
    msg["To"] = to_email
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.from_email, [to_email], msg.as_string())
        logger.info("Email sent to %s", to_email)
    except Exception as e:
        logger.exception("Failed to send email to %s: %s", to_email, e)


def _html_escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def build_booking_status_html(
    recipient_name: str,
    status: str,
    slot_start: datetime,
    duration_minutes: int,
    booking_type: str,
) -> str:
    """HTML body for a booking status notice (received / confirmed / cancelled)."""
    title, lead = _HEADLINES.get(status, _HEADLINES["pending"])
    date_str = slot_start.strftime("%A, %B %d, %Y")
    end = slot_start + timedelta(minutes=duration_minutes)
    slot_display = f"{slot_start:%H:%M} – {end:%H:%M}"
    footer_contact = " &nbsp;·&nbsp; ".join(
        _html_escape(x) for x in (settings.contact_email, settings.contact_phone) if x
    )
    return f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{title}</title>
</head>
<body style="margin:0;padding:0;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background-color:#f3f4f6;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width:560px;margin:40px auto;background:#ffffff;border-radius:12px;">
    <tr>
      <td style="padding:32px;">
        <h1 style="margin:0 0 8px 0;font-size:22px;color:#111827;">{title}</h1>
        <p style="margin:0 0 24px 0;font-size:15px;color:#6b7280;">Hi {recipient_name or 'there'}, {lead}</p>
        <p style="margin:0;font-size:12px;text-transform:uppercase;color:#6b7280;">Visit</p>
        <p style="margin:0 0 12px 0;font-size:16px;font-weight:600;color:#111827;">{_html_escape(booking_type.replace('_', ' ').capitalize())}</p>
        <p style="margin:0;font-size:12px;text-transform:uppercase;color:#6b7280;">Date</p>
        <p style="margin:0 0 12px 0;font-size:16px;font-weight:600;color:#111827;">{date_str}</p>
        <p style="margin:0;font-size:12px;text-transform:uppercase;color:#6b7280;">Time</p>
        <p style="margin:0;font-size:16px;font-weight:600;color:#111827;">{slot_display}</p>
      </td>
    </tr>
    <tr>
      <td style="padding:24px 32px;background:#f9fafb;border-top:1px solid #e5e7eb;">
        <p style="margin:0 0 4px 0;font-size:13px;font-weight:600;color:#111827;">{_html_escape(settings.site_name)}</p>
        <p style="margin:0;font-size:13px;color:#6b7280;">{footer_contact}<br>{_html_escape(settings.contact_address)}</p>
      </td>
    </tr>
  </table>
</body>
</html>
"""


def send_booking_status_email(
    to_email: str,
    recipient_name: str | None,
    status: str,
    slot_start: datetime,
    booking_type: str,
    duration_minutes: int | None = None,
) -> None:
    """Compose and send a booking status notice (call from background task)."""
    title, _ = _HEADLINES.get(status, _HEADLINES["pending"])
    subject = f"{settings.site_name} – {title}"
    html = build_booking_status_html(
        recipient_name=_html_escape(recipient_name or ""),
        status=status,
        slot_start=slot_start,
        duration_minutes=duration_minutes or settings.slot_duration_minutes,
        booking_type=booking_type,
    )
    _send_email_sync(to_email, subject, html)
