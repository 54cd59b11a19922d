from __future__ import annotations

import html
import logging
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import httpx

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class NotificationError(Exception):
    """Raised when the mail provider rejects or never receives a notification."""


def format_notification_timestamp(moment: datetime, timezone: str) -> str:
    """Render ``moment`` like ``Oct 18, 2026, 3:04 PM`` in ``timezone``."""
    local = moment.astimezone(ZoneInfo(timezone))
    hour = local.hour % 12 or 12
    return f"{local:%b} {local.day}, {local.year}, {hour}:{local:%M} {local:%p}"


def build_subscriber_notification_html(
    email: str,
    *,
    subscribed_at: datetime,
    timezone: str,
    formats: str,
) -> str:
    safe_email = html.escape(email, quote=True)
    when = format_notification_timestamp(subscribed_at, timezone)
    label_style = "padding:8px 0;color:#888;font-size:14px;"
    value_style = "padding:8px 0;color:#1a1a1a;text-align:right;"
    divider = "border-top:1px solid #eee;"

    return f"""\
<div style="font-family:Georgia,serif;max-width:500px;margin:0 auto;padding:32px;background:#fdfbf7;border-radius:8px;">
  <div style="text-align:center;margin-bottom:24px;">
    <p style="color:#666;margin:0 0 8px 0;">Hey David! 👋</p>
    <h1 style="color:#1a1a1a;font-size:24px;margin:0;">You've Got a New Reader!</h1>
    <p style="color:#666;margin-top:8px;">Someone just grabbed the prologue to Marco Swift and the Mirror of Souls</p>
  </div>
  <div style="background:white;padding:20px;border-radius:6px;border:1px solid #e5e5e5;">
    <table style="width:100%;border-collapse:collapse;">
      <tr>
        <td style="{label_style}">Email</td>
        <td style="{value_style}font-weight:bold;">
          <a href="mailto:{safe_email}" style="color:#1a1a1a;">{safe_email}</a>
        </td>
      </tr>
      <tr>
        <td style="{label_style}{divider}">Time</td>
        <td style="{value_style}{divider}">{html.escape(when)}</td>
      </tr>
      <tr>
        <td style="{label_style}{divider}">Format</td>
        <td style="{value_style}{divider}">{html.escape(formats)}</td>
      </tr>
    </table>
  </div>
  <p style="color:#888;font-size:12px;text-align:center;margin-top:24px;">Marco Swift and the Mirror of Souls</p>
</div>"""


async def _post_email(payload: dict[str, object], *, api_key: str, timeout: float) -> str:
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                RESEND_API_URL,
                json=payload,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
            )
    except httpx.HTTPError as exc:
        raise NotificationError(f"transport failure: {exc}") from exc
    if response.status_code >= 400:
        raise NotificationError(f"Resend API error {response.status_code}: {response.text}")
    try:
        return str(response.json().get("id", "unknown"))
    except ValueError:
        return "unknown"


async def send_subscriber_notification(
    *,
    subscriber_email: str,
    resend_api_key: str | None,
    email_from: str,
    email_to: str,
    subject: str,
    timezone: str,
    formats: str,
    http_timeout_seconds: float,
    subscribed_at: datetime | None = None,
) -> bool:
    """Tell the site operator about a new subscriber.

    Makes a single attempt. Returns True when Resend accepted the message and
    False otherwise; delivery problems are logged, never raised.
    """
    if not resend_api_key:
        logger.info("Skipping subscriber notification (email sending disabled, no RESEND_API_KEY)")
        return False

    body = build_subscriber_notification_html(
        subscriber_email,
        subscribed_at=subscribed_at or datetime.now(UTC),
        timezone=timezone,
        formats=formats,
    )
    payload: dict[str, object] = {
        "from": email_from,
        "to": [email_to],
        "subject": subject,
        "html": body,
    }

    try:
        message_id = await _post_email(payload, api_key=resend_api_key, timeout=http_timeout_seconds)
    except NotificationError:
        logger.exception("Failed to send subscriber notification for %s", subscriber_email)
        return False
    logger.info(
        "Subscriber notification sent for %s (Resend ID: %s)",
        subscriber_email,
        message_id,
    )
    return True
