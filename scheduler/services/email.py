"""
Outbound email.

Delivery goes through the Resend HTTP API when an API key is configured;
otherwise messages are only logged so invites keep working in development.
Delivery failures are logged and reported as ``False``, never raised.
"""

from __future__ import annotations

import html
from typing import Optional, Protocol

import httpx
import structlog

from scheduler.core.config import get_settings
from scheduler.core.logging import mask_identifier
from scheduler_shared.schemas.common import ROLE_LABELS, MemberRole

log = structlog.get_logger()

RESEND_API_URL = "https://api.resend.com/emails"


class EmailSender(Protocol):
    async def send(
        self, to: str, subject: str, html_body: str, text: Optional[str] = None
    ) -> bool: ...


class LogEmailSender:
    """Logs the envelope instead of sending. Bodies are not logged."""

    async def send(
        self, to: str, subject: str, html_body: str, text: Optional[str] = None
    ) -> bool:
        log.info("email.skipped", to=mask_identifier(to), subject=subject)
        return True


class ResendEmailSender:
    def __init__(self, api_key: str, sender: str, timeout: float = 10.0):
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout

    async def send(
        self, to: str, subject: str, html_body: str, text: Optional[str] = None
    ) -> bool:
        payload = {
            "from": self._sender,
            "to": to,
            "subject": subject,
            "html": html_body,
        }
        if text:
            payload["text"] = text

        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
                resp = await client.post(
                    RESEND_API_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
        except httpx.HTTPError as exc:
            log.error("email.send_failed", to=mask_identifier(to), error=str(exc))
            return False

        if resp.status_code >= 400:
            log.error("email.send_failed", to=mask_identifier(to), status=resp.status_code, body=resp.text[:200])
            return False

        log.info("email.sent", to=mask_identifier(to), subject=subject)
        return True


def get_email_sender() -> EmailSender:
    """FastAPI dependency: Resend when configured, logging otherwise."""
    settings = get_settings()
    if settings.resend_api_key:
        return ResendEmailSender(settings.resend_api_key, settings.email_from)
    return LogEmailSender()


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def invite_url(token: str) -> str:
    return f"{get_settings().app_url.rstrip('/')}/invite/{token}"


def invite_subject(organization_name: str) -> str:
    return f"You've been invited to join {organization_name} on Sewer Swarm AI"


def render_invite_text(url: str, organization_name: str) -> str:
    return (
        f"You've been invited to join {organization_name} on Sewer Swarm AI. "
        f"Click here to accept: {url}"
    )


def render_invite_email(
    url: str,
    organization_name: str,
    role: str,
    inviter_name: Optional[str] = None,
    expiry_days: int = 7,
) -> str:
    try:
        role_label = ROLE_LABELS[MemberRole(role)]
    except ValueError:
        role_label = ROLE_LABELS[MemberRole.USER]

    org = html.escape(organization_name)
    href = html.escape(url, quote=True)
    opener = (
        f"Hi! {html.escape(inviter_name)} has invited you"
        if inviter_name
        else "You've been invited"
    )

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: #2563eb; padding: 30px; text-align: center; border-radius: 8px 8px 0 0;">
    <h1 style="color: white; margin: 0; font-size: 24px;">You've been invited!</h1>
  </div>
  <div style="background: #ffffff; padding: 30px; border: 1px solid #e5e7eb; border-top: none; border-radius: 0 0 8px 8px;">
    <p style="font-size: 16px;">{opener} to join <strong>{org}</strong> on Sewer Swarm AI.</p>
    <p style="font-size: 16px;">You'll be joining as a <strong>{role_label}</strong>.</p>
    <div style="text-align: center; margin: 30px 0;">
      <a href="{href}" style="display: inline-block; background: #2563eb; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; font-weight: 600;">Accept Invitation</a>
    </div>
    <p style="font-size: 14px; color: #6b7280;">Or copy and paste this link into your browser:<br><a href="{href}" style="color: #2563eb; word-break: break-all;">{href}</a></p>
    <p style="font-size: 14px; color: #6b7280;">This invitation will expire in {expiry_days} days.</p>
  </div>
  <p style="text-align: center; font-size: 12px; color: #9ca3af;">This is an automated email from Sewer Swarm AI. Please do not reply to this email.</p>
</body>
</html>"""
