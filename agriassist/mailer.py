# agriassist/mailer.py
from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import Optional

import requests

from agriassist.config import settings
from agriassist.errors import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str


# ---------- templates ----------

_LAYOUT = """\
<html><body style="font-family: Arial, sans-serif; color: #1f2937;">
<h2 style="color: #15803d;">{heading}</h2>
{body}
<p style="color: #6b7280; font-size: 12px;">{app_name} &middot; <a href="{app_url}">{app_url}</a></p>
</body></html>"""


def _button(url: str, label: str) -> str:
    return (
        f'<p><a href="{html.escape(url)}" style="background: #15803d; color: #ffffff; '
        f'padding: 10px 16px; border-radius: 6px; text-decoration: none;">{html.escape(label)}</a></p>'
    )


def _render(heading: str, body_html: str) -> str:
    return _LAYOUT.format(
        heading=html.escape(heading),
        body=body_html,
        app_name=html.escape(settings.APP_NAME),
        app_url=settings.app_url(),
    )


def welcome_email(to: str, user_name: str) -> EmailMessage:
    app = settings.APP_NAME
    link = f"{settings.app_url()}/dashboard"
    body = (
        f"<p>Hi {html.escape(user_name)},</p>"
        f"<p>Thanks for joining {html.escape(app)}. Start by adding your fields, then log plantings, "
        f"harvests and soil tests to unlock tailored AI advice.</p>"
        + _button(link, "Open your dashboard")
    )
    text = (
        f"Hi {user_name},\n\nThanks for joining {app}. Start by adding your fields, then log "
        f"plantings, harvests and soil tests to unlock tailored AI advice.\n\n{link}\n"
    )
    return EmailMessage(to=to, subject=f"Welcome to {app}, {user_name}!",
                        html=_render(f"Welcome to {app}!", body), text=text)


def staff_invitation_email(
    to: str,
    *,
    farm_name: str,
    inviter_name: str,
    role: str,
    token: str,
) -> EmailMessage:
    app = settings.APP_NAME
    link = f"{settings.app_url()}/accept-invitation?token={token}"
    body = (
        f"<p>{html.escape(inviter_name)} invited you to join <strong>{html.escape(farm_name)}</strong> "
        f"on {html.escape(app)} as a <strong>{html.escape(role)}</strong>.</p>"
        + _button(link, "Accept invitation")
        + f"<p>The invitation expires in {settings.INVITATION_TTL_DAYS} days.</p>"
    )
    text = (
        f"{inviter_name} invited you to join {farm_name} on {app} as a {role}.\n\n"
        f"Accept the invitation: {link}\n\n"
        f"The invitation expires in {settings.INVITATION_TTL_DAYS} days.\n"
    )
    return EmailMessage(to=to, subject=f"You're invited to join {farm_name} on {app}",
                        html=_render("Farm invitation", body), text=text)


def notification_email(
    to: str,
    *,
    title: str,
    message: str,
    action_link: str,
    action_text: str,
    recipient_name: Optional[str] = None,
) -> EmailMessage:
    app = settings.APP_NAME
    greeting = f"Hi {recipient_name}," if recipient_name else "Hello,"
    body = (
        f"<p>{html.escape(greeting)}</p>"
        f"<p>{html.escape(message)}</p>"
        + _button(action_link, action_text)
    )
    text = f"{greeting}\n\n{message}\n\n{action_text}: {action_link}\n"
    return EmailMessage(to=to, subject=f"{app} Notification: {title}",
                        html=_render(title, body), text=text)


def task_reminder_email(
    to: str,
    *,
    task_name: str,
    due_date: str,
    recipient_name: Optional[str] = None,
) -> EmailMessage:
    app = settings.APP_NAME
    link = f"{settings.app_url()}/data-management?tab=tasks"
    greeting = f"Hi {recipient_name}," if recipient_name else "Hello,"
    body = (
        f"<p>{html.escape(greeting)}</p>"
        f"<p>Your task <strong>{html.escape(task_name)}</strong> is due on {html.escape(due_date)}.</p>"
        + _button(link, "View tasks")
    )
    text = f"{greeting}\n\nYour task {task_name} is due on {due_date}.\n\nView tasks: {link}\n"
    return EmailMessage(to=to, subject=f"{app} Task Reminder: {task_name}",
                        html=_render("Task reminder", body), text=text)


# ---------- transport ----------

class Mailer:
    """Sends EmailMessage objects through the Resend HTTP API."""

    def __init__(self, api_key: Optional[str] = None, from_email: Optional[str] = None,
                 api_url: Optional[str] = None, session: Optional[requests.Session] = None):
        self.api_key = settings.RESEND_API_KEY if api_key is None else api_key
        self.from_email = from_email or settings.from_email
        self.api_url = api_url or settings.RESEND_API_URL
        self._session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def send(self, message: EmailMessage) -> str:
        """Returns the provider's message id."""
        if not self.configured:
            raise ExternalServiceError("Email service is not configured.")
        try:
            resp = self._session.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.from_email,
                    "to": [message.to],
                    "subject": message.subject,
                    "html": message.html,
                    "text": message.text,
                },
                timeout=15,
            )
            resp.raise_for_status()
            body = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Resend request failed for %s: %s", message.to, e)
            raise ExternalServiceError("Failed to send email.") from e
        return body.get("id", "") if isinstance(body, dict) else ""

    def send_best_effort(self, message: EmailMessage) -> bool:
        """Send, logging instead of raising; True when the provider accepted it."""
        if not self.configured:
            logger.warning("Email not sent to %s: RESEND_API_KEY is not set", message.to)
            return False
        try:
            self.send(message)
        except ExternalServiceError:
            return False
        return True
