# agriassist/notifications.py
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from agriassist import crud, mailer, models
from agriassist.config import settings
from agriassist.errors import NotFound

logger = logging.getLogger(__name__)

Today = Callable[[], date]

# notification type -> settings.notificationPreferences key that enables email for it
EMAIL_PREFERENCE_BY_TYPE = {
    "task_reminder": "taskRemindersEmail",
    "ai_insight": "aiInsightsEmail",
    "weather_alert": "weatherAlertsEmail",
    "staff_invite_accepted": "staffActivityEmail",
    "staff_activity": "staffActivityEmail",
}


def wants_email(user: Optional[models.User], notification_type: str) -> bool:
    if user is None or not user.email:
        return False
    key = EMAIL_PREFERENCE_BY_TYPE.get(notification_type.lower())
    prefs = (user.settings or {}).get("notificationPreferences") or {}
    return bool(key and prefs.get(key))


def absolute_link(link: Optional[str]) -> str:
    base = settings.app_url()
    if not link:
        return base
    return link if link.startswith("http") else f"{base}{link}"


class NotificationService:
    def __init__(self, mail: mailer.Mailer, *, today: Today | None = None):
        self._mail = mail
        self._today = today or date.today

    def create(
        self,
        db: Session,
        *,
        user_id: str,
        title: str,
        message: str,
        type: str,
        link: Optional[str] = None,
        farm_id: Optional[str] = None,
        triggered_by: Optional[str] = None,
        email: Optional[mailer.EmailMessage] = None,
    ) -> models.Notification:
        """Store an unread notification, then email the recipient if their preferences allow it."""
        note = crud.create_notification(
            db,
            user_id=user_id,
            farm_id=farm_id,
            type=type,
            title=title,
            message=message,
            link=link,
            triggered_by=triggered_by,
        )
        recipient = crud.get_user(db, user_id)
        if recipient is None:
            logger.warning("User %s not found for email notification; stored only", user_id)
        elif wants_email(recipient, type):
            msg = email or mailer.notification_email(
                recipient.email,
                title=title,
                message=message,
                action_link=absolute_link(link),
                action_text="View Details" if link else f"Go to {settings.APP_NAME}",
                recipient_name=recipient.name,
            )
            self._mail.send_best_effort(msg)
        return note

    def list_for(self, db: Session, user: models.User, *, unread_only: bool = False):
        return crud.list_notifications(db, user.uid, unread_only=unread_only)

    def mark_read(self, db: Session, user: models.User, notification_id: str) -> None:
        note = db.get(models.Notification, notification_id)
        if note is None or note.user_id != user.uid:
            raise NotFound("Notification not found.")
        crud.mark_notifications_read(db, user.uid, notification_id)

    def mark_all_read(self, db: Session, user: models.User) -> int:
        return crud.mark_notifications_read(db, user.uid)

    def send_task_reminders(self, db: Session, user: models.User, *, days_ahead: int = 2) -> int:
        """One task_reminder notification per open task of the farm due within `days_ahead` days or overdue."""
        today = self._today()
        horizon = today + timedelta(days=days_ahead)
        sent = 0
        for task in crud.open_tasks(db, user.farm_id):
            if task.due_date is None or task.due_date > horizon:
                continue
            due = task.due_date.strftime("%b %d, %Y")
            if task.due_date < today:
                message = f'"{task.task_name}" was due {due} and is overdue.'
            else:
                message = f'"{task.task_name}" is due {due}.'
            email = None
            if user.email:
                email = mailer.task_reminder_email(
                    user.email, task_name=task.task_name, due_date=due, recipient_name=user.name
                )
            self.create(
                db,
                user_id=user.uid,
                farm_id=user.farm_id,
                type="task_reminder",
                title=f"Task reminder: {task.task_name}",
                message=message,
                link="/data-management?tab=tasks",
                triggered_by=user.uid,
                email=email,
            )
            sent += 1
        return sent
