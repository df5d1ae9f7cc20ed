# agriassist/routers/notifications.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from agriassist import models, schemas
from agriassist.db import get_db
from agriassist.deps import get_current_user, get_farm_user, get_notification_service
from agriassist.notifications import NotificationService

router = APIRouter(tags=["notifications"])


@router.post("/notifications", response_model=schemas.NotificationOut, status_code=201)
def create_notification(
    body: schemas.NotificationCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    svc: NotificationService = Depends(get_notification_service),
):
    return svc.create(
        db,
        user_id=body.user_id,
        title=body.title,
        message=body.message,
        type=body.type,
        link=body.link,
        farm_id=body.farm_id,
        triggered_by=user.uid,
    )


@router.get("/notifications", response_model=List[schemas.NotificationOut])
def list_notifications(
    unread_only: bool = False,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    svc: NotificationService = Depends(get_notification_service),
):
    return svc.list_for(db, user, unread_only=unread_only)


@router.post("/notifications/read-all", response_model=schemas.ActionResult)
def mark_all_read(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    svc: NotificationService = Depends(get_notification_service),
):
    count = svc.mark_all_read(db, user)
    return {"success": True, "message": f"{count} notification(s) marked as read."}


@router.post("/notifications/{notification_id}/read", response_model=schemas.ActionResult)
def mark_read(
    notification_id: str,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    svc: NotificationService = Depends(get_notification_service),
):
    svc.mark_read(db, user, notification_id)
    return {"success": True, "message": "Notification marked as read."}


@router.post("/tasks/reminders", response_model=schemas.ActionResult)
def send_task_reminders(
    days_ahead: int = Query(2, ge=0, le=30),
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    svc: NotificationService = Depends(get_notification_service),
):
    sent = svc.send_task_reminders(db, user, days_ahead=days_ahead)
    return {"success": True, "message": f"{sent} task reminder(s) created."}
