from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from agriassist import models, schemas
from agriassist.utils import latlon_from_geometry

DEFAULT_SETTINGS = schemas.UserSettings().model_dump(by_alias=True)

# ---------- tiny, single-purpose helpers ----------

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _sync_field_latlon(obj: models.Field) -> None:
    lat, lon = latlon_from_geometry(obj.geometry)
    obj.latitude = lat
    obj.longitude = lon

def _apply(obj, data: dict[str, Any]) -> None:
    for key, value in data.items():
        setattr(obj, key, value)
    if isinstance(obj, models.Field) and "geometry" in data:
        _sync_field_latlon(obj)

# ---------- users & farms ----------

def get_user(db: Session, uid: str) -> Optional[models.User]:
    return db.get(models.User, uid)

def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email.lower()).first()

def get_farm(db: Session, farm_id: Optional[str]) -> Optional[models.Farm]:
    return db.get(models.Farm, farm_id) if farm_id else None

def new_owner_farm(db: Session, user: models.User, farm_name: Optional[str]) -> models.Farm:
    """Stage a farm owned by `user` (farm_id = uid) and point the user at it. No commit."""
    farm = db.get(models.Farm, user.uid)
    if farm is None:
        farm = models.Farm(
            farm_id=user.uid,
            owner_id=user.uid,
            farm_name=farm_name,
            staff=[],
        )
        db.add(farm)
    user.farm_id = farm.farm_id
    user.farm_name = farm.farm_name
    user.is_farm_owner = True
    user.role_on_current_farm = "owner"
    return farm

def create_user_with_farm(
    db: Session,
    *,
    uid: str,
    email: Optional[str],
    name: str,
    farm_name: str,
) -> tuple[models.User, models.Farm]:
    """User document and its farm land in one commit."""
    user = models.User(
        uid=uid,
        email=email.lower() if email else None,
        name=name,
        selected_plan_id="free",
        subscription_status="active",
        settings=DEFAULT_SETTINGS,
    )
    db.add(user)
    farm = new_owner_farm(db, user, farm_name)
    db.commit()
    db.refresh(user)
    db.refresh(farm)
    return user, farm

def upsert_pending_user(
    db: Session,
    *,
    uid: str,
    email: Optional[str],
    name: str,
    farm_name: str,
    plan_id: str,
) -> models.User:
    user = db.get(models.User, uid)
    if user is None:
        user = models.User(uid=uid, is_farm_owner=False, farm_id=None, onboarding_completed=False)
        db.add(user)
    user.email = email.lower() if email else None
    user.name = name
    user.farm_name = farm_name
    user.selected_plan_id = plan_id
    user.subscription_status = "pending_payment"
    user.settings = user.settings or DEFAULT_SETTINGS
    db.commit()
    db.refresh(user)
    return user

def update_user_settings(db: Session, user: models.User, changes: dict[str, Any]) -> models.User:
    merged = dict(user.settings or DEFAULT_SETTINGS)
    prefs = changes.pop("notificationPreferences", None)
    if prefs:
        merged["notificationPreferences"] = {**merged.get("notificationPreferences", {}), **prefs}
    merged.update({k: v for k, v in changes.items() if v is not None})
    user.settings = schemas.UserSettings.model_validate(merged).model_dump(by_alias=True)
    db.commit()
    db.refresh(user)
    return user

def update_farm(db: Session, farm: models.Farm, changes: dict[str, Any]) -> models.Farm:
    _apply(farm, changes)
    if "farm_name" in changes:
        for member in db.query(models.User).filter(models.User.farm_id == farm.farm_id):
            member.farm_name = farm.farm_name
    db.commit()
    db.refresh(farm)
    return farm

# ---------- tenant records ----------

def create_record(db: Session, model, data: dict[str, Any], *, farm_id: str, user_id: str):
    obj = model(farm_id=farm_id, user_id=user_id)
    _apply(obj, data)
    if isinstance(obj, models.Field) and "geometry" not in data:
        _sync_field_latlon(obj)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def get_record(db: Session, model, farm_id: str, record_id: str):
    """Record by id, but only inside the caller's farm."""
    return (
        db.query(model)
        .filter(model.id == record_id, model.farm_id == farm_id)
        .first()
    )

def list_records(
    db: Session,
    model,
    farm_id: str,
    *,
    order_by: Optional[str] = None,
    descending: bool = True,
    limit: Optional[int] = None,
    **filters: Any,
) -> list:
    q = db.query(model).filter(model.farm_id == farm_id)
    for key, value in filters.items():
        if value is not None:
            q = q.filter(getattr(model, key) == value)
    if order_by:
        col = getattr(model, order_by)
        q = q.order_by(col.desc() if descending else col.asc())
    if limit:
        q = q.limit(limit)
    return q.all()

def update_record(db: Session, obj, changes: dict[str, Any]):
    _apply(obj, changes)
    db.commit()
    db.refresh(obj)
    return obj

def delete_record(db: Session, obj) -> None:
    db.delete(obj)
    db.commit()

def open_tasks(db: Session, farm_id: str) -> list[models.TaskLog]:
    """Tasks not yet done, soonest due first (undated last)."""
    return (
        db.query(models.TaskLog)
        .filter(models.TaskLog.farm_id == farm_id, models.TaskLog.status != "Done")
        .order_by(models.TaskLog.due_date.is_(None), models.TaskLog.due_date.asc())
        .all()
    )

# ---------- notifications ----------

def create_notification(db: Session, **values: Any) -> models.Notification:
    obj = models.Notification(is_read=False, **values)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def list_notifications(db: Session, user_id: str, *, unread_only: bool = False, limit: int = 50):
    q = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    if unread_only:
        q = q.filter(models.Notification.is_read.is_(False))
    return q.order_by(models.Notification.created_at.desc()).limit(limit).all()

def mark_notifications_read(db: Session, user_id: str, notification_id: Optional[str] = None) -> int:
    q = db.query(models.Notification).filter(
        models.Notification.user_id == user_id,
        models.Notification.is_read.is_(False),
    )
    if notification_id:
        q = q.filter(models.Notification.id == notification_id)
    now = _now()
    count = 0
    for n in q.all():
        n.is_read = True
        n.read_at = now
        count += 1
    db.commit()
    return count
