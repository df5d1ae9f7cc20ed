# agriassist/routers/accounts.py
"""Registration, the caller's profile/settings, their farm, and the welcome email."""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from agriassist import crud, mailer, models, schemas
from agriassist.billing import PAID_PLANS, BillingService
from agriassist.db import get_db
from agriassist.deps import (
    get_billing_service,
    get_current_claims,
    get_current_user,
    get_farm_user,
    get_mailer,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["accounts"])


@router.post("/auth/register", response_model=schemas.UserOut, status_code=201)
def register(
    body: schemas.RegisterRequest,
    claims: Dict[str, Any] = Depends(get_current_claims),
    db: Session = Depends(get_db),
    mail: mailer.Mailer = Depends(get_mailer),
):
    if crud.get_user(db, claims["uid"]) is not None:
        raise HTTPException(status_code=409, detail="User is already registered.")
    user, farm = crud.create_user_with_farm(
        db,
        uid=claims["uid"],
        email=claims.get("email"),
        name=body.name,
        farm_name=body.farm_name,
    )
    logger.info("Registered user %s with farm %s", user.uid, farm.farm_id)
    if user.email:
        mail.send_best_effort(mailer.welcome_email(user.email, user.name))
    return user


@router.post("/auth/initiate-paid-registration", response_model=schemas.CheckoutResult)
def initiate_paid_registration(
    body: schemas.PaidRegistrationRequest,
    claims: Dict[str, Any] = Depends(get_current_claims),
    db: Session = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    if body.plan_id not in PAID_PLANS:
        raise HTTPException(status_code=400, detail="Invalid plan ID provided.")
    if not body.name or not body.farm_name:
        raise HTTPException(status_code=400, detail="Name and farm name are required.")
    existing = crud.get_user(db, claims["uid"])
    if existing is not None and existing.farm_id:
        raise HTTPException(status_code=409, detail="User is already registered.")

    user = crud.upsert_pending_user(
        db,
        uid=claims["uid"],
        email=claims.get("email"),
        name=body.name,
        farm_name=body.farm_name,
        plan_id=body.plan_id,
    )
    session_id = billing.start_checkout(db, user, body.plan_id, cancel_path="/register")
    return {"success": True, "session_id": session_id}


@router.get("/users/me", response_model=schemas.UserOut)
def me(user: models.User = Depends(get_current_user)):
    return user


@router.patch("/users/me/settings", response_model=schemas.UserOut)
def update_settings(
    body: schemas.UserSettingsUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.update_user_settings(db, user, body.model_dump(by_alias=True, exclude_unset=True))


def _farm_or_404(db: Session, user: models.User) -> models.Farm:
    farm = crud.get_farm(db, user.farm_id)
    if farm is None:
        raise HTTPException(status_code=404, detail="Farm not found.")
    return farm


@router.get("/farm", response_model=schemas.FarmOut)
def get_farm(user: models.User = Depends(get_farm_user), db: Session = Depends(get_db)):
    return _farm_or_404(db, user)


@router.patch("/farm", response_model=schemas.FarmOut)
def update_farm(
    body: schemas.FarmUpdate,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
):
    farm = _farm_or_404(db, user)
    if farm.owner_id != user.uid:
        raise HTTPException(status_code=403, detail="Unauthorized: You are not the owner of this farm.")
    return crud.update_farm(db, farm, body.model_dump(exclude_unset=True))


@router.post("/email/send-welcome")
def send_welcome(
    body: schemas.WelcomeEmailRequest,
    claims: Dict[str, Any] = Depends(get_current_claims),
    mail: mailer.Mailer = Depends(get_mailer),
):
    if not mail.configured:
        logger.error("Resend API key is not configured. Cannot send welcome email.")
        raise HTTPException(status_code=500, detail="Email service is not configured.")
    if not body.to or not body.user_name:
        raise HTTPException(status_code=400, detail="Missing required fields: to, userName")
    email_id = mail.send(mailer.welcome_email(body.to, body.user_name))
    return {"success": True, "message": "Welcome email sent.", "id": email_id}
