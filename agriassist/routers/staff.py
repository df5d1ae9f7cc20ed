# agriassist/routers/staff.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agriassist import models, schemas
from agriassist.db import get_db
from agriassist.deps import get_current_user, get_farm_user, get_staff_service
from agriassist.staff import StaffService

router = APIRouter(tags=["staff"])


def _ok(message: str) -> schemas.ActionResult:
    return schemas.ActionResult(success=True, message=message)


@router.post("/farm/invite-staff", response_model=schemas.ActionResult)
def invite_staff(
    body: schemas.InviteStaffRequest,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    svc: StaffService = Depends(get_staff_service),
):
    inv = svc.invite(db, user, body.invited_email, body.invited_role)
    return _ok(f"Invitation sent to {inv.invited_email}.")


@router.get("/farm/invitations", response_model=List[schemas.InvitationOut])
def sent_invitations(
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    svc: StaffService = Depends(get_staff_service),
):
    return svc.sent_by_farm(db, user)


@router.get("/invitations/mine", response_model=List[schemas.InvitationOut])
def my_invitations(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    svc: StaffService = Depends(get_staff_service),
):
    return svc.pending_for(db, user)


@router.post("/farm/invitations/accept", response_model=schemas.ActionResult)
def accept_invitation(
    body: schemas.InvitationAction,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    svc: StaffService = Depends(get_staff_service),
):
    return _ok(svc.accept(db, user, body.invitation_id))


@router.post("/farm/invitations/decline", response_model=schemas.ActionResult)
def decline_invitation(
    body: schemas.InvitationAction,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    svc: StaffService = Depends(get_staff_service),
):
    return _ok(svc.decline(db, user, body.invitation_id))


@router.post("/farm/invitations/revoke", response_model=schemas.ActionResult)
def revoke_invitation(
    body: schemas.InvitationAction,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    svc: StaffService = Depends(get_staff_service),
):
    return _ok(svc.revoke(db, user, body.invitation_id))


@router.post("/farm/invitations/process-token", response_model=schemas.ActionResult)
def process_invitation_token(
    body: schemas.InvitationTokenRequest,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    svc: StaffService = Depends(get_staff_service),
):
    return _ok(svc.process_token(db, user, body.invitation_token))


@router.post("/farm/remove-staff", response_model=schemas.ActionResult)
def remove_staff(
    body: schemas.RemoveStaffRequest,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    svc: StaffService = Depends(get_staff_service),
):
    return _ok(svc.remove_staff(db, user, body.staff_uid_to_remove))


@router.post("/farm/update-staff-role", response_model=schemas.ActionResult)
def update_staff_role(
    body: schemas.UpdateStaffRoleRequest,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    svc: StaffService = Depends(get_staff_service),
):
    return _ok(svc.update_role(db, user, body.staff_uid_to_update, body.new_role))
