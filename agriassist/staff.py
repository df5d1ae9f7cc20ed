# agriassist/staff.py
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from agriassist import crud, mailer, models
from agriassist.config import settings
from agriassist.errors import Conflict, Forbidden, InvalidRequest, NotFound
from agriassist.notifications import NotificationService
from agriassist.utils import to_aware_utc

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
TokenFactory = Callable[[], str]

STAFF_ROLES = ("admin", "editor", "viewer")


# ---------- tiny helpers ----------

def _staff_list(farm: models.Farm) -> list[dict]:
    return [dict(m) for m in (farm.staff or [])]


def _find_staff(farm: models.Farm, uid: str) -> Optional[dict]:
    return next((m for m in _staff_list(farm) if m.get("uid") == uid), None)


def _is_invitee(inv: models.Invitation, uid: str, email: Optional[str]) -> bool:
    if inv.invited_user_uid:
        return inv.invited_user_uid == uid
    return bool(email) and inv.invited_email == email.lower()


class StaffService:
    """Farm membership: invitations, acceptance, removal and role changes."""

    def __init__(
        self,
        mail: mailer.Mailer,
        notifications: NotificationService,
        *,
        clock: Clock | None = None,
        token_factory: TokenFactory | None = None,
    ):
        self._mail = mail
        self._notifications = notifications
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._token = token_factory or (lambda: secrets.token_urlsafe(32))

    def _owned_farm(self, db: Session, user: models.User) -> models.Farm:
        farm = crud.get_farm(db, user.farm_id)
        if farm is None:
            raise NotFound("Farm not found.")
        if not user.is_farm_owner or farm.owner_id != user.uid:
            raise Forbidden("Unauthorized: You are not the owner of this farm.")
        return farm

    # ---------- invitations ----------

    def invite(self, db: Session, inviter: models.User, invited_email: str,
               invited_role: str = "viewer") -> models.Invitation:
        farm = self._owned_farm(db, inviter)
        email = invited_email.strip().lower()
        if inviter.email and email == inviter.email.lower():
            raise InvalidRequest("You cannot invite yourself to your own farm.")

        invitee = crud.get_user_by_email(db, email)
        if invitee is None:
            raise NotFound(f"User with email {email} not found. They must have an AgriAssist account.")
        if invitee.farm_id == farm.farm_id:
            raise InvalidRequest(f"{email} is already a member of this farm.")
        if invitee.is_farm_owner:
            raise InvalidRequest(f"{email} is an owner of another farm and cannot be invited as staff.")

        pending = (
            db.query(models.Invitation)
            .filter(
                models.Invitation.inviter_farm_id == farm.farm_id,
                models.Invitation.invited_email == email,
                models.Invitation.status == "pending",
            )
            .first()
        )
        if pending is not None:
            raise Conflict(f"An invitation for {email} is already pending.")

        now = self._clock()
        inv = models.Invitation(
            inviter_farm_id=farm.farm_id,
            inviter_uid=inviter.uid,
            farm_name=farm.farm_name,
            invited_email=email,
            invited_user_uid=invitee.uid,
            invited_role=invited_role,
            status="pending",
            invitation_token=self._token(),
            token_expires_at=now + timedelta(days=settings.INVITATION_TTL_DAYS),
            created_at=now,
        )
        db.add(inv)
        db.commit()
        db.refresh(inv)
        logger.info("Invitation %s created for %s on farm %s", inv.id, email, farm.farm_id)

        self._mail.send_best_effort(
            mailer.staff_invitation_email(
                email,
                farm_name=farm.farm_name or "a farm",
                inviter_name=inviter.name or inviter.email or "The farm owner",
                role=invited_role,
                token=inv.invitation_token,
            )
        )
        return inv

    def _get_invitation(self, db: Session, invitation_id: str) -> models.Invitation:
        inv = db.get(models.Invitation, invitation_id)
        if inv is None:
            raise NotFound("Invitation not found.")
        return inv

    @staticmethod
    def _require_pending(inv: models.Invitation) -> None:
        if inv.status != "pending":
            raise InvalidRequest(f"Invitation already {inv.status}.")

    def _farm_or_flag(self, db: Session, inv: models.Invitation) -> models.Farm:
        farm = crud.get_farm(db, inv.inviter_farm_id)
        if farm is None:
            inv.status = "error_farm_not_found"
            db.commit()
            raise NotFound("Farm associated with this invitation no longer exists.")
        return farm

    def _join(self, db: Session, inv: models.Invitation, user: models.User, farm: models.Farm) -> str:
        """Invitation accepted + user moved + staff list extended, one commit."""
        role = inv.invited_role or "viewer"
        now = self._clock()
        inv.status = "accepted"
        inv.accepted_at = now
        inv.accepted_by_uid = user.uid
        if not inv.invited_user_uid:
            inv.invited_user_uid = user.uid

        user.farm_id = farm.farm_id
        user.farm_name = farm.farm_name
        user.is_farm_owner = False
        user.role_on_current_farm = role

        staff = [m for m in _staff_list(farm) if m.get("uid") != user.uid]
        staff.append({"uid": user.uid, "role": role})
        farm.staff = staff
        db.commit()
        logger.info("User %s joined farm %s as %s", user.uid, farm.farm_id, role)

        self._notifications.create(
            db,
            user_id=farm.owner_id,
            farm_id=farm.farm_id,
            type="staff_invite_accepted",
            title="Invitation accepted",
            message=f"{user.name or user.email} joined {farm.farm_name or 'your farm'} as a {role}.",
            link="/profile",
            triggered_by=user.uid,
        )
        return role

    def accept(self, db: Session, user: models.User, invitation_id: str) -> str:
        inv = self._get_invitation(db, invitation_id)
        if inv.invited_user_uid != user.uid:
            raise Forbidden("Unauthorized: This invitation is not for you.")
        self._require_pending(inv)
        farm = self._farm_or_flag(db, inv)
        self._join(db, inv, user, farm)
        return f"Invitation to farm {farm.farm_name} accepted."

    def decline(self, db: Session, user: models.User, invitation_id: str) -> str:
        inv = self._get_invitation(db, invitation_id)
        if not _is_invitee(inv, user.uid, user.email):
            raise Forbidden("Unauthorized: This invitation is not for you.")
        self._require_pending(inv)
        inv.status = "declined"
        inv.declined_at = self._clock()
        db.commit()
        return f"Invitation to farm {inv.farm_name} declined."

    def revoke(self, db: Session, user: models.User, invitation_id: str) -> str:
        inv = self._get_invitation(db, invitation_id)
        farm = crud.get_farm(db, inv.inviter_farm_id)
        if farm is None or farm.owner_id != user.uid:
            raise Forbidden("Unauthorized: Only the farm owner can revoke this invitation.")
        self._require_pending(inv)
        inv.status = "revoked"
        inv.revoked_by = user.uid
        inv.revoked_at = self._clock()
        db.commit()
        return f"Invitation for {inv.invited_email} revoked."

    def process_token(self, db: Session, user: models.User, token: str) -> str:
        inv = (
            db.query(models.Invitation)
            .filter(models.Invitation.invitation_token == token, models.Invitation.status == "pending")
            .first()
        )
        if inv is None:
            raise NotFound("Invitation not found, already processed, or invalid token.")
        if inv.token_expires_at and to_aware_utc(inv.token_expires_at) < self._clock():
            inv.status = "expired"
            db.commit()
            raise InvalidRequest("Invitation has expired.")
        if not _is_invitee(inv, user.uid, user.email):
            raise Forbidden("This invitation is intended for a different user.")

        farm = self._farm_or_flag(db, inv)
        if user.farm_id == inv.inviter_farm_id:
            inv.status = "accepted"
            inv.accepted_at = self._clock()
            inv.accepted_by_uid = user.uid
            db.commit()
            return f"You are already a member of {inv.farm_name}."
        if user.is_farm_owner:
            raise InvalidRequest(
                "You are currently an owner of another farm. You cannot join a different farm "
                "as staff without addressing your current farm ownership."
            )
        role = self._join(db, inv, user, farm)
        return f'Invitation to join farm "{inv.farm_name}" as a {role} accepted successfully!'

    def sent_by_farm(self, db: Session, user: models.User) -> list[models.Invitation]:
        self._owned_farm(db, user)
        return (
            db.query(models.Invitation)
            .filter(models.Invitation.inviter_farm_id == user.farm_id)
            .order_by(models.Invitation.created_at.desc())
            .all()
        )

    def pending_for(self, db: Session, user: models.User) -> list[models.Invitation]:
        q = db.query(models.Invitation).filter(models.Invitation.status == "pending")
        if user.email:
            q = q.filter(
                (models.Invitation.invited_user_uid == user.uid)
                | (models.Invitation.invited_email == user.email.lower())
            )
        else:
            q = q.filter(models.Invitation.invited_user_uid == user.uid)
        return q.order_by(models.Invitation.created_at.desc()).all()

    # ---------- membership ----------

    def remove_staff(self, db: Session, owner: models.User, staff_uid: str) -> str:
        if not owner.is_farm_owner or not owner.farm_id:
            raise Forbidden("Unauthorized: Requester is not a farm owner or not associated with a farm.")
        if staff_uid == owner.uid:
            raise InvalidRequest("Owner cannot remove themselves as staff using this method.")
        farm = self._owned_farm(db, owner)
        if _find_staff(farm, staff_uid) is None:
            raise InvalidRequest("This user is not a staff member of this farm.")

        farm.staff = [m for m in _staff_list(farm) if m.get("uid") != staff_uid]

        member = crud.get_user(db, staff_uid)
        display_name = (member.name if member else None) or "User"
        if member is not None:
            # reuses the personal farm when one already exists
            crud.new_owner_farm(db, member, f"{display_name}'s Personal Farm")
        db.commit()
        logger.info("User %s removed from farm %s", staff_uid, farm.farm_id)
        return f"{display_name} has been removed from your farm and assigned to their own personal farm."

    def update_role(self, db: Session, requester: models.User, staff_uid: str, new_role: str) -> str:
        if new_role not in STAFF_ROLES:
            raise InvalidRequest("Invalid role provided.")
        if not requester.farm_id:
            raise Forbidden("Requester not associated with a farm.")
        farm = crud.get_farm(db, requester.farm_id)
        if farm is None:
            raise NotFound("Farm not found.")

        is_owner = requester.is_farm_owner and farm.owner_id == requester.uid
        if not is_owner and requester.role_on_current_farm != "admin":
            raise Forbidden("Unauthorized: Only owners or admins can update staff roles.")
        if farm.owner_id == staff_uid:
            raise InvalidRequest("Cannot change the role of the farm owner.")

        target = _find_staff(farm, staff_uid)
        if not is_owner and target is not None and target.get("role") == "admin":
            raise Forbidden("Admins cannot modify other admins roles.")
        if target is None:
            raise NotFound("Staff member not found on this farm.")

        farm.staff = [
            {**m, "role": new_role} if m.get("uid") == staff_uid else m
            for m in _staff_list(farm)
        ]
        member = crud.get_user(db, staff_uid)
        if member is not None:
            member.role_on_current_farm = new_role
        db.commit()
        return f"Staff member {staff_uid}'s role updated to {new_role}."
