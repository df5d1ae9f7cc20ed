# agriassist/deps.py
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from agriassist import crud, models
from agriassist.billing import BillingGateway, BillingService
from agriassist.db import get_db
from agriassist.identity import IdentityProvider
from agriassist.ingest_service import FieldImportService
from agriassist.llm import AdvisorLLM
from agriassist.mailer import Mailer
from agriassist.notifications import NotificationService
from agriassist.staff import StaffService

# ---------- adapters (overridden in tests) ----------

@lru_cache
def get_identity_provider() -> IdentityProvider:
    return IdentityProvider()

@lru_cache
def get_llm() -> AdvisorLLM:
    return AdvisorLLM()

@lru_cache
def get_mailer() -> Mailer:
    return Mailer()

def get_billing_gateway() -> BillingGateway:
    return BillingGateway()

# ---------- services ----------

def get_billing_service(gateway: BillingGateway = Depends(get_billing_gateway)) -> BillingService:
    return BillingService(gateway)

def get_notification_service(mail: Mailer = Depends(get_mailer)) -> NotificationService:
    return NotificationService(mail)

def get_staff_service(
    mail: Mailer = Depends(get_mailer),
    notifications: NotificationService = Depends(get_notification_service),
) -> StaffService:
    return StaffService(mail, notifications)

def get_import_service() -> FieldImportService:
    return FieldImportService()

# ---------- auth ----------

def get_current_claims(
    authorization: Optional[str] = Header(None),
    idp: IdentityProvider = Depends(get_identity_provider),
) -> Dict[str, Any]:
    """Claims of the bearer ID token: {"uid", "email", "name"}."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Unauthorized: No token provided")
    return idp.verify(token.strip())

def get_current_user(
    claims: Dict[str, Any] = Depends(get_current_claims),
    db: Session = Depends(get_db),
) -> models.User:
    user = crud.get_user(db, claims["uid"])
    if user is None:
        raise HTTPException(status_code=404, detail="User not found.")
    return user

def get_farm_user(user: models.User = Depends(get_current_user)) -> models.User:
    if not user.farm_id:
        raise HTTPException(status_code=403, detail="User is not associated with a farm.")
    return user

def get_writer(user: models.User = Depends(get_farm_user)) -> models.User:
    """Farm member allowed to change records (everyone but viewers)."""
    if user.role_on_current_farm == "viewer":
        raise HTTPException(status_code=403, detail="Viewers have read-only access to farm records.")
    return user
