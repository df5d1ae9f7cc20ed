# agriassist/routers/billing.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import stripe

from agriassist import models, schemas
from agriassist.billing import BillingService
from agriassist.db import get_db
from agriassist.deps import get_billing_service, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/create-checkout-session", response_model=schemas.CheckoutResult)
def create_checkout_session(
    body: schemas.CheckoutRequest,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    session_id = billing.start_checkout(db, user, body.plan_id)
    return {"success": True, "session_id": session_id}


@router.post("/cancel-subscription", response_model=schemas.ActionResult)
def cancel_subscription(
    user: models.User = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    billing.cancel(user)
    return {"success": True, "message": "Subscription cancellation requested."}


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    payload = await request.body()
    event = billing.parse_event(payload, stripe_signature)
    try:
        billing.handle_event(db, event)
    except (SQLAlchemyError, stripe.StripeError, KeyError, TypeError):
        logger.exception("Error handling webhook event %s", event.get("type"))
        db.rollback()
        return JSONResponse(status_code=500, content={"error": "Webhook handler failed. View logs."})
    return {"received": True}
