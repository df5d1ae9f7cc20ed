# agriassist/billing.py
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import stripe
from sqlalchemy.orm import Session

from agriassist import crud, models
from agriassist.config import settings
from agriassist.errors import ExternalServiceError, InvalidRequest

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

PAID_PLANS = ("pro", "agribusiness")

RELEVANT_EVENTS = {
    "checkout.session.completed",
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
    "invoice.paid",
    "invoice.payment_failed",
}


class BillingGateway:
    """Thin Stripe SDK wrapper; everything it returns is plain dicts/strings."""

    def __init__(self, api_key: Optional[str] = None):
        stripe.api_key = api_key or settings.STRIPE_SECRET_KEY

    def construct_event(self, payload: bytes, sig_header: str, secret: str) -> Dict[str, Any]:
        # raises ValueError / stripe.SignatureVerificationError
        stripe.Webhook.construct_event(payload, sig_header, secret)
        return json.loads(payload)

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return stripe.Subscription.retrieve(subscription_id).to_dict()

    def create_customer(self, *, email: Optional[str], name: Optional[str], uid: str) -> str:
        customer = stripe.Customer.create(email=email, name=name, metadata={"firebaseUID": uid})
        return customer.id

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        uid: str,
        plan_id: str,
        success_url: str,
        cancel_url: str,
    ) -> str:
        session = stripe.checkout.Session.create(
            payment_method_types=["card"],
            customer=customer_id,
            line_items=[{"price": price_id, "quantity": 1}],
            mode="subscription",
            allow_promotion_codes=True,
            subscription_data={"metadata": {"firebaseUID": uid, "planId": plan_id}},
            metadata={"firebaseUID": uid, "planId": plan_id},
            client_reference_id=uid,
            success_url=success_url,
            cancel_url=cancel_url,
        )
        return session.id

    def cancel_subscription(self, subscription_id: str) -> None:
        stripe.Subscription.cancel(subscription_id)


# ---------- helpers ----------

def _meta(obj: Optional[Dict[str, Any]], key: str) -> Optional[str]:
    return ((obj or {}).get("metadata") or {}).get(key) or None


def _period_end(sub: Dict[str, Any]) -> Optional[datetime]:
    """current_period_end lives on the subscription or, on newer API versions, on its items."""
    ts = sub.get("current_period_end")
    if ts is None:
        items = (sub.get("items") or {}).get("data") or []
        ts = items[0].get("current_period_end") if items else None
    return datetime.fromtimestamp(ts, tz=timezone.utc) if ts else None


class BillingService:
    """Checkout, cancellation and the webhook-to-user mapping."""

    def __init__(self, gateway: BillingGateway, *, clock: Clock | None = None,
                 webhook_secret: Optional[str] = None):
        self._gateway = gateway
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._webhook_secret = settings.STRIPE_WEBHOOK_SECRET if webhook_secret is None else webhook_secret

    @staticmethod
    def price_id_for(plan_id: str) -> str:
        if plan_id not in PAID_PLANS:
            raise InvalidRequest("Invalid paid plan ID for Stripe session.")
        price = {
            "pro": settings.STRIPE_PRICE_ID_PRO,
            "agribusiness": settings.STRIPE_PRICE_ID_AGRIBUSINESS,
        }[plan_id]
        if not price:
            logger.error('Stripe Price ID for plan "%s" is not configured.', plan_id)
            raise ExternalServiceError("Pricing for this plan is not configured.")
        return price

    @staticmethod
    def plan_from_price(price_id: Optional[str]) -> str:
        if price_id and price_id == settings.STRIPE_PRICE_ID_PRO:
            return "pro"
        if price_id and price_id == settings.STRIPE_PRICE_ID_AGRIBUSINESS:
            return "agribusiness"
        return "free"

    # ---------- checkout / cancel ----------

    def start_checkout(self, db: Session, user: models.User, plan_id: Optional[str], *,
                       cancel_path: str = "/pricing") -> str:
        if plan_id not in PAID_PLANS:
            raise InvalidRequest("Invalid plan ID provided.")
        price_id = self.price_id_for(plan_id)
        try:
            if not user.stripe_customer_id:
                user.stripe_customer_id = self._gateway.create_customer(
                    email=user.email, name=user.name, uid=user.uid
                )
                db.commit()
            base = settings.app_url()
            return self._gateway.create_checkout_session(
                customer_id=user.stripe_customer_id,
                price_id=price_id,
                uid=user.uid,
                plan_id=plan_id,
                success_url=f"{base}/dashboard?payment_success=true&session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{base}{cancel_path}?payment_cancelled=true",
            )
        except stripe.StripeError as e:
            logger.error("Stripe checkout failed for %s: %s", user.uid, e)
            raise ExternalServiceError("Could not start checkout with the payment processor.") from e

    def cancel(self, user: models.User) -> None:
        if not user.stripe_subscription_id:
            raise InvalidRequest("No active subscription to cancel.")
        try:
            self._gateway.cancel_subscription(user.stripe_subscription_id)
        except stripe.StripeError as e:
            logger.error("Stripe cancel failed for %s: %s", user.uid, e)
            raise ExternalServiceError("Could not cancel the subscription.") from e
        logger.info("Cancellation requested for subscription %s (user %s)", user.stripe_subscription_id, user.uid)

    # ---------- webhook ----------

    def parse_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        if not sig_header or not self._webhook_secret:
            logger.error("Webhook Error: Missing signature or webhook secret.")
            raise InvalidRequest("Webhook secret not configured.")
        try:
            return self._gateway.construct_event(payload, sig_header, self._webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.error("Webhook Error: %s", e)
            raise InvalidRequest(f"Webhook error: {e}") from e

    def handle_event(self, db: Session, event: Dict[str, Any]) -> str:
        """Apply one verified event to the user it belongs to. Returns a short outcome label."""
        etype = event.get("type")
        if etype not in RELEVANT_EVENTS:
            logger.info("Webhook event %s ignored", etype)
            return "ignored"

        obj = (event.get("data") or {}).get("object") or {}
        handler = {
            "checkout.session.completed": self._checkout_completed,
            "customer.subscription.created": self._subscription_created,
            "customer.subscription.updated": self._subscription_updated,
            "customer.subscription.deleted": self._subscription_deleted,
            "invoice.paid": self._invoice_paid,
            "invoice.payment_failed": self._invoice_payment_failed,
        }[etype]
        outcome = handler(db, obj)
        logger.info("Webhook event %s -> %s", etype, outcome)
        return outcome

    def _user(self, db: Session, uid: Optional[str], source: str, ref: Optional[str]) -> Optional[models.User]:
        if not uid:
            logger.error("Webhook Error: firebaseUID not found in %s metadata (%s)", source, ref)
            return None
        user = crud.get_user(db, uid)
        if user is None:
            logger.error("Webhook Error: user %s from %s not found", uid, source)
        return user

    def _checkout_completed(self, db: Session, session: Dict[str, Any]) -> str:
        if session.get("mode") != "subscription" or not session.get("subscription") or not session.get("customer"):
            return "skipped"
        sub = self._gateway.retrieve_subscription(session["subscription"])
        uid = _meta(session, "firebaseUID") or _meta(sub, "firebaseUID") or session.get("client_reference_id")
        plan_id = _meta(session, "planId") or _meta(sub, "planId")
        if not plan_id:
            logger.error("Webhook Error: Plan ID not found in session metadata (%s)", session.get("id"))
            return "skipped"
        user = self._user(db, uid, "checkout.session", session.get("id"))
        if user is None:
            return "skipped"

        user.stripe_customer_id = session["customer"]
        user.stripe_subscription_id = sub.get("id") or session["subscription"]
        user.selected_plan_id = plan_id
        user.subscription_status = "active"
        user.subscription_current_period_end = _period_end(sub) or self._clock()
        if not user.farm_id:
            farm_name = user.farm_name or f"{user.name or 'My'}'s Farm"
            crud.new_owner_farm(db, user, farm_name)
            user.onboarding_completed = True
        db.commit()
        return "updated"

    def _subscription_created(self, db: Session, sub: Dict[str, Any]) -> str:
        plan_id = _meta(sub, "planId")
        user = self._user(db, _meta(sub, "firebaseUID"), "customer.subscription.created", sub.get("id"))
        if user is None or not plan_id:
            return "skipped"
        user.stripe_subscription_id = sub.get("id")
        user.stripe_customer_id = sub.get("customer")
        user.selected_plan_id = plan_id
        user.subscription_status = "active"
        user.subscription_current_period_end = _period_end(sub) or self._clock()
        db.commit()
        return "updated"

    def _subscription_updated(self, db: Session, sub: Dict[str, Any]) -> str:
        user = self._user(db, _meta(sub, "firebaseUID"), "customer.subscription.updated", sub.get("id"))
        if user is None:
            return "skipped"
        items = (sub.get("items") or {}).get("data") or []
        price_id = ((items[0].get("price") or {}).get("id")) if items else None
        user.selected_plan_id = _meta(sub, "planId") or self.plan_from_price(price_id)
        user.subscription_status = sub.get("status") or user.subscription_status
        user.stripe_subscription_id = sub.get("id")
        period_end = _period_end(sub)
        if period_end:
            user.subscription_current_period_end = period_end
        db.commit()
        return "updated"

    def _subscription_deleted(self, db: Session, sub: Dict[str, Any]) -> str:
        user = self._user(db, _meta(sub, "firebaseUID"), "customer.subscription.deleted", sub.get("id"))
        if user is None:
            return "skipped"
        user.selected_plan_id = "free"
        user.subscription_status = "cancelled"
        db.commit()
        return "updated"

    def _invoice_status(self, db: Session, invoice: Dict[str, Any], status: str, source: str) -> str:
        subscription_id = invoice.get("subscription")
        if not subscription_id:
            return "skipped"
        sub = self._gateway.retrieve_subscription(subscription_id)
        user = self._user(db, _meta(sub, "firebaseUID"), source, invoice.get("id"))
        if user is None:
            return "skipped"
        user.subscription_status = status
        db.commit()
        return "updated"

    def _invoice_paid(self, db: Session, invoice: Dict[str, Any]) -> str:
        return self._invoice_status(db, invoice, "active", "invoice.paid")

    def _invoice_payment_failed(self, db: Session, invoice: Dict[str, Any]) -> str:
        return self._invoice_status(db, invoice, "past_due", "invoice.payment_failed")
