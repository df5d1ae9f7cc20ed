from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from agriassist import crud, models
from agriassist.billing import BillingService
from agriassist.config import settings
from agriassist.db import Base, get_db
from agriassist.deps import (
    get_billing_gateway,
    get_billing_service,
    get_identity_provider,
    get_llm,
    get_mailer,
    get_notification_service,
    get_staff_service,
)
from agriassist.errors import ExternalServiceError, Unauthorized
from agriassist.mailer import EmailMessage, Mailer
from agriassist.main import app
from agriassist.notifications import NotificationService
from agriassist.staff import StaffService

UTC = timezone.utc


class ClockStub:
    """Mutable clock so tests can control invitation expiry and billing timestamps."""

    def __init__(self, initial: datetime | None = None):
        self._now = initial or datetime(2025, 1, 1, tzinfo=UTC)

    def set(self, value: datetime) -> None:
        self._now = value

    def advance(self, **delta_kwargs) -> None:
        self._now += timedelta(**delta_kwargs)

    def today(self):
        return self._now.date()

    def __call__(self) -> datetime:
        return self._now


class FakeIdentity:
    """Bearer token -> claims; any other token is rejected like a bad Firebase token."""

    def __init__(self):
        self.tokens: dict[str, dict[str, Any]] = {}

    def add(self, token: str, uid: str, email: str | None = None, name: str | None = None) -> None:
        self.tokens[token] = {"uid": uid, "email": email, "name": name}

    def verify(self, id_token: str) -> dict[str, Any]:
        if id_token not in self.tokens:
            raise Unauthorized("Unauthorized: Invalid token")
        return self.tokens[id_token]


class FakeMailer(Mailer):
    """Records messages instead of calling Resend."""

    def __init__(self, configured: bool = True):
        super().__init__(
            api_key="re_test" if configured else "",
            from_email="AgriAssist <test@example.com>",
            api_url="http://mail.invalid/emails",
        )
        self.sent: list[EmailMessage] = []
        self.fail = False

    def send(self, message: EmailMessage) -> str:
        if not self.configured:
            raise ExternalServiceError("Email service is not configured.")
        if self.fail:
            raise ExternalServiceError("Failed to send email.")
        self.sent.append(message)
        return f"email_{len(self.sent)}"


class FakeLLM:
    """Returns canned replies; fields without one get '<field> text'."""

    def __init__(self):
        self.replies: dict[type, dict[str, Any]] = {}
        self.calls: list[dict[str, Any]] = []
        self.fail = False

    def generate(self, prompt, output_model, *, image_url=None):
        self.calls.append({"prompt": prompt, "model": output_model, "image_url": image_url})
        if self.fail:
            raise ExternalServiceError("The AI service could not produce an answer. Please try again.")
        data = self.replies.get(output_model) or {
            name: f"{name} text" for name in output_model.model_fields
        }
        return output_model.model_validate(data)

    @property
    def last_prompt(self) -> str:
        return self.calls[-1]["prompt"]


class FakeGateway:
    """Stand-in for the Stripe SDK wrapper; accepts the signature 'valid-sig' only."""

    def __init__(self):
        self.customers: list[dict[str, Any]] = []
        self.sessions: list[dict[str, Any]] = []
        self.cancelled: list[str] = []
        self.subscriptions: dict[str, dict[str, Any]] = {}

    def construct_event(self, payload: bytes, sig_header: str, secret: str) -> dict[str, Any]:
        if sig_header != "valid-sig":
            raise ValueError("No signatures found matching the expected signature for payload")
        return json.loads(payload)

    def retrieve_subscription(self, subscription_id: str) -> dict[str, Any]:
        return self.subscriptions[subscription_id]

    def create_customer(self, *, email, name, uid) -> str:
        self.customers.append({"email": email, "name": name, "uid": uid})
        return f"cus_{uid}"

    def create_checkout_session(self, **kwargs) -> str:
        self.sessions.append(kwargs)
        return f"cs_test_{len(self.sessions)}"

    def cancel_subscription(self, subscription_id: str) -> None:
        self.cancelled.append(subscription_id)


@pytest.fixture
def stripe_prices(monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_PRICE_ID_PRO", "price_pro")
    monkeypatch.setattr(settings, "STRIPE_PRICE_ID_AGRIBUSINESS", "price_agri")
    monkeypatch.setattr(settings, "APP_URL", "https://app.example.com")


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    return TestingSessionLocal


@pytest.fixture
def db_session(session_factory):
    """Fresh in-memory SQLite session per test."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


class ApiHarness:
    def __init__(self, client: TestClient, sessions: Callable[[], Session], clock: ClockStub,
                 identity: FakeIdentity, mailer: FakeMailer, llm: FakeLLM, gateway: FakeGateway):
        self.client = client
        self.sessions = sessions
        self.clock = clock
        self.identity = identity
        self.mailer = mailer
        self.llm = llm
        self.gateway = gateway

    def login(self, uid: str, email: str | None = None, name: str | None = None) -> dict[str, str]:
        token = f"token-{uid}"
        self.identity.add(token, uid, email, name)
        return {"Authorization": f"Bearer {token}"}

    def owner(self, uid: str = "owner1", email: str = "owner@example.com", name: str = "Olive",
              farm_name: str = "Green Acres") -> dict[str, str]:
        """A registered farm owner; returns their auth headers."""
        with self.sessions() as db:
            crud.create_user_with_farm(db, uid=uid, email=email, name=name, farm_name=farm_name)
        return self.login(uid, email, name)

    def member(self, uid: str, farm_id: str, role: str, email: str | None = None,
               name: str = "Sam") -> dict[str, str]:
        """A staff user already on `farm_id` with `role`."""
        email = email or f"{uid}@example.com"
        with self.sessions() as db:
            db.add(models.User(
                uid=uid, email=email, name=name, farm_id=farm_id, farm_name="Green Acres",
                is_farm_owner=False, role_on_current_farm=role, settings=crud.DEFAULT_SETTINGS,
            ))
            farm = db.get(models.Farm, farm_id)
            farm.staff = [*(farm.staff or []), {"uid": uid, "role": role}]
            db.commit()
        return self.login(uid, email, name)


@pytest.fixture
def api(session_factory, stripe_prices, clock, mailer, llm, gateway):
    """FastAPI TestClient wired to an isolated in-memory SQLite DB and fake adapters."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    identity = FakeIdentity()
    tokens = iter(f"tok{i}" for i in range(1, 1000))

    def notification_service():
        return NotificationService(mailer, today=clock.today)

    def staff_service():
        return StaffService(mailer, notification_service(), clock=clock, token_factory=lambda: next(tokens))

    def billing_service():
        return BillingService(gateway, clock=clock, webhook_secret="whsec_test")

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: identity
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_llm] = lambda: llm
    app.dependency_overrides[get_billing_gateway] = lambda: gateway
    app.dependency_overrides[get_billing_service] = billing_service
    app.dependency_overrides[get_notification_service] = notification_service
    app.dependency_overrides[get_staff_service] = staff_service

    with TestClient(app) as client:
        yield ApiHarness(client, session_factory, clock, identity, mailer, llm, gateway)

    app.dependency_overrides.clear()


@pytest.fixture
def clock():
    return ClockStub(datetime(2025, 6, 1, 9, 0, tzinfo=UTC))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def llm():
    return FakeLLM()
