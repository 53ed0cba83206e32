import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["WAHA_BASE_URL"] = ""

import json
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from escalafin.infrastructure.database import Base, SessionLocal, engine
from escalafin.domain.models import registry  # noqa: F401
from escalafin.domain.enums import LoanStatus, TriggerType, UserRole
from escalafin.domain.models.chatbot_rule import ChatbotRule
from escalafin.domain.models.client import Client
from escalafin.domain.models.loan import AmortizationEntry, Loan, Payment
from escalafin.domain.models.user import User
from escalafin.domain.models.waha_config import WahaConfig
from escalafin.domain.models.whatsapp_message import WhatsAppMessage
from escalafin.infrastructure.repositories.whatsapp_message_repository import SQLAlchemyWhatsAppMessageRepository
from escalafin.infrastructure.waha_config import StaticWahaConfigLoader, WahaSession
from escalafin.application.services.whatsapp_gateway import WhatsAppGateway

WAHA_URL = "http://waha.test"
WAHA_SESSION = WahaSession(session_id="default", base_url=WAHA_URL, api_key="waha-key")


class FakeWaha:
    """Records WAHA calls and answers them through an httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self.fail_chat_ids = set()
        self.status_code = 200
        self.response_body = None
        self.sessions = [{"name": "default", "status": "WORKING"}]
        self._counter = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == "/api/sessions":
            return httpx.Response(200, json=self.sessions)

        payload = self.json(len(self.requests) - 1)
        if payload.get("chatId") in self.fail_chat_ids:
            return httpx.Response(500, text="session not ready")
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="provider error")
        if self.response_body is not None:
            return httpx.Response(200, json=self.response_body)

        self._counter += 1
        return httpx.Response(200, json={"id": {"_serialized": f"true_{payload.get('chatId')}_MSG{self._counter}"}})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def json(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content or b"{}")

    @property
    def paths(self):
        return [r.url.path for r in self.requests]


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def waha():
    return FakeWaha()


@pytest.fixture
def gateway(db, waha):
    return WhatsAppGateway(
        SQLAlchemyWhatsAppMessageRepository(db, WhatsAppMessage),
        StaticWahaConfigLoader(WAHA_SESSION),
        transport=waha.transport,
    )


# -- factories -------------------------------------------------------------

def make_user(db, email="asesor@escalafin.com", role=UserRole.ADVISOR, name="Laura Asesora"):
    user = User(name=name, email=email, password_hash="not-a-real-hash", role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_client(db, phone="4421234567", first_name="Ana", last_name="López", advisor=None, **flags):
    client = Client(
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        advisor_id=advisor.id if advisor else None,
        **flags,
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


def make_loan(
    db,
    client,
    loan_number="PRE-0001",
    status=LoanStatus.ACTIVE,
    principal="25000.00",
    balance="12500.00",
    monthly="1250.50",
    term=24,
):
    loan = Loan(
        client_id=client.id,
        loan_number=loan_number,
        status=status,
        principal_amount=Decimal(principal),
        balance_remaining=Decimal(balance),
        monthly_payment=Decimal(monthly),
        term_months=term,
    )
    db.add(loan)
    db.commit()
    db.refresh(loan)
    return loan


def make_entry(db, loan, payment_date, amount="1250.50", number=1, is_paid=False):
    entry = AmortizationEntry(
        loan_id=loan.id,
        payment_number=number,
        payment_date=payment_date,
        total_payment=Decimal(amount),
        is_paid=is_paid,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def make_payment(db, loan, amount="1500.00", paid_at=None):
    payment = Payment(
        loan_id=loan.id,
        amount=Decimal(amount),
        payment_date=paid_at or datetime(2025, 3, 5, 20, 30, tzinfo=timezone.utc),
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def make_rule(
    db,
    trigger,
    response,
    priority=0,
    trigger_type=TriggerType.KEYWORD,
    conditions=None,
    actions=None,
    is_active=True,
    name=None,
):
    rule = ChatbotRule(
        name=name or f"rule {trigger}",
        trigger=trigger,
        response=response,
        priority=priority,
        trigger_type=trigger_type,
        conditions=conditions,
        actions=actions,
        is_active=is_active,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def make_waha_config(db, base_url=WAHA_URL, session_id="default", api_key="waha-key"):
    config = WahaConfig(session_id=session_id, base_url=base_url, api_key=api_key, is_active=True)
    db.add(config)
    db.commit()
    db.refresh(config)
    return config



@pytest.fixture
def api(db, waha):
    """TestClient bound to the test session and the fake WAHA transport; lifespan is not run."""
    from fastapi.testclient import TestClient

    from escalafin.main import app
    from escalafin.infrastructure.database import get_db
    from escalafin.interfaces.deps import get_waha_transport

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_waha_transport] = lambda: waha.transport
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    from escalafin.application.services.auth_service import issue_token

    token = issue_token(user)
    return {"Authorization": f"Bearer {token}"}
