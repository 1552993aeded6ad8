from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gymhub import audit, events
from gymhub.business.accounts.models import User
from gymhub.business.payments.models import Payment
from gymhub.core.auth import AuthUser, get_current_user
from gymhub.core.config import get_settings
from gymhub.core.database import Base, get_db
from gymhub.main import app
from gymhub.platform.security.context import GYM_OWNER, SUPER_ADMIN


ADMIN_ID = uuid.uuid4()


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def identity() -> dict[str, str]:
    return {"sub": str(ADMIN_ID), "role": SUPER_ADMIN}


@pytest.fixture()
def client(db_session: Session, identity: dict[str, str]) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_current_user() -> AuthUser:
        return AuthUser(sub=identity["sub"], role=identity["role"])

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    audit.audit_entries.clear()
    events.published_events.clear()
    get_settings.cache_clear()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    audit.audit_entries.clear()
    events.published_events.clear()
    get_settings.cache_clear()


def _plan(client: TestClient, **overrides) -> str:
    payload = {
        "name": "Starter",
        "monthly_price": "29.00",
        "yearly_price": "290.00",
        "max_gyms": 1,
        "max_locations": 1,
        "max_members": 2,
        "max_equipment": 5,
    }
    payload.update(overrides)
    response = client.post("/plans", json=payload)
    assert response.status_code == 201
    return response.json()["data"]["id"]


def _client_payload(email: str, **overrides) -> dict:
    payload = {"first_name": "Grace", "last_name": "Hopper", "email": email, "phone_number": "555-0199"}
    payload.update(overrides)
    return payload


def test_create_client_with_plan_and_cash_payment(client: TestClient, db_session: Session) -> None:
    plan_id = _plan(client)

    response = client.post(
        "/clients",
        json=_client_payload("grace@example.com", plan_id=plan_id, billing_model="YEARLY", payment_method="CASH"),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Client created successfully"
    client_data = body["data"]
    assert client_data["role"] == GYM_OWNER
    assert client_data["subscription"]["plan_name"] == "Starter"
    assert client_data["subscription"]["billing_model"] == "YEARLY"
    assert client_data["subscription"]["is_active"] is True

    payment = db_session.scalar(select(Payment))
    assert payment is not None
    assert str(payment.amount) == "290.00"
    assert payment.transaction_id.startswith("CASH-")
    assert audit.audit_entries[-1]["action"] == "client.created"


def test_create_client_rejects_duplicates_and_partial_plan(client: TestClient, db_session: Session) -> None:
    plan_id = _plan(client)
    assert client.post("/clients", json=_client_payload("ada@example.com")).status_code == 201

    duplicate = client.post("/clients", json=_client_payload("ADA@example.com"))
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "CONFLICT"

    partial = client.post("/clients", json=_client_payload("partial@example.com", plan_id=plan_id))
    assert partial.status_code == 400
    assert db_session.scalar(select(User).where(User.email == "partial@example.com")) is None

    bad_email = client.post("/clients", json=_client_payload("not-an-email"))
    assert bad_email.status_code == 400


def test_failed_bank_transfer_leaves_no_client(client: TestClient, db_session: Session) -> None:
    plan_id = _plan(client)

    response = client.post(
        "/clients",
        json=_client_payload("bank@example.com", plan_id=plan_id, billing_model="MONTHLY", payment_method="BANK_TRANSFER"),
    )

    assert response.status_code == 400
    assert "transaction_id" in response.json()["error"]
    assert db_session.scalar(select(User).where(User.email == "bank@example.com")) is None


def test_list_clients_is_admin_only(client: TestClient, identity: dict[str, str]) -> None:
    client.post("/clients", json=_client_payload("linus@example.com", first_name="Linus"))
    client.post("/clients", json=_client_payload("margaret@example.com", first_name="Margaret"))

    everyone = client.post("/clients/search", json={})
    searched = client.post("/clients/search", json={"search": "marg", "page": 1, "limit": 5})

    assert everyone.json()["totalCount"] == 2
    assert [item["first_name"] for item in searched.json()["data"]] == ["Margaret"]

    identity["role"] = GYM_OWNER
    assert client.post("/clients/search", json={}).status_code == 403


def test_owner_runs_members_and_payments_through_the_api(client: TestClient, identity: dict[str, str]) -> None:
    plan_id = _plan(client, max_members=1)
    owner = client.post(
        "/clients", json=_client_payload("owner@example.com", plan_id=plan_id, billing_model="MONTHLY")
    ).json()["data"]
    identity["sub"] = owner["id"]
    identity["role"] = GYM_OWNER

    gym = client.post("/gyms", json={"name": "Harbour"}).json()["data"]
    location = client.post("/locations", json={"gym_id": gym["id"], "name": "Dockside"}).json()["data"]
    member = client.post(
        "/members",
        json={
            "gym_id": gym["id"],
            "location_id": location["id"],
            "first_name": "Nina",
            "last_name": "Lift",
            "email": "nina@example.com",
        },
    )
    assert member.status_code == 201
    member_id = member.json()["data"]["id"]

    over_quota = client.post(
        "/members",
        json={
            "gym_id": gym["id"],
            "location_id": location["id"],
            "first_name": "Otto",
            "last_name": "Lift",
            "email": "otto@example.com",
        },
    )
    assert over_quota.status_code == 409
    assert over_quota.json()["code"] == "LIMIT_EXCEEDED"
    assert over_quota.json()["details"]["location_id"] == location["id"]

    subscription = client.post(
        "/member-subscriptions", json={"member_id": member_id, "price": "40.00", "months": 2}
    )
    assert subscription.status_code == 201
    subscription_id = subscription.json()["data"]["id"]

    payment = client.post(
        "/payments",
        json={
            "subscription_type": "MEMBER",
            "member_subscription_id": subscription_id,
            "amount": "40.00",
            "payment_method": "BANK_TRANSFER",
            "transaction_id": "TX-9",
        },
    )
    assert payment.status_code == 201
    assert payment.json()["message"] == "Payment recorded successfully"

    payments = client.post("/payments/search", json={})
    assert payments.json()["totalCount"] == 1
    assert payments.json()["data"][0]["transaction_id"] == "TX-9"

    members = client.post("/members/search", json={"search": "nina"})
    assert members.json()["data"][0]["user"]["email"] == "nina@example.com"
