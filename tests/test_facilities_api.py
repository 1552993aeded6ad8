from __future__ import annotations

import uuid
from collections.abc import Generator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gymhub import audit, events
from gymhub.business.accounts.models import User
from gymhub.business.facilities.models import Gym
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


def _owner(session: Session, email: str) -> User:
    user = User(first_name="Gym", last_name="Owner", email=email, role=GYM_OWNER, is_active=True, is_deleted=False)
    session.add(user)
    session.commit()
    return user


def _act_as(identity: dict[str, str], user_id: uuid.UUID, role: str) -> None:
    identity["sub"] = str(user_id)
    identity["role"] = role


def _subscribe(client: TestClient, owner_id: uuid.UUID, max_gyms: int) -> None:
    plan = client.post(
        "/plans",
        json={
            "name": f"Gyms x{max_gyms}",
            "monthly_price": "20.00",
            "yearly_price": "200.00",
            "max_gyms": max_gyms,
            "max_locations": 5,
            "max_members": 5,
            "max_equipment": 5,
        },
    )
    assert plan.status_code == 201
    subscription = client.post(
        "/owner-subscriptions",
        json={"owner_id": str(owner_id), "plan_id": plan.json()["data"]["id"], "billing_model": "MONTHLY"},
    )
    assert subscription.status_code == 201


def test_gym_limit_returns_conflict_with_counts(client: TestClient, db_session: Session, identity: dict[str, str]) -> None:
    owner = _owner(db_session, "limit@example.com")
    _subscribe(client, owner.id, max_gyms=2)
    _act_as(identity, owner.id, GYM_OWNER)

    for name in ("One", "Two"):
        created = client.post("/gyms", json={"name": name})
        assert created.status_code == 201
        assert created.json()["message"] == "Gym created successfully"
        assert created.json()["data"]["owner_id"] == str(owner.id)

    rejected = client.post("/gyms", json={"name": "Three"}, headers={"x-correlation-id": "corr-limit"})

    assert rejected.status_code == 409
    body = rejected.json()
    assert body["code"] == "LIMIT_EXCEEDED"
    assert body["details"] == {"resource_type": "gym", "current": 2, "max": 2}
    assert "Please upgrade your plan" in body["error"]
    assert body["correlation_id"] == "corr-limit"
    assert len(db_session.scalars(select(Gym)).all()) == 2


def test_admin_must_name_the_owner(client: TestClient) -> None:
    response = client.post("/gyms", json={"name": "Orphan"})

    assert response.status_code == 400
    assert response.json()["error"] == "Missing required field: owner_id"


def test_owner_cannot_reassign_or_touch_other_gyms(
    client: TestClient, db_session: Session, identity: dict[str, str]
) -> None:
    owner = _owner(db_session, "mine@example.com")
    other = _owner(db_session, "theirs@example.com")
    mine = client.post("/gyms", json={"name": "Mine", "owner_id": str(owner.id)}).json()["data"]
    theirs = client.post("/gyms", json={"name": "Theirs", "owner_id": str(other.id)}).json()["data"]
    _act_as(identity, owner.id, GYM_OWNER)

    reassign = client.post(f"/gyms/{mine['id']}/update", json={"owner_id": str(other.id)})
    assert reassign.status_code == 403
    assert reassign.json()["error"] == "You cannot change the owner of a gym"

    foreign = client.post(f"/gyms/{theirs['id']}/delete")
    assert foreign.status_code == 403
    assert foreign.json()["code"] == "FORBIDDEN"
    assert any(entry["action"] == "ownership.denied" for entry in audit.audit_entries)

    listed = client.post("/gyms/search", json={})
    assert listed.status_code == 200
    assert [gym["id"] for gym in listed.json()["data"]] == [mine["id"]]


def test_soft_deleted_gym_disappears_from_reads(client: TestClient, db_session: Session) -> None:
    owner = _owner(db_session, "soft@example.com")
    gym = client.post("/gyms", json={"name": "Temporary", "owner_id": str(owner.id)}).json()["data"]

    deleted = client.post(f"/gyms/{gym['id']}/delete")
    assert deleted.status_code == 200
    assert deleted.json()["data"]["is_deleted"] is True

    listed = client.post("/gyms/search", json={})
    assert listed.json()["totalCount"] == 0
    again = client.post(f"/gyms/{gym['id']}/delete")
    assert again.status_code == 404
    stored = db_session.get(Gym, uuid.UUID(gym["id"]))
    assert stored is not None
    assert stored.is_deleted is True


def test_location_gym_move_is_admin_only(client: TestClient, db_session: Session, identity: dict[str, str]) -> None:
    owner = _owner(db_session, "move@example.com")
    first = client.post("/gyms", json={"name": "First", "owner_id": str(owner.id)}).json()["data"]
    second = client.post("/gyms", json={"name": "Second", "owner_id": str(owner.id)}).json()["data"]
    location = client.post("/locations", json={"gym_id": first["id"], "name": "Main"}).json()["data"]

    _act_as(identity, owner.id, GYM_OWNER)
    denied = client.post(f"/locations/{location['id']}/update", json={"gym_id": second["id"]})
    assert denied.status_code == 403

    renamed = client.post(f"/locations/{location['id']}/update", json={"name": "Main Hall", "city": "Austin"})
    assert renamed.status_code == 200
    assert renamed.json()["data"]["name"] == "Main Hall"

    _act_as(identity, ADMIN_ID, SUPER_ADMIN)
    moved = client.post(f"/locations/{location['id']}/update", json={"gym_id": second["id"]})
    assert moved.status_code == 200
    assert moved.json()["data"]["gym_id"] == second["id"]


def test_equipment_location_must_belong_to_gym(client: TestClient, db_session: Session) -> None:
    owner = _owner(db_session, "kit@example.com")
    first = client.post("/gyms", json={"name": "First", "owner_id": str(owner.id)}).json()["data"]
    second = client.post("/gyms", json={"name": "Second", "owner_id": str(owner.id)}).json()["data"]
    location = client.post("/locations", json={"gym_id": second["id"], "name": "Elsewhere"}).json()["data"]

    response = client.post(
        "/equipment",
        json={"gym_id": first["id"], "location_id": location["id"], "name": "Rower", "type": "cardio"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION"


def test_equipment_crud_and_search(client: TestClient, db_session: Session) -> None:
    owner = _owner(db_session, "crud@example.com")
    gym = client.post("/gyms", json={"name": "Crud", "owner_id": str(owner.id)}).json()["data"]
    created = client.post(
        "/equipment",
        json={
            "gym_id": gym["id"],
            "name": "Treadmill",
            "type": "cardio",
            "brand": "Stride",
            "quantity": 3,
            "purchase_cost": "1999.99",
        },
    )
    assert created.status_code == 201
    equipment_id = created.json()["data"]["id"]
    assert Decimal(created.json()["data"]["purchase_cost"]) == Decimal("1999.99")

    updated = client.post(f"/equipment/{equipment_id}/update", json={"status": "MAINTENANCE"})
    assert updated.json()["data"]["status"] == "MAINTENANCE"

    found = client.post("/equipment/search", json={"search": "stride"})
    assert found.json()["totalCount"] == 1
    missing = client.post("/equipment/search", json={"search": "rower"})
    assert missing.json()["totalCount"] == 0

    client.post(f"/equipment/{equipment_id}/delete")
    assert client.post("/equipment/search", json={}).json()["data"] == []


def test_member_role_is_forbidden(client: TestClient, identity: dict[str, str]) -> None:
    _act_as(identity, uuid.uuid4(), "MEMBER")

    response = client.post("/gyms/search", json={})

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"
