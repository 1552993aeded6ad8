from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gymhub import audit, events
from gymhub.core.auth import issue_token
from gymhub.core.config import get_settings
from gymhub.core.database import Base, get_db
from gymhub.core.events import event_bus
from gymhub.main import app
from gymhub.platform.security.context import GYM_OWNER, SUPER_ADMIN


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
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    get_settings.cache_clear()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    get_settings.cache_clear()


def _bearer(role: str, sub: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(sub or str(uuid.uuid4()), role)}"}


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "GymHub API", "environment": "local"}


def test_me_requires_a_valid_token(client: TestClient) -> None:
    missing = client.get("/me")
    assert missing.status_code == 401
    assert missing.json()["code"] == "UNAUTHORIZED"
    assert missing.headers["www-authenticate"] == "Bearer"

    invalid = client.get("/me", headers={"Authorization": "Bearer not-a-token"})
    assert invalid.status_code == 401
    assert invalid.json()["error"] == "Invalid token"

    not_a_uuid = client.get("/me", headers={"Authorization": f"Bearer {issue_token('admin', SUPER_ADMIN)}"})
    assert not_a_uuid.status_code == 401


def test_me_returns_token_claims(client: TestClient) -> None:
    subject = str(uuid.uuid4())

    response = client.get("/me", headers=_bearer(GYM_OWNER, subject))

    assert response.status_code == 200
    assert response.json() == {"sub": subject, "role": GYM_OWNER}


def test_business_routes_require_authentication(client: TestClient) -> None:
    response = client.post("/plans/search", json={})

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


def test_correlation_id_is_echoed_or_generated(client: TestClient) -> None:
    echoed = client.get("/health", headers={"x-correlation-id": "corr-123"})
    generated = client.get("/health")

    assert echoed.headers["x-correlation-id"] == "corr-123"
    uuid.UUID(generated.headers["x-correlation-id"])


def test_error_body_carries_correlation_id(client: TestClient) -> None:
    response = client.post("/plans", json={}, headers={**_bearer(SUPER_ADMIN), "x-correlation-id": "corr-400"})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION"
    assert body["correlation_id"] == "corr-400"
    assert isinstance(body["details"], list)


def test_wrong_method_is_reported(client: TestClient) -> None:
    response = client.get("/gyms", headers=_bearer(SUPER_ADMIN))

    assert response.status_code == 405
    assert response.json()["code"] == "METHOD_NOT_ALLOWED"


def test_unknown_route_is_not_found(client: TestClient) -> None:
    response = client.get("/does-not-exist")

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_metrics_hidden_when_disabled(client: TestClient) -> None:
    response = client.get("/metrics", headers=_bearer(SUPER_ADMIN))

    assert response.status_code == 404


def test_metrics_exposed_to_super_admin_only(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_ENABLED", "true")
    get_settings.cache_clear()
    client.get("/health")

    allowed = client.get("/metrics", headers=_bearer(SUPER_ADMIN))
    denied = client.get("/metrics", headers=_bearer(GYM_OWNER))

    assert allowed.status_code == 200
    assert "http_requests_total" in allowed.text
    assert "plan_limit_exceeded_total" in allowed.text
    assert denied.status_code == 403
    assert denied.json()["code"] == "FORBIDDEN"


def test_unexpected_errors_use_the_error_envelope(db_session: Session) -> None:
    def broken_get_db() -> Generator[Session, None, None]:
        raise RuntimeError("database unavailable")
        yield db_session

    app.dependency_overrides[get_db] = broken_get_db
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.post("/plans/search", json={}, headers=_bearer(SUPER_ADMIN))
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "INTERNAL"
    assert body["error"] == "database unavailable"


def test_me_rejects_unknown_roles(client: TestClient) -> None:
    response = client.get("/me", headers=_bearer("UNKNOWN"))

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token"


def test_lifespan_releases_event_handlers() -> None:
    with TestClient(app):
        assert event_bus._subscribers["system.started"]
        assert event_bus._subscribers["subscription.expired"]

    assert event_bus._subscribers["system.started"] == []
    assert event_bus._subscribers["subscription.expired"] == []


def test_in_process_buffers_are_bounded() -> None:
    assert audit.audit_entries.maxlen == get_settings().audit_buffer_size
    assert events.published_events.maxlen == get_settings().event_buffer_size

    audit.audit_entries.clear()
    for index in range(audit.audit_entries.maxlen + 5):
        audit.record("actor", "plan", str(index), "plan.created", None, None)

    assert len(audit.audit_entries) == audit.audit_entries.maxlen
    assert audit.audit_entries[0]["entity_id"] == "5"
    audit.audit_entries.clear()


def test_audit_trail_is_listed_newest_first_for_super_admin(client: TestClient) -> None:
    audit.audit_entries.clear()
    audit.record("admin", "plan", "p-1", "plan.created", None, {"name": "Gold"}, "corr-1")
    audit.record("admin", "plan", "p-1", "plan.updated", {"name": "Gold"}, {"name": "Platinum"}, "corr-2")
    audit.record("admin", "gym", "g-1", "gym.created", None, None, "corr-3")

    plans = client.get("/audit", params={"entity_type": "plan"}, headers=_bearer(SUPER_ADMIN))
    updated = client.get("/audit", params={"action": "plan.updated"}, headers=_bearer(SUPER_ADMIN))
    paged = client.get("/audit", params={"cursor": 1, "limit": 1}, headers=_bearer(SUPER_ADMIN))
    denied = client.get("/audit", headers=_bearer(GYM_OWNER))
    audit.audit_entries.clear()

    assert plans.status_code == 200
    assert [entry["action"] for entry in plans.json()] == ["plan.updated", "plan.created"]
    assert updated.json()[0]["after"] == {"name": "Platinum"}
    assert [entry["correlation_id"] for entry in paged.json()] == ["corr-2"]
    assert denied.status_code == 403
