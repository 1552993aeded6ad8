from __future__ import annotations

import uuid
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gymhub import audit, events
from gymhub.business.accounts.models import User
from gymhub.business.facilities.schemas import GymCreate, LocationCreate
from gymhub.business.facilities.service import GymService, LocationService
from gymhub.business.members.models import Member, MemberSubscription
from gymhub.business.members.schemas import (
    MemberCreate,
    MemberListQuery,
    MemberSubscriptionCreate,
    MemberSubscriptionListQuery,
)
from gymhub.business.members.service import MemberService, MemberSubscriptionService
from gymhub.business.payments.models import Payment
from gymhub.business.plans.schemas import PlanCreate
from gymhub.business.plans.service import PlanService
from gymhub.business.subscriptions.periods import add_months
from gymhub.business.subscriptions.schemas import OwnerSubscriptionCreate
from gymhub.business.subscriptions.service import OwnerSubscriptionService
from gymhub.core.database import Base
from gymhub.platform.errors import AuthorizationError, ConflictError, LimitExceededError, ValidationError
from gymhub.platform.security.context import GYM_OWNER, MEMBER, SUPER_ADMIN, AuthContext


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


@pytest.fixture(autouse=True)
def reset_globals() -> Generator[None, None, None]:
    audit.audit_entries.clear()
    events.published_events.clear()
    yield
    audit.audit_entries.clear()
    events.published_events.clear()


@pytest.fixture()
def owner(db_session: Session) -> User:
    user = User(first_name="Gwen", last_name="Owner", email="gwen@example.com", role=GYM_OWNER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def site(db_session: Session, owner: User) -> tuple[uuid.UUID, uuid.UUID]:
    ctx = AuthContext(user_id=owner.id, role=GYM_OWNER)
    gym = GymService().create_gym(db_session, ctx, GymCreate(name="Downtown"))
    location = LocationService().create_location(db_session, ctx, LocationCreate(gym_id=gym.id, name="Main floor"))
    return gym.id, location.id


def _ctx(owner: User) -> AuthContext:
    return AuthContext(user_id=owner.id, role=GYM_OWNER, correlation_id="corr-members")


def _member_payload(site: tuple[uuid.UUID, uuid.UUID], email: str | None, **overrides: object) -> MemberCreate:
    gym_id, location_id = site
    values: dict[str, object] = {
        "gym_id": gym_id,
        "location_id": location_id,
        "first_name": "Max",
        "last_name": "Member",
        "email": email,
        "phone_number": "555-0101",
    }
    values.update(overrides)
    return MemberCreate(**values)


def test_create_member_creates_user_and_member(db_session: Session, owner: User, site) -> None:
    created = MemberService().create_member(db_session, _ctx(owner), _member_payload(site, "max@example.com"))

    assert created.gym_id == site[0]
    assert created.location_id == site[1]
    assert created.user is not None
    assert created.user.role == MEMBER
    assert created.user.email == "max@example.com"
    assert audit.audit_entries[-1]["action"] == "member.created"


def test_new_member_needs_unique_email(db_session: Session, owner: User, site) -> None:
    service = MemberService()

    with pytest.raises(ValidationError):
        service.create_member(db_session, _ctx(owner), _member_payload(site, None))

    service.create_member(db_session, _ctx(owner), _member_payload(site, "dup@example.com"))
    with pytest.raises(ConflictError):
        service.create_member(db_session, _ctx(owner), _member_payload(site, "DUP@example.com"))

    assert len(db_session.scalars(select(User).where(User.role == MEMBER)).all()) == 1


def test_existing_user_can_join_only_once(db_session: Session, owner: User, site) -> None:
    user = User(first_name="Existing", last_name="Person", email="existing@example.com", role=MEMBER)
    db_session.add(user)
    db_session.commit()
    service = MemberService()

    joined = service.create_member(db_session, _ctx(owner), _member_payload(site, None, user_id=user.id))
    assert joined.user_id == user.id

    with pytest.raises(ConflictError):
        service.create_member(db_session, _ctx(owner), _member_payload(site, None, user_id=user.id))


def test_member_quota_is_enforced_per_location(db_session: Session, owner: User, site) -> None:
    admin = AuthContext(user_id=uuid.uuid4(), role=SUPER_ADMIN)
    plan = PlanService().create_plan(
        db_session,
        admin,
        PlanCreate(
            name="Tiny",
            monthly_price=Decimal("5.00"),
            yearly_price=Decimal("50.00"),
            max_gyms=1,
            max_locations=2,
            max_members=1,
            max_equipment=1,
        ),
    )
    OwnerSubscriptionService().create_subscription(
        db_session, admin, OwnerSubscriptionCreate(owner_id=owner.id, plan_id=plan.id, billing_model="MONTHLY")
    )
    other_location = LocationService().create_location(
        db_session, _ctx(owner), LocationCreate(gym_id=site[0], name="Annex")
    )
    service = MemberService()
    service.create_member(db_session, _ctx(owner), _member_payload(site, "first@example.com"))

    with pytest.raises(LimitExceededError) as exc_info:
        service.create_member(db_session, _ctx(owner), _member_payload(site, "second@example.com"))
    assert exc_info.value.resource_type == "member"
    assert exc_info.value.location_id == str(site[1])

    annex = service.create_member(
        db_session, _ctx(owner), _member_payload(site, "annex@example.com", location_id=other_location.id)
    )
    assert annex.location_id == other_location.id
    assert db_session.scalar(select(User).where(User.email == "second@example.com")) is None


def test_location_must_belong_to_gym(db_session: Session, owner: User, site) -> None:
    other_gym = GymService().create_gym(db_session, _ctx(owner), GymCreate(name="Uptown"))

    with pytest.raises(ValidationError):
        MemberService().create_member(
            db_session, _ctx(owner), _member_payload(site, "lost@example.com", gym_id=other_gym.id)
        )


def test_other_owner_cannot_add_or_delete_members(db_session: Session, owner: User, site) -> None:
    intruder = User(first_name="Ivan", last_name="Intruder", email="ivan@example.com", role=GYM_OWNER)
    db_session.add(intruder)
    db_session.commit()
    service = MemberService()
    member = service.create_member(db_session, _ctx(owner), _member_payload(site, "victim@example.com"))

    with pytest.raises(AuthorizationError):
        service.create_member(db_session, _ctx(intruder), _member_payload(site, "sneak@example.com"))
    with pytest.raises(AuthorizationError):
        service.delete_member(db_session, _ctx(intruder), member.id)


def test_delete_member_soft_deletes_member_and_user(db_session: Session, owner: User, site) -> None:
    service = MemberService()
    member = service.create_member(db_session, _ctx(owner), _member_payload(site, "gone@example.com"))

    deleted = service.delete_member(db_session, _ctx(owner), member.id)

    assert deleted.is_deleted is True
    stored = db_session.get(Member, member.id)
    assert stored is not None
    assert stored.is_deleted is True
    assert stored.user.is_deleted is True
    assert service.list_members(db_session, _ctx(owner), MemberListQuery()).total_count == 0


def test_list_members_searches_user_fields(db_session: Session, owner: User, site) -> None:
    service = MemberService()
    service.create_member(db_session, _ctx(owner), _member_payload(site, "alice@example.com", first_name="Alice"))
    service.create_member(
        db_session, _ctx(owner), _member_payload(site, "bob@example.com", first_name="Bob", phone_number="555-9999")
    )

    by_name = service.list_members(db_session, _ctx(owner), MemberListQuery(search="ALICE"))
    by_phone = service.list_members(db_session, _ctx(owner), MemberListQuery(search="9999"))
    everyone = service.list_members(db_session, _ctx(owner), MemberListQuery())

    assert [item.user.first_name for item in by_name.data] == ["Alice"]
    assert [item.user.first_name for item in by_phone.data] == ["Bob"]
    assert everyone.total_count == 2
    assert everyone.page_count == 1


def test_member_subscription_by_months(db_session: Session, owner: User, site) -> None:
    member = MemberService().create_member(db_session, _ctx(owner), _member_payload(site, "sub@example.com"))
    service = MemberSubscriptionService()

    created = service.create_subscription(
        db_session,
        _ctx(owner),
        MemberSubscriptionCreate(member_id=member.id, price=Decimal("40.00"), months=3, payment_method="CASH"),
    )

    assert created.is_active is True
    assert created.end_date == add_months(created.start_date, 3)
    payment = db_session.scalar(select(Payment).where(Payment.member_subscription_id == created.id))
    assert payment is not None
    assert payment.subscription_type == "MEMBER"
    assert payment.amount == Decimal("40.00")
    assert events.published_events[-1]["event_type"] == "member_subscription.activated"


def test_member_subscription_custom_dates_must_be_ordered(db_session: Session, owner: User, site) -> None:
    member = MemberService().create_member(db_session, _ctx(owner), _member_payload(site, "dates@example.com"))
    service = MemberSubscriptionService()
    start = datetime(2024, 5, 1, tzinfo=timezone.utc)

    created = service.create_subscription(
        db_session,
        _ctx(owner),
        MemberSubscriptionCreate(
            member_id=member.id,
            price=Decimal("15.00"),
            use_custom_dates=True,
            start_date=start,
            end_date=start + timedelta(days=10),
        ),
    )
    assert created.end_date == start + timedelta(days=10)

    with pytest.raises(ValidationError):
        service.create_subscription(
            db_session,
            _ctx(owner),
            MemberSubscriptionCreate(
                member_id=member.id,
                price=Decimal("15.00"),
                use_custom_dates=True,
                start_date=start,
                end_date=start,
            ),
        )


def test_member_subscription_list_and_delete(db_session: Session, owner: User, site) -> None:
    member = MemberService().create_member(db_session, _ctx(owner), _member_payload(site, "list@example.com"))
    service = MemberSubscriptionService()
    created = service.create_subscription(
        db_session, _ctx(owner), MemberSubscriptionCreate(member_id=member.id, price=Decimal("10.00"), months=1)
    )

    listed = service.list_subscriptions(db_session, _ctx(owner), MemberSubscriptionListQuery(member_id=member.id))
    assert [item.id for item in listed.data] == [created.id]

    deleted = service.delete_subscription(db_session, _ctx(owner), created.id)
    assert deleted.is_deleted is True
    assert deleted.is_active is False
    assert db_session.get(MemberSubscription, created.id) is not None
    assert service.list_subscriptions(db_session, _ctx(owner), MemberSubscriptionListQuery()).total_count == 0
