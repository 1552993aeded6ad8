from __future__ import annotations

import re
import uuid
from collections.abc import Generator
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gymhub import audit, events
from gymhub.business.accounts.models import User
from gymhub.business.facilities.schemas import GymCreate, LocationCreate
from gymhub.business.facilities.service import GymService, LocationService
from gymhub.business.members.schemas import MemberCreate, MemberSubscriptionCreate
from gymhub.business.members.service import MemberService, MemberSubscriptionService
from gymhub.business.payments.schemas import PaymentCreate, PaymentListQuery
from gymhub.business.payments.service import PaymentService, build_payment, generate_cash_transaction_id
from gymhub.business.plans.schemas import PlanCreate
from gymhub.business.plans.service import PlanService
from gymhub.business.subscriptions.schemas import OwnerSubscriptionCreate
from gymhub.business.subscriptions.service import OwnerSubscriptionService
from gymhub.core.database import Base
from gymhub.platform.errors import AuthorizationError, NotFoundError, ValidationError
from gymhub.platform.security.context import GYM_OWNER, SUPER_ADMIN, AuthContext


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


def _admin() -> AuthContext:
    return AuthContext(user_id=uuid.uuid4(), role=SUPER_ADMIN)


def _owner(session: Session, email: str) -> User:
    user = User(first_name="Paula", last_name="Payer", email=email, role=GYM_OWNER)
    session.add(user)
    session.commit()
    return user


def _owner_subscription(session: Session, owner: User) -> uuid.UUID:
    plan = PlanService().create_plan(
        session,
        _admin(),
        PlanCreate(
            name="Payments",
            monthly_price=Decimal("12.00"),
            yearly_price=Decimal("120.00"),
            max_gyms=5,
            max_locations=5,
            max_members=5,
            max_equipment=5,
        ),
    )
    subscription = OwnerSubscriptionService().create_subscription(
        session, _admin(), OwnerSubscriptionCreate(owner_id=owner.id, plan_id=plan.id, billing_model="MONTHLY")
    )
    return subscription.id


def _member_subscription(session: Session, owner: User, email: str) -> uuid.UUID:
    ctx = AuthContext(user_id=owner.id, role=GYM_OWNER)
    gym = GymService().create_gym(session, ctx, GymCreate(name=f"Gym {email}"))
    location = LocationService().create_location(session, ctx, LocationCreate(gym_id=gym.id, name="Main"))
    member = MemberService().create_member(
        session,
        ctx,
        MemberCreate(gym_id=gym.id, location_id=location.id, first_name="Mia", last_name="Member", email=email),
    )
    subscription = MemberSubscriptionService().create_subscription(
        session, ctx, MemberSubscriptionCreate(member_id=member.id, price=Decimal("30.00"), months=1)
    )
    return subscription.id


def test_cash_transaction_id_format() -> None:
    value = generate_cash_transaction_id()

    assert re.fullmatch(r"CASH-[0-9a-z]+-[0-9a-z]{6}", value)
    assert value != generate_cash_transaction_id()


@pytest.mark.parametrize(
    "kwargs,message",
    [
        ({"amount": Decimal("0"), "payment_method": "CASH"}, "positive"),
        ({"amount": None, "payment_method": "CASH"}, "positive"),
        ({"amount": Decimal("5"), "payment_method": "CARD"}, "Unsupported"),
        ({"amount": Decimal("5"), "payment_method": "BANK_TRANSFER"}, "transaction_id"),
        ({"amount": Decimal("5"), "payment_method": "BANK_TRANSFER", "transaction_id": "   "}, "transaction_id"),
    ],
)
def test_build_payment_rules(kwargs: dict, message: str) -> None:
    with pytest.raises(ValidationError) as exc_info:
        build_payment(subscription_type="OWNER", owner_subscription_id=uuid.uuid4(), **kwargs)

    assert message in exc_info.value.message


def test_build_payment_requires_exactly_one_subscription() -> None:
    with pytest.raises(ValidationError):
        build_payment(subscription_type="OWNER", amount=Decimal("5"), payment_method="CASH")
    with pytest.raises(ValidationError):
        build_payment(
            subscription_type="OWNER",
            amount=Decimal("5"),
            payment_method="CASH",
            owner_subscription_id=uuid.uuid4(),
            member_subscription_id=uuid.uuid4(),
        )


def test_bank_transfer_keeps_transaction_id() -> None:
    payment = build_payment(
        subscription_type="MEMBER",
        member_subscription_id=uuid.uuid4(),
        amount=Decimal("8.50"),
        payment_method="BANK_TRANSFER",
        transaction_id=" TX-123 ",
        notes="",
    )

    assert payment.transaction_id == "TX-123"
    assert payment.notes is None
    assert payment.payment_date is not None


def test_owner_records_payment_for_own_member_subscription_only(db_session: Session) -> None:
    owner = _owner(db_session, "mine@example.com")
    other = _owner(db_session, "other@example.com")
    mine = _member_subscription(db_session, owner, "m1@example.com")
    theirs = _member_subscription(db_session, other, "m2@example.com")
    service = PaymentService()
    ctx = AuthContext(user_id=owner.id, role=GYM_OWNER)

    recorded = service.record_payment(
        db_session,
        ctx,
        PaymentCreate(subscription_type="MEMBER", member_subscription_id=mine, amount=Decimal("30.00"), payment_method="CASH"),
    )
    assert recorded.member_subscription_id == mine
    assert recorded.transaction_id.startswith("CASH-")

    with pytest.raises(AuthorizationError):
        service.record_payment(
            db_session,
            ctx,
            PaymentCreate(
                subscription_type="MEMBER", member_subscription_id=theirs, amount=Decimal("30.00"), payment_method="CASH"
            ),
        )
    with pytest.raises(NotFoundError):
        service.record_payment(
            db_session,
            ctx,
            PaymentCreate(
                subscription_type="OWNER",
                owner_subscription_id=uuid.uuid4(),
                amount=Decimal("30.00"),
                payment_method="CASH",
            ),
        )


def test_payment_create_schema_requires_matching_reference() -> None:
    with pytest.raises(ValueError):
        PaymentCreate(subscription_type="OWNER", member_subscription_id=uuid.uuid4(), amount=Decimal("1"), payment_method="CASH")


def test_listing_is_split_by_role(db_session: Session) -> None:
    owner = _owner(db_session, "split@example.com")
    owner_subscription_id = _owner_subscription(db_session, owner)
    member_subscription_id = _member_subscription(db_session, owner, "split-member@example.com")
    service = PaymentService()
    service.record_payment(
        db_session,
        _admin(),
        PaymentCreate(
            subscription_type="OWNER",
            owner_subscription_id=owner_subscription_id,
            amount=Decimal("12.00"),
            payment_method="BANK_TRANSFER",
            transaction_id="TX-OWNER",
        ),
    )
    service.record_payment(
        db_session,
        AuthContext(user_id=owner.id, role=GYM_OWNER),
        PaymentCreate(
            subscription_type="MEMBER",
            member_subscription_id=member_subscription_id,
            amount=Decimal("30.00"),
            payment_method="CASH",
        ),
    )

    admin_view = service.list_payments(db_session, _admin(), PaymentListQuery())
    owner_view = service.list_payments(db_session, AuthContext(user_id=owner.id, role=GYM_OWNER), PaymentListQuery())
    filtered = service.list_payments(
        db_session,
        _admin(),
        PaymentListQuery(subscription_type="OWNER", owner_subscription_id=uuid.uuid4()),
    )

    assert [payment.transaction_id for payment in admin_view.data] == ["TX-OWNER"]
    assert admin_view.page_count == 1
    assert [payment.member_subscription_id for payment in owner_view.data] == [member_subscription_id]
    assert filtered.total_count == 0
