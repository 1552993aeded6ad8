from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from gymhub import audit, events
from gymhub.business.accounts.models import User
from gymhub.business.accounts.service import email_in_use
from gymhub.business.facilities.service import get_gym, get_location
from gymhub.business.limits.service import LimitEnforcer
from gymhub.business.members.models import Member, MemberSubscription
from gymhub.business.members.repository import MemberRepository, MemberSubscriptionRepository
from gymhub.business.members.schemas import (
    MemberCreate,
    MemberListQuery,
    MemberRead,
    MemberSubscriptionCreate,
    MemberSubscriptionListQuery,
    MemberSubscriptionRead,
)
from gymhub.business.payments.service import build_payment
from gymhub.business.subscriptions.periods import add_months, as_utc, utcnow
from gymhub.business.subscriptions.service import commit_or_rollback
from gymhub.platform.errors import ConflictError, DomainError, NotFoundError, ValidationError
from gymhub.platform.pagination import paginate
from gymhub.platform.schemas import Page
from gymhub.platform.security.context import MEMBER, AuthContext


logger = logging.getLogger("gymhub.members")


def get_member(session: Session, member_id: uuid.UUID) -> Member:
    member = session.scalar(select(Member).where(Member.id == member_id, Member.is_deleted.is_(False)))
    if member is None:
        raise NotFoundError("Member not found")
    return member


@dataclass(slots=True)
class MemberService:
    member_repository: MemberRepository = MemberRepository()
    limit_enforcer: LimitEnforcer = LimitEnforcer()

    def create_member(self, session: Session, ctx: AuthContext, payload: MemberCreate) -> MemberRead:
        """Register a member at one of the caller's locations, creating the user when needed."""

        gym = get_gym(session, payload.gym_id)
        self.member_repository.validate_write_security(gym.owner_id, ctx, action="create")
        location = get_location(session, payload.location_id)
        if location.gym_id != gym.id:
            raise ValidationError("Location does not belong to the gym")
        self.limit_enforcer.enforce(session, gym.owner_id, "member", location.id)

        try:
            user = self._resolve_user(session, payload)
            member = Member(user_id=user.id, gym_id=gym.id, location_id=location.id, is_deleted=False)
            session.add(member)
        except DomainError:
            session.rollback()
            raise
        commit_or_rollback(session, "User is already a member")
        session.refresh(member)

        audit.record(
            str(ctx.user_id),
            "member",
            str(member.id),
            "member.created",
            None,
            {"user_id": str(member.user_id), "gym_id": str(gym.id), "location_id": str(location.id)},
            ctx.correlation_id,
        )
        logger.info("member.created", extra={"owner_id": str(gym.owner_id), "member_id": str(member.id)})
        return MemberRead.model_validate(member)

    def delete_member(self, session: Session, ctx: AuthContext, member_id: uuid.UUID) -> MemberRead:
        member = get_member(session, member_id)
        self.member_repository.validate_write_security(member.gym.owner_id, ctx, action="delete", entity_id=member.id)

        member.is_deleted = True
        if member.user is not None:
            member.user.is_deleted = True
            member.user.is_active = False
        commit_or_rollback(session, "member could not be deleted")
        session.refresh(member)

        audit.record(
            str(ctx.user_id), "member", str(member.id), "member.deleted", None, {"is_deleted": True}, ctx.correlation_id
        )
        logger.info("member.deleted", extra={"member_id": str(member.id)})
        return MemberRead.model_validate(member)

    def list_members(self, session: Session, ctx: AuthContext, params: MemberListQuery) -> Page[MemberRead]:
        query = self.member_repository.apply_scope_query(
            select(Member).join(User, User.id == Member.user_id).where(Member.is_deleted.is_(False)),
            ctx,
        )
        if params.gym_id is not None:
            query = query.where(Member.gym_id == params.gym_id)
        if params.location_id is not None:
            query = query.where(Member.location_id == params.location_id)

        term = params.search_term
        if term is not None:
            needle = term.lower()
            query = query.where(
                or_(
                    func.lower(User.first_name).contains(needle, autoescape=True),
                    func.lower(User.last_name).contains(needle, autoescape=True),
                    func.lower(User.email).contains(needle, autoescape=True),
                    func.lower(User.phone_number).contains(needle, autoescape=True),
                )
            )

        result = paginate(session, query, params, created_at=Member.created_at)
        return Page[MemberRead](
            data=[MemberRead.model_validate(item) for item in result.items],
            total_count=result.total_count,
            page_count=result.page_count,
        )

    @staticmethod
    def _resolve_user(session: Session, payload: MemberCreate) -> User:
        if payload.user_id is not None:
            user = session.scalar(select(User).where(User.id == payload.user_id, User.is_deleted.is_(False)))
            if user is None:
                raise NotFoundError("User not found")
            existing = session.scalar(
                select(Member.id).where(Member.user_id == user.id, Member.is_deleted.is_(False)).limit(1)
            )
            if existing is not None:
                raise ConflictError("User is already a member")
            return user

        if payload.email is None:
            raise ValidationError("Missing required field: email")
        if email_in_use(session, payload.email):
            raise ConflictError("User with this email already exists")
        user = User(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=str(payload.email),
            phone_number=payload.phone_number,
            address=payload.address,
            city=payload.city,
            country=payload.country,
            role=MEMBER,
            is_active=True,
            is_deleted=False,
        )
        session.add(user)
        session.flush()
        return user


@dataclass(slots=True)
class MemberSubscriptionService:
    subscription_repository: MemberSubscriptionRepository = MemberSubscriptionRepository()

    def create_subscription(
        self,
        session: Session,
        ctx: AuthContext,
        payload: MemberSubscriptionCreate,
    ) -> MemberSubscriptionRead:
        member = get_member(session, payload.member_id)
        self.subscription_repository.validate_write_security(member.gym.owner_id, ctx, action="create")

        if payload.use_custom_dates:
            start_date = as_utc(payload.start_date)
            end_date = as_utc(payload.end_date)
            if end_date <= start_date:
                raise ValidationError("end_date must be after start_date")
        else:
            start_date = utcnow()
            end_date = add_months(start_date, payload.months)

        subscription = MemberSubscription(
            member_id=member.id,
            price=payload.price,
            billing_model="MONTHLY",
            start_date=start_date,
            end_date=end_date,
            is_active=True,
            is_expired=False,
            is_deleted=False,
        )
        try:
            session.add(subscription)
            session.flush()
            if payload.payment_method is not None:
                session.add(
                    build_payment(
                        subscription_type="MEMBER",
                        member_subscription_id=subscription.id,
                        amount=payload.amount if payload.amount is not None else payload.price,
                        payment_method=payload.payment_method,
                        transaction_id=payload.transaction_id,
                        payment_date=as_utc(payload.payment_date) if payload.payment_date is not None else None,
                        notes=payload.notes,
                    )
                )
        except DomainError:
            session.rollback()
            raise
        commit_or_rollback(session, "member subscription could not be created")
        session.refresh(subscription)

        events.publish(
            events.build_envelope(
                "member_subscription.activated",
                {
                    "subscription_id": str(subscription.id),
                    "member_id": str(member.id),
                    "end_date": as_utc(subscription.end_date).isoformat(),
                },
                actor_user_id=str(ctx.user_id),
            )
        )
        logger.info(
            "member_subscription.activated",
            extra={"member_id": str(member.id), "subscription_id": str(subscription.id)},
        )
        return self._to_read(subscription)

    def delete_subscription(self, session: Session, ctx: AuthContext, subscription_id: uuid.UUID) -> MemberSubscriptionRead:
        subscription = session.scalar(
            select(MemberSubscription).where(
                MemberSubscription.id == subscription_id,
                MemberSubscription.is_deleted.is_(False),
            )
        )
        if subscription is None:
            raise NotFoundError("Member subscription not found")
        self.subscription_repository.validate_write_security(
            subscription.member.gym.owner_id, ctx, action="delete", entity_id=subscription.id
        )
        subscription.is_deleted = True
        subscription.is_active = False
        commit_or_rollback(session, "member subscription could not be deleted")
        session.refresh(subscription)

        audit.record(
            str(ctx.user_id),
            "member_subscription",
            str(subscription.id),
            "member_subscription.deleted",
            None,
            {"is_deleted": True},
            ctx.correlation_id,
        )
        return self._to_read(subscription)

    def list_subscriptions(
        self,
        session: Session,
        ctx: AuthContext,
        params: MemberSubscriptionListQuery,
    ) -> Page[MemberSubscriptionRead]:
        query = self.subscription_repository.apply_scope_query(
            select(MemberSubscription).where(MemberSubscription.is_deleted.is_(False)),
            ctx,
        )
        if params.member_id is not None:
            query = query.where(MemberSubscription.member_id == params.member_id)
        if params.is_active is not None:
            query = query.where(MemberSubscription.is_active.is_(params.is_active))

        result = paginate(session, query, params, created_at=MemberSubscription.created_at)
        return Page[MemberSubscriptionRead](
            data=[self._to_read(item) for item in result.items],
            total_count=result.total_count,
            page_count=result.page_count,
        )

    @staticmethod
    def _to_read(subscription: MemberSubscription) -> MemberSubscriptionRead:
        read = MemberSubscriptionRead.model_validate(subscription)
        return read.model_copy(
            update={"start_date": as_utc(subscription.start_date), "end_date": as_utc(subscription.end_date)}
        )


member_service = MemberService()
member_subscription_service = MemberSubscriptionService()
