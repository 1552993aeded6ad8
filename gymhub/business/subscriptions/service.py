from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gymhub import audit, events
from gymhub.business.accounts.models import User
from gymhub.business.limits.service import LimitEnforcer, limits_for
from gymhub.business.payments.schemas import PaymentDetails
from gymhub.business.payments.service import build_payment
from gymhub.business.plans.models import Plan
from gymhub.business.subscriptions.models import OwnerSubscription
from gymhub.business.subscriptions.periods import (
    as_utc,
    calculate_end_date,
    calculate_end_date_with_remaining_days,
    calculate_remaining_days_from_end_date,
    get_plan_price,
    utcnow,
)
from gymhub.business.subscriptions.repository import OwnerSubscriptionRepository
from gymhub.business.subscriptions.schemas import (
    OwnerSubscriptionCreate,
    OwnerSubscriptionListQuery,
    OwnerSubscriptionRead,
    OwnerSubscriptionRenew,
    OwnerSubscriptionUpdate,
    SubscriptionStatusRead,
)
from gymhub.platform.errors import ConflictError, DomainError, NotFoundError, ValidationError
from gymhub.platform.pagination import paginate
from gymhub.platform.schemas import Page
from gymhub.platform.security.context import GYM_OWNER, AuthContext


logger = logging.getLogger("gymhub.subscriptions")


def deactivate_owner_subscriptions(
    session: Session,
    owner_id: uuid.UUID,
    *,
    excluding_id: uuid.UUID | None = None,
) -> int:
    """Flip every active, non-deleted subscription of the owner to inactive."""

    statement = update(OwnerSubscription).where(
        OwnerSubscription.owner_id == owner_id,
        OwnerSubscription.is_active.is_(True),
        OwnerSubscription.is_deleted.is_(False),
    )
    if excluding_id is not None:
        statement = statement.where(OwnerSubscription.id != excluding_id)
    result = session.execute(statement.values(is_active=False, updated_at=utcnow()))
    return int(result.rowcount or 0)


def commit_or_rollback(session: Session, conflict_message: str) -> None:
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(conflict_message)


@dataclass(slots=True)
class OwnerSubscriptionService:
    subscription_repository: OwnerSubscriptionRepository = OwnerSubscriptionRepository()
    limit_enforcer: LimitEnforcer = LimitEnforcer()

    def create_subscription(
        self,
        session: Session,
        ctx: AuthContext,
        payload: OwnerSubscriptionCreate,
    ) -> OwnerSubscriptionRead:
        self.subscription_repository.validate_write_security(None, ctx, action="create")
        subscription = self.open_subscription(
            session,
            ctx,
            owner_id=payload.owner_id,
            plan_id=payload.plan_id,
            billing_model=payload.billing_model,
            start_date=payload.start_date,
            carry_over_remaining_days=payload.carry_over_remaining_days,
            payment=payload if payload.payment_method is not None else None,
        )
        commit_or_rollback(session, "subscription could not be created")
        session.refresh(subscription)
        self._publish(ctx, "owner_subscription.activated", subscription)
        return self._to_read(subscription)

    def open_subscription(
        self,
        session: Session,
        ctx: AuthContext,
        *,
        owner_id: uuid.UUID,
        plan_id: uuid.UUID,
        billing_model: str,
        start_date: datetime | None = None,
        carry_over_remaining_days: bool = False,
        payment: PaymentDetails | None = None,
    ) -> OwnerSubscription:
        """Stage a new active subscription (and optional payment) without committing.

        Every other active subscription of the owner is deactivated in the same unit of
        work, so callers get all-or-nothing semantics from a single commit.
        """

        try:
            self._get_owner(session, owner_id)
            plan = self._get_plan(session, plan_id)
            if not plan.is_active:
                raise ConflictError("Plan is not active")

            start = as_utc(start_date) if start_date is not None else utcnow()
            remaining_days = 0
            if carry_over_remaining_days:
                current = self._latest_active(session, owner_id)
                if current is not None:
                    remaining_days = calculate_remaining_days_from_end_date(current.end_date)

            deactivate_owner_subscriptions(session, owner_id)
            subscription = OwnerSubscription(
                owner_id=owner_id,
                plan_id=plan.id,
                billing_model=billing_model,
                start_date=start,
                end_date=calculate_end_date_with_remaining_days(start, billing_model, remaining_days),
                is_active=True,
                is_expired=False,
                is_deleted=False,
            )
            session.add(subscription)
            session.flush()

            if payment is not None and payment.payment_method is not None:
                session.add(self._owner_payment(subscription, plan, billing_model, payment))
        except DomainError:
            session.rollback()
            raise

        audit.record(
            str(ctx.user_id),
            "owner_subscription",
            str(subscription.id),
            "owner_subscription.created",
            None,
            self._snapshot(subscription),
            ctx.correlation_id,
        )
        return subscription

    def renew_subscription(self, session: Session, ctx: AuthContext, payload: OwnerSubscriptionRenew) -> OwnerSubscriptionRead:
        self.subscription_repository.validate_write_security(None, ctx, action="renew")

        if payload.subscription_id is not None:
            existing = session.get(OwnerSubscription, payload.subscription_id)
        else:
            existing = self._latest_active(session, payload.owner_id)
        if existing is None or existing.is_deleted:
            raise NotFoundError("Active subscription not found")
        if payload.owner_id is not None and existing.owner_id != payload.owner_id:
            raise ValidationError("owner_id does not match subscription owner")
        if existing.plan is None or existing.plan.is_deleted:
            raise ConflictError("Subscription has no plan to renew")

        billing_model = payload.billing_model or existing.billing_model
        start = as_utc(payload.renew_date) if payload.renew_date is not None else utcnow()
        remaining_days = calculate_remaining_days_from_end_date(existing.end_date)
        previous_id = existing.id

        try:
            deactivate_owner_subscriptions(session, existing.owner_id)
            subscription = OwnerSubscription(
                owner_id=existing.owner_id,
                plan_id=existing.plan_id,
                billing_model=billing_model,
                start_date=start,
                end_date=calculate_end_date_with_remaining_days(start, billing_model, remaining_days),
                is_active=True,
                is_expired=False,
                is_deleted=False,
            )
            session.add(subscription)
            session.flush()
            session.add(self._owner_payment(subscription, existing.plan, billing_model, payload))
        except DomainError:
            session.rollback()
            raise
        commit_or_rollback(session, "subscription could not be renewed")
        session.refresh(subscription)

        audit.record(
            str(ctx.user_id),
            "owner_subscription",
            str(subscription.id),
            "owner_subscription.renewed",
            {"previous_subscription_id": str(previous_id)},
            self._snapshot(subscription),
            ctx.correlation_id,
        )
        self._publish(ctx, "owner_subscription.renewed", subscription, remaining_days=remaining_days)
        return self._to_read(subscription)

    def toggle_active(self, session: Session, ctx: AuthContext, subscription_id: uuid.UUID) -> OwnerSubscriptionRead:
        self.subscription_repository.validate_write_security(None, ctx, action="toggle", entity_id=subscription_id)
        subscription = self._get_subscription(session, subscription_id)
        before = self._snapshot(subscription)

        if subscription.is_active:
            subscription.is_active = False
            event_type = "owner_subscription.deactivated"
        else:
            if subscription.is_expired or as_utc(subscription.end_date) <= utcnow():
                raise ConflictError("Cannot activate an expired subscription")
            if subscription.plan is None or subscription.plan.is_deleted:
                raise ConflictError("Cannot activate a subscription without a plan")
            deactivate_owner_subscriptions(session, subscription.owner_id, excluding_id=subscription.id)
            subscription.is_active = True
            event_type = "owner_subscription.activated"

        commit_or_rollback(session, "subscription could not be updated")
        session.refresh(subscription)

        audit.record(str(ctx.user_id), "owner_subscription", str(subscription.id), event_type, before, self._snapshot(subscription), ctx.correlation_id)
        self._publish(ctx, event_type, subscription)
        return self._to_read(subscription)

    def update_subscription(
        self,
        session: Session,
        ctx: AuthContext,
        subscription_id: uuid.UUID,
        payload: OwnerSubscriptionUpdate,
    ) -> OwnerSubscriptionRead:
        self.subscription_repository.validate_write_security(None, ctx, action="update", entity_id=subscription_id)
        subscription = self._get_subscription(session, subscription_id)
        before = self._snapshot(subscription)
        changes = payload.model_dump(exclude_unset=True)

        if changes.get("plan_id") is not None:
            plan = self._get_plan(session, payload.plan_id)
            if not plan.is_active:
                raise ConflictError("Plan is not active")
            subscription.plan_id = plan.id
        if changes.get("billing_model") is not None:
            subscription.billing_model = payload.billing_model
        if changes.get("start_date") is not None:
            subscription.start_date = as_utc(payload.start_date)
        if changes.get("end_date") is not None:
            subscription.end_date = as_utc(payload.end_date)
        elif changes.get("start_date") is not None or changes.get("billing_model") is not None:
            subscription.end_date = calculate_end_date(as_utc(subscription.start_date), subscription.billing_model)

        if as_utc(subscription.end_date) <= as_utc(subscription.start_date):
            session.rollback()
            raise ValidationError("end_date must be after start_date")

        commit_or_rollback(session, "subscription could not be updated")
        session.refresh(subscription)

        audit.record(
            str(ctx.user_id),
            "owner_subscription",
            str(subscription.id),
            "owner_subscription.updated",
            before,
            self._snapshot(subscription),
            ctx.correlation_id,
        )
        return self._to_read(subscription)

    def delete_subscription(self, session: Session, ctx: AuthContext, subscription_id: uuid.UUID) -> OwnerSubscriptionRead:
        self.subscription_repository.validate_write_security(None, ctx, action="delete", entity_id=subscription_id)
        subscription = self._get_subscription(session, subscription_id)
        before = self._snapshot(subscription)

        subscription.is_deleted = True
        subscription.is_active = False
        commit_or_rollback(session, "subscription could not be deleted")
        session.refresh(subscription)

        audit.record(
            str(ctx.user_id),
            "owner_subscription",
            str(subscription.id),
            "owner_subscription.deleted",
            before,
            self._snapshot(subscription),
            ctx.correlation_id,
        )
        self._publish(ctx, "owner_subscription.deleted", subscription)
        return self._to_read(subscription)

    def get_subscription(self, session: Session, ctx: AuthContext, subscription_id: uuid.UUID) -> OwnerSubscriptionRead:
        subscription = session.scalar(
            self.subscription_repository.apply_scope_query(
                select(OwnerSubscription).where(
                    OwnerSubscription.id == subscription_id,
                    OwnerSubscription.is_deleted.is_(False),
                ),
                ctx,
            )
        )
        if subscription is None:
            raise NotFoundError("Subscription not found")
        return self._to_read(subscription)

    def list_subscriptions(
        self,
        session: Session,
        ctx: AuthContext,
        params: OwnerSubscriptionListQuery,
    ) -> Page[OwnerSubscriptionRead]:
        query = select(OwnerSubscription).where(OwnerSubscription.is_deleted.is_(False))
        query = self.subscription_repository.apply_scope_query(query, ctx)
        if params.owner_id is not None:
            query = query.where(OwnerSubscription.owner_id == params.owner_id)
        if params.plan_id is not None:
            query = query.where(OwnerSubscription.plan_id == params.plan_id)
        if params.is_active is not None:
            query = query.where(OwnerSubscription.is_active.is_(params.is_active))

        term = params.search_term
        if term is not None:
            needle = term.lower()
            query = query.where(
                or_(
                    OwnerSubscription.owner_id.in_(
                        select(User.id).where(
                            or_(
                                func.lower(User.first_name).contains(needle, autoescape=True),
                                func.lower(User.last_name).contains(needle, autoescape=True),
                                func.lower(User.email).contains(needle, autoescape=True),
                            )
                        )
                    ),
                    OwnerSubscription.plan_id.in_(
                        select(Plan.id).where(func.lower(Plan.name).contains(needle, autoescape=True))
                    ),
                )
            )

        result = paginate(session, query, params, created_at=OwnerSubscription.created_at)
        return Page[OwnerSubscriptionRead](
            data=[self._to_read(item) for item in result.items],
            total_count=result.total_count,
            page_count=result.page_count,
        )

    def get_subscription_status(
        self,
        session: Session,
        ctx: AuthContext,
        owner_id: uuid.UUID | None = None,
    ) -> SubscriptionStatusRead:
        """Snapshot of the owner's plan limits, read from the plan at call time, and live usage."""

        target_owner_id = owner_id or ctx.user_id
        if ctx.role == GYM_OWNER and target_owner_id != ctx.user_id:
            self.subscription_repository.validate_write_security(target_owner_id, ctx, action="read")
        self._get_owner(session, target_owner_id)

        active = self.limit_enforcer.active_subscription(session, target_owner_id)
        counts = self.limit_enforcer.current_counts(session, target_owner_id)
        return SubscriptionStatusRead(
            owner_id=target_owner_id,
            subscription_active=active is not None,
            subscription_expired=active is None,
            subscription_limits=limits_for(active.plan if active is not None else None),
            current_counts=counts,
            subscription=self._to_read(active) if active is not None else None,
        )

    def _owner_payment(self, subscription: OwnerSubscription, plan: Plan, billing_model: str, payment: PaymentDetails):
        amount: Decimal | None = payment.amount if payment.amount is not None else get_plan_price(plan, billing_model)
        return build_payment(
            subscription_type="OWNER",
            owner_subscription_id=subscription.id,
            amount=amount,
            payment_method=payment.payment_method or "",
            transaction_id=payment.transaction_id,
            payment_date=as_utc(payment.payment_date) if payment.payment_date is not None else None,
            notes=payment.notes,
        )

    @staticmethod
    def _latest_active(session: Session, owner_id: uuid.UUID | None) -> OwnerSubscription | None:
        if owner_id is None:
            return None
        return session.scalar(
            select(OwnerSubscription)
            .where(
                OwnerSubscription.owner_id == owner_id,
                OwnerSubscription.is_active.is_(True),
                OwnerSubscription.is_deleted.is_(False),
            )
            .order_by(OwnerSubscription.created_at.desc())
            .limit(1)
        )

    @staticmethod
    def _get_owner(session: Session, owner_id: uuid.UUID) -> User:
        owner = session.scalar(
            select(User).where(User.id == owner_id, User.role == GYM_OWNER, User.is_deleted.is_(False))
        )
        if owner is None:
            raise NotFoundError("Owner not found")
        return owner

    @staticmethod
    def _get_plan(session: Session, plan_id: uuid.UUID | None) -> Plan:
        plan = session.scalar(select(Plan).where(Plan.id == plan_id, Plan.is_deleted.is_(False)))
        if plan is None:
            raise NotFoundError("Plan not found")
        return plan

    @staticmethod
    def _get_subscription(session: Session, subscription_id: uuid.UUID) -> OwnerSubscription:
        subscription = session.scalar(
            select(OwnerSubscription).where(
                OwnerSubscription.id == subscription_id,
                OwnerSubscription.is_deleted.is_(False),
            )
        )
        if subscription is None:
            raise NotFoundError("Subscription not found")
        return subscription

    @staticmethod
    def _snapshot(subscription: OwnerSubscription) -> dict[str, Any]:
        return {
            "owner_id": str(subscription.owner_id),
            "plan_id": str(subscription.plan_id) if subscription.plan_id else None,
            "billing_model": subscription.billing_model,
            "start_date": as_utc(subscription.start_date).isoformat(),
            "end_date": as_utc(subscription.end_date).isoformat(),
            "is_active": subscription.is_active,
            "is_expired": subscription.is_expired,
            "is_deleted": subscription.is_deleted,
        }

    def _publish(self, ctx: AuthContext, event_type: str, subscription: OwnerSubscription, **extra: Any) -> None:
        payload = {"subscription_id": str(subscription.id), **self._snapshot(subscription), **extra}
        events.publish(events.build_envelope(event_type, payload, actor_user_id=str(ctx.user_id)))
        logger.info(event_type, extra={"owner_id": str(subscription.owner_id), "subscription_id": str(subscription.id)})

    @staticmethod
    def _to_read(subscription: OwnerSubscription) -> OwnerSubscriptionRead:
        read = OwnerSubscriptionRead.model_validate(subscription)
        return read.model_copy(
            update={
                "start_date": as_utc(subscription.start_date),
                "end_date": as_utc(subscription.end_date),
                "remaining_days": calculate_remaining_days_from_end_date(subscription.end_date)
                if subscription.is_active and not subscription.is_expired
                else 0,
            }
        )


owner_subscription_service = OwnerSubscriptionService()
