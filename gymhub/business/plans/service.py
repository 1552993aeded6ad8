from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from gymhub import audit
from gymhub.business.plans.models import Plan
from gymhub.business.plans.repository import PlanRepository
from gymhub.business.plans.schemas import PlanCreate, PlanRead, PlanUpdate
from gymhub.business.subscriptions.models import OwnerSubscription
from gymhub.platform.errors import ConflictError, NotFoundError
from gymhub.platform.pagination import ListQuery, paginate
from gymhub.platform.schemas import Page
from gymhub.platform.security.context import AuthContext


logger = logging.getLogger("gymhub.plans")


def live_subscription_count(session: Session, plan_id: uuid.UUID) -> int:
    """Subscriptions currently holding the plan: active, not expired, not deleted."""
    return int(
        session.scalar(
            select(func.count())
            .select_from(OwnerSubscription)
            .where(
                OwnerSubscription.plan_id == plan_id,
                OwnerSubscription.is_active.is_(True),
                OwnerSubscription.is_expired.is_(False),
                OwnerSubscription.is_deleted.is_(False),
            )
        )
        or 0
    )


@dataclass(slots=True)
class PlanService:
    plan_repository: PlanRepository = PlanRepository()

    def create_plan(self, session: Session, ctx: AuthContext, payload: PlanCreate) -> PlanRead:
        self.plan_repository.validate_write_security(None, ctx, action="create")

        plan = Plan(**payload.model_dump(mode="python"))
        session.add(plan)
        session.commit()
        session.refresh(plan)

        audit.record(str(ctx.user_id), "plan", str(plan.id), "plan.created", None, self._snapshot(plan), ctx.correlation_id)
        logger.info("plan.created", extra={"plan_id": str(plan.id)})
        return PlanRead.model_validate(plan)

    def get_plan(self, session: Session, ctx: AuthContext, plan_id: uuid.UUID) -> PlanRead:
        return PlanRead.model_validate(self.get_plan_model(session, plan_id))

    def get_plan_model(self, session: Session, plan_id: uuid.UUID) -> Plan:
        plan = session.scalar(select(Plan).where(Plan.id == plan_id, Plan.is_deleted.is_(False)))
        if plan is None:
            raise NotFoundError("Plan not found")
        return plan

    def list_plans(self, session: Session, ctx: AuthContext, params: ListQuery) -> Page[PlanRead]:
        query = select(Plan).where(Plan.is_deleted.is_(False))

        term = params.search_term
        if term is not None:
            conditions = [func.lower(Plan.name).contains(term.lower(), autoescape=True)]
            price = self._parse_price(term)
            if price is not None:
                conditions.append(Plan.monthly_price == price)
                conditions.append(Plan.yearly_price == price)
            query = query.where(or_(*conditions))

        result = paginate(session, query, params, created_at=Plan.created_at)
        return Page[PlanRead](
            data=[PlanRead.model_validate(item) for item in result.items],
            total_count=result.total_count,
            page_count=result.page_count,
        )

    def update_plan(self, session: Session, ctx: AuthContext, plan_id: uuid.UUID, payload: PlanUpdate) -> PlanRead:
        self.plan_repository.validate_write_security(None, ctx, action="update", entity_id=plan_id)
        plan = self.get_plan_model(session, plan_id)

        changes = payload.model_dump(mode="python", exclude_unset=True)
        if not changes:
            return PlanRead.model_validate(plan)
        if live_subscription_count(session, plan.id) > 0:
            raise ConflictError("Plan cannot be modified because it has active subscriptions")

        before = self._snapshot(plan)
        for key, value in changes.items():
            if value is not None:
                setattr(plan, key, value)
        session.commit()
        session.refresh(plan)

        audit.record(str(ctx.user_id), "plan", str(plan.id), "plan.updated", before, self._snapshot(plan), ctx.correlation_id)
        return PlanRead.model_validate(plan)

    def toggle_plan_active(self, session: Session, ctx: AuthContext, plan_id: uuid.UUID) -> PlanRead:
        self.plan_repository.validate_write_security(None, ctx, action="toggle", entity_id=plan_id)
        plan = self.get_plan_model(session, plan_id)

        if plan.is_active and live_subscription_count(session, plan.id) > 0:
            raise ConflictError("Plan cannot be deactivated because it has active subscriptions")

        before = self._snapshot(plan)
        plan.is_active = not plan.is_active
        session.commit()
        session.refresh(plan)

        action = "plan.activated" if plan.is_active else "plan.deactivated"
        audit.record(str(ctx.user_id), "plan", str(plan.id), action, before, self._snapshot(plan), ctx.correlation_id)
        logger.info(action, extra={"plan_id": str(plan.id)})
        return PlanRead.model_validate(plan)

    def delete_plan(self, session: Session, ctx: AuthContext, plan_id: uuid.UUID) -> PlanRead:
        self.plan_repository.validate_write_security(None, ctx, action="delete", entity_id=plan_id)
        plan = self.get_plan_model(session, plan_id)

        if live_subscription_count(session, plan.id) > 0:
            raise ConflictError("Plan cannot be deleted because it has active subscriptions")

        before = self._snapshot(plan)
        plan.is_deleted = True
        session.commit()
        session.refresh(plan)

        audit.record(str(ctx.user_id), "plan", str(plan.id), "plan.deleted", before, self._snapshot(plan), ctx.correlation_id)
        logger.info("plan.deleted", extra={"plan_id": str(plan.id)})
        return PlanRead.model_validate(plan)

    @staticmethod
    def _parse_price(term: str) -> Decimal | None:
        try:
            value = Decimal(term)
        except InvalidOperation:
            return None
        if not value.is_finite():
            return None
        return value

    @staticmethod
    def _snapshot(plan: Plan) -> dict[str, Any]:
        return {
            "name": plan.name,
            "monthly_price": str(plan.monthly_price),
            "yearly_price": str(plan.yearly_price),
            "max_gyms": plan.max_gyms,
            "max_locations": plan.max_locations,
            "max_members": plan.max_members,
            "max_equipment": plan.max_equipment,
            "is_active": plan.is_active,
            "is_deleted": plan.is_deleted,
        }


plan_service = PlanService()
