from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gymhub.business.plans.schemas import PlanCreate, PlanRead, PlanUpdate
from gymhub.business.plans.service import plan_service
from gymhub.core.database import get_db
from gymhub.core.rbac import require_roles
from gymhub.platform.pagination import ListQuery
from gymhub.platform.schemas import Envelope, Page, envelope
from gymhub.platform.security.context import GYM_OWNER, SUPER_ADMIN, AuthContext


router = APIRouter(prefix="/plans", tags=["plans"])

require_admin = require_roles(SUPER_ADMIN)


@router.post("", response_model=Envelope[PlanRead], status_code=status.HTTP_201_CREATED)
def create_plan(
    payload: PlanCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
) -> Envelope[PlanRead]:
    return envelope("Plan created successfully", plan_service.create_plan(db, ctx, payload))


@router.post("/search", response_model=Page[PlanRead])
def list_plans(
    params: ListQuery,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_roles(SUPER_ADMIN, GYM_OWNER)),
) -> Page[PlanRead]:
    return plan_service.list_plans(db, ctx, params)


@router.get("/{plan_id}", response_model=Envelope[PlanRead])
def get_plan(
    plan_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_roles(SUPER_ADMIN, GYM_OWNER)),
) -> Envelope[PlanRead]:
    return envelope("Plan fetched successfully", plan_service.get_plan(db, ctx, plan_id))


@router.post("/{plan_id}/update", response_model=Envelope[PlanRead])
def update_plan(
    plan_id: uuid.UUID,
    payload: PlanUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
) -> Envelope[PlanRead]:
    return envelope("Plan updated successfully", plan_service.update_plan(db, ctx, plan_id, payload))


@router.post("/{plan_id}/toggle-active", response_model=Envelope[PlanRead])
def toggle_plan_active(
    plan_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
) -> Envelope[PlanRead]:
    plan = plan_service.toggle_plan_active(db, ctx, plan_id)
    return envelope("Plan activated" if plan.is_active else "Plan deactivated", plan)


@router.post("/{plan_id}/delete", response_model=Envelope[PlanRead])
def delete_plan(
    plan_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
) -> Envelope[PlanRead]:
    return envelope("Plan deleted successfully", plan_service.delete_plan(db, ctx, plan_id))
