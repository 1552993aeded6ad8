from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gymhub.business.members.schemas import (
    MemberCreate,
    MemberListQuery,
    MemberRead,
    MemberSubscriptionCreate,
    MemberSubscriptionListQuery,
    MemberSubscriptionRead,
)
from gymhub.business.members.service import member_service, member_subscription_service
from gymhub.core.database import get_db
from gymhub.core.rbac import require_roles
from gymhub.platform.schemas import Envelope, Page, envelope
from gymhub.platform.security.context import GYM_OWNER, SUPER_ADMIN, AuthContext


members_router = APIRouter(prefix="/members", tags=["members"])
member_subscriptions_router = APIRouter(prefix="/member-subscriptions", tags=["member-subscriptions"])

require_admin_or_owner = require_roles(SUPER_ADMIN, GYM_OWNER)


@members_router.post("", response_model=Envelope[MemberRead], status_code=status.HTTP_201_CREATED)
def create_member(
    payload: MemberCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[MemberRead]:
    return envelope("Member created successfully", member_service.create_member(db, ctx, payload))


@members_router.post("/search", response_model=Page[MemberRead])
def list_members(
    params: MemberListQuery,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Page[MemberRead]:
    return member_service.list_members(db, ctx, params)


@members_router.post("/{member_id}/delete", response_model=Envelope[MemberRead])
def delete_member(
    member_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[MemberRead]:
    return envelope("Member deleted successfully", member_service.delete_member(db, ctx, member_id))


@member_subscriptions_router.post(
    "", response_model=Envelope[MemberSubscriptionRead], status_code=status.HTTP_201_CREATED
)
def create_member_subscription(
    payload: MemberSubscriptionCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[MemberSubscriptionRead]:
    return envelope(
        "Member subscription created successfully",
        member_subscription_service.create_subscription(db, ctx, payload),
    )


@member_subscriptions_router.post("/search", response_model=Page[MemberSubscriptionRead])
def list_member_subscriptions(
    params: MemberSubscriptionListQuery,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Page[MemberSubscriptionRead]:
    return member_subscription_service.list_subscriptions(db, ctx, params)


@member_subscriptions_router.post("/{subscription_id}/delete", response_model=Envelope[MemberSubscriptionRead])
def delete_member_subscription(
    subscription_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[MemberSubscriptionRead]:
    return envelope(
        "Member subscription deleted successfully",
        member_subscription_service.delete_subscription(db, ctx, subscription_id),
    )
