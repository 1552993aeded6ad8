from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gymhub.business.subscriptions.schemas import (
    OwnerSubscriptionCreate,
    OwnerSubscriptionListQuery,
    OwnerSubscriptionRead,
    OwnerSubscriptionRenew,
    OwnerSubscriptionUpdate,
    SubscriptionStatusRead,
)
from gymhub.business.subscriptions.service import owner_subscription_service
from gymhub.core.database import get_db
from gymhub.core.rbac import require_roles
from gymhub.platform.schemas import Envelope, Page, envelope
from gymhub.platform.security.context import GYM_OWNER, SUPER_ADMIN, AuthContext


router = APIRouter(prefix="/owner-subscriptions", tags=["owner-subscriptions"])

require_admin = require_roles(SUPER_ADMIN)
require_admin_or_owner = require_roles(SUPER_ADMIN, GYM_OWNER)


@router.post("", response_model=Envelope[OwnerSubscriptionRead], status_code=status.HTTP_201_CREATED)
def create_subscription(
    payload: OwnerSubscriptionCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
) -> Envelope[OwnerSubscriptionRead]:
    return envelope("Owner subscription created successfully", owner_subscription_service.create_subscription(db, ctx, payload))


@router.post("/search", response_model=Page[OwnerSubscriptionRead])
def list_subscriptions(
    params: OwnerSubscriptionListQuery,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Page[OwnerSubscriptionRead]:
    return owner_subscription_service.list_subscriptions(db, ctx, params)


@router.get("/status", response_model=Envelope[SubscriptionStatusRead])
def get_subscription_status(
    owner_id: uuid.UUID | None = Query(default=None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[SubscriptionStatusRead]:
    return envelope("Subscription status fetched successfully", owner_subscription_service.get_subscription_status(db, ctx, owner_id))


@router.post("/renew", response_model=Envelope[OwnerSubscriptionRead], status_code=status.HTTP_201_CREATED)
def renew_subscription(
    payload: OwnerSubscriptionRenew,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
) -> Envelope[OwnerSubscriptionRead]:
    return envelope("Owner subscription renewed successfully", owner_subscription_service.renew_subscription(db, ctx, payload))


@router.get("/{subscription_id}", response_model=Envelope[OwnerSubscriptionRead])
def get_subscription(
    subscription_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[OwnerSubscriptionRead]:
    return envelope("Subscription fetched successfully", owner_subscription_service.get_subscription(db, ctx, subscription_id))


@router.post("/{subscription_id}/toggle-active", response_model=Envelope[OwnerSubscriptionRead])
def toggle_subscription_active(
    subscription_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
) -> Envelope[OwnerSubscriptionRead]:
    subscription = owner_subscription_service.toggle_active(db, ctx, subscription_id)
    message = "Subscription activated" if subscription.is_active else "Subscription deactivated"
    return envelope(message, subscription)


@router.post("/{subscription_id}/update", response_model=Envelope[OwnerSubscriptionRead])
def update_subscription(
    subscription_id: uuid.UUID,
    payload: OwnerSubscriptionUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
) -> Envelope[OwnerSubscriptionRead]:
    return envelope(
        "Subscription updated successfully",
        owner_subscription_service.update_subscription(db, ctx, subscription_id, payload),
    )


@router.post("/{subscription_id}/delete", response_model=Envelope[OwnerSubscriptionRead])
def delete_subscription(
    subscription_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
) -> Envelope[OwnerSubscriptionRead]:
    return envelope("Subscription deleted successfully", owner_subscription_service.delete_subscription(db, ctx, subscription_id))
