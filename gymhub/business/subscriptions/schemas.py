from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, model_validator

from gymhub.business.accounts.schemas import UserRead
from gymhub.business.limits.schemas import CurrentCounts, SubscriptionLimits
from gymhub.business.payments.schemas import PaymentDetails, PaymentMethod
from gymhub.business.plans.schemas import PlanRead
from gymhub.business.subscriptions.periods import BillingModel
from gymhub.platform.pagination import ListQuery


class OwnerSubscriptionCreate(PaymentDetails):
    owner_id: UUID
    plan_id: UUID
    billing_model: BillingModel
    start_date: datetime | None = None
    carry_over_remaining_days: bool = False


class OwnerSubscriptionRenew(PaymentDetails):
    owner_id: UUID | None = None
    subscription_id: UUID | None = None
    renew_date: datetime | None = None
    billing_model: BillingModel | None = None
    payment_method: PaymentMethod

    @model_validator(mode="after")
    def _require_target(self) -> "OwnerSubscriptionRenew":
        if self.owner_id is None and self.subscription_id is None:
            raise ValueError("owner_id or subscription_id is required")
        return self


class OwnerSubscriptionUpdate(BaseModel):
    plan_id: UUID | None = None
    billing_model: BillingModel | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class OwnerSubscriptionListQuery(ListQuery):
    owner_id: UUID | None = None
    plan_id: UUID | None = None
    is_active: bool | None = None


class OwnerSubscriptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    plan_id: UUID | None
    billing_model: str
    start_date: datetime
    end_date: datetime
    is_active: bool
    is_expired: bool
    is_deleted: bool
    remaining_days: int = 0
    created_at: datetime
    updated_at: datetime
    owner: UserRead | None = None
    plan: PlanRead | None = None


class SubscriptionStatusRead(BaseModel):
    owner_id: UUID
    subscription_active: bool
    subscription_expired: bool
    subscription_limits: SubscriptionLimits
    current_counts: CurrentCounts
    subscription: OwnerSubscriptionRead | None = None

