from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from gymhub.platform.pagination import ListQuery


PaymentMethod = Literal["CASH", "BANK_TRANSFER"]
SubscriptionType = Literal["OWNER", "MEMBER"]


class PaymentDetails(BaseModel):
    """Payment fields accepted alongside subscription create and renew requests."""

    amount: Decimal | None = Field(default=None, gt=Decimal("0"), max_digits=12, decimal_places=2)
    payment_method: PaymentMethod | None = None
    transaction_id: str | None = Field(default=None, max_length=128)
    payment_date: datetime | None = None
    notes: str | None = Field(default=None, max_length=1024)


class PaymentCreate(BaseModel):
    subscription_type: SubscriptionType
    owner_subscription_id: UUID | None = None
    member_subscription_id: UUID | None = None
    amount: Decimal = Field(gt=Decimal("0"), max_digits=12, decimal_places=2)
    payment_method: PaymentMethod
    transaction_id: str | None = Field(default=None, max_length=128)
    payment_date: datetime | None = None
    notes: str | None = Field(default=None, max_length=1024)

    @model_validator(mode="after")
    def _check_subscription_reference(self) -> "PaymentCreate":
        if self.subscription_type == "OWNER" and self.owner_subscription_id is None:
            raise ValueError("owner_subscription_id is required for OWNER subscription type")
        if self.subscription_type == "MEMBER" and self.member_subscription_id is None:
            raise ValueError("member_subscription_id is required for MEMBER subscription type")
        return self


class PaymentListQuery(ListQuery):
    page: int | None = Field(default=1, ge=1)
    limit: int | None = Field(default=10, ge=1, le=1000)
    subscription_type: SubscriptionType | None = None
    owner_subscription_id: UUID | None = None
    member_subscription_id: UUID | None = None


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    amount: Decimal
    payment_method: str
    transaction_id: str
    payment_date: datetime
    notes: str | None
    subscription_type: str
    owner_subscription_id: UUID | None
    member_subscription_id: UUID | None
    created_at: datetime
