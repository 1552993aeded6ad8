from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from gymhub.business.accounts.schemas import UserRead
from gymhub.business.payments.schemas import PaymentDetails
from gymhub.platform.pagination import ListQuery


class MemberCreate(BaseModel):
    gym_id: UUID
    location_id: UUID
    user_id: UUID | None = None
    first_name: str = Field(min_length=1, max_length=128)
    last_name: str = Field(min_length=1, max_length=128)
    email: EmailStr | None = None
    phone_number: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=128)
    country: str | None = Field(default=None, max_length=128)


class MemberListQuery(ListQuery):
    gym_id: UUID | None = None
    location_id: UUID | None = None


class MemberRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    gym_id: UUID
    location_id: UUID
    is_deleted: bool
    created_at: datetime
    user: UserRead | None = None


class MemberSubscriptionCreate(PaymentDetails):
    member_id: UUID
    price: Decimal = Field(gt=Decimal("0"), max_digits=12, decimal_places=2)
    use_custom_dates: bool = False
    months: int | None = Field(default=None, ge=1, le=120)
    start_date: datetime | None = None
    end_date: datetime | None = None

    @model_validator(mode="after")
    def _check_period(self) -> "MemberSubscriptionCreate":
        if self.use_custom_dates:
            if self.start_date is None or self.end_date is None:
                raise ValueError("start_date and end_date are required when use_custom_dates is true")
        elif self.months is None:
            raise ValueError("months is required when use_custom_dates is false")
        return self


class MemberSubscriptionListQuery(ListQuery):
    member_id: UUID | None = None
    is_active: bool | None = None


class MemberSubscriptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    member_id: UUID
    price: Decimal
    billing_model: str
    start_date: datetime
    end_date: datetime
    is_active: bool
    is_expired: bool
    is_deleted: bool
    created_at: datetime
