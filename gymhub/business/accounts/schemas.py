from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from gymhub.business.payments.schemas import PaymentDetails
from gymhub.platform.pagination import ListQuery


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    email: str
    phone_number: str | None
    role: str
    is_active: bool


class ClientCreate(PaymentDetails):
    first_name: str = Field(min_length=1, max_length=128)
    last_name: str = Field(min_length=1, max_length=128)
    email: EmailStr
    phone_number: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=128)
    country: str | None = Field(default=None, max_length=128)
    plan_id: UUID | None = None
    billing_model: Literal["MONTHLY", "YEARLY"] | None = None
    start_date: datetime | None = None


class ClientListQuery(ListQuery):
    is_active: bool | None = None


class ClientSubscriptionSummary(BaseModel):
    id: UUID
    plan_id: UUID | None
    plan_name: str | None
    billing_model: str
    start_date: datetime
    end_date: datetime
    is_active: bool
    is_expired: bool


class ClientRead(UserRead):
    created_at: datetime
    subscription: ClientSubscriptionSummary | None = None
