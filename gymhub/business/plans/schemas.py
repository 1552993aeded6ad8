from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


MAX_QUOTA = 2**31 - 1


class PlanCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1024)
    monthly_price: Decimal = Field(ge=Decimal("0"), max_digits=12, decimal_places=2)
    yearly_price: Decimal = Field(ge=Decimal("0"), max_digits=12, decimal_places=2)
    max_gyms: int = Field(ge=0, le=MAX_QUOTA)
    max_locations: int = Field(ge=0, le=MAX_QUOTA)
    max_members: int = Field(ge=0, le=MAX_QUOTA)
    max_equipment: int = Field(ge=0, le=MAX_QUOTA)
    is_active: bool = True


class PlanUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1024)
    monthly_price: Decimal | None = Field(default=None, ge=Decimal("0"), max_digits=12, decimal_places=2)
    yearly_price: Decimal | None = Field(default=None, ge=Decimal("0"), max_digits=12, decimal_places=2)
    max_gyms: int | None = Field(default=None, ge=0, le=MAX_QUOTA)
    max_locations: int | None = Field(default=None, ge=0, le=MAX_QUOTA)
    max_members: int | None = Field(default=None, ge=0, le=MAX_QUOTA)
    max_equipment: int | None = Field(default=None, ge=0, le=MAX_QUOTA)


class PlanRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    monthly_price: Decimal
    yearly_price: Decimal
    max_gyms: int
    max_locations: int
    max_members: int
    max_equipment: int
    is_active: bool
    is_deleted: bool
    created_at: datetime
    updated_at: datetime
