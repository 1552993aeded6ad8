from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from gymhub.business.accounts.schemas import UserRead
from gymhub.platform.pagination import ListQuery


EquipmentStatus = Literal["ACTIVE", "MAINTENANCE", "RETIRED"]


class AddressFields(BaseModel):
    address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=128)
    state: str | None = Field(default=None, max_length=128)
    zip_code: str | None = Field(default=None, max_length=32)
    country: str | None = Field(default=None, max_length=128)
    phone_number: str | None = Field(default=None, max_length=32)


class GymCreate(AddressFields):
    name: str = Field(min_length=1, max_length=255)
    owner_id: UUID | None = None


class GymUpdate(AddressFields):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    owner_id: UUID | None = None


class GymListQuery(ListQuery):
    owner_id: UUID | None = None
    is_active: bool | None = None


class GymRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    name: str
    address: str | None
    city: str | None
    state: str | None
    zip_code: str | None
    country: str | None
    phone_number: str | None
    is_active: bool
    is_deleted: bool
    created_at: datetime
    updated_at: datetime
    owner: UserRead | None = None


class LocationCreate(AddressFields):
    gym_id: UUID
    name: str = Field(min_length=1, max_length=255)


class LocationUpdate(AddressFields):
    gym_id: UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)


class LocationListQuery(ListQuery):
    gym_id: UUID | None = None


class LocationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    gym_id: UUID
    name: str
    address: str | None
    city: str | None
    state: str | None
    zip_code: str | None
    country: str | None
    phone_number: str | None
    is_active: bool
    is_deleted: bool
    created_at: datetime
    updated_at: datetime


class EquipmentCreate(BaseModel):
    gym_id: UUID
    location_id: UUID | None = None
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=64)
    category: str | None = Field(default=None, max_length=64)
    brand: str | None = Field(default=None, max_length=128)
    serial_number: str | None = Field(default=None, max_length=128)
    quantity: int = Field(default=1, ge=1, le=2**31 - 1)
    condition: str | None = Field(default=None, max_length=32)
    status: EquipmentStatus = "ACTIVE"
    purchase_date: date | None = None
    purchase_cost: Decimal | None = Field(default=None, ge=Decimal("0"), max_digits=12, decimal_places=2)


class EquipmentUpdate(BaseModel):
    location_id: UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: str | None = Field(default=None, min_length=1, max_length=64)
    category: str | None = Field(default=None, max_length=64)
    brand: str | None = Field(default=None, max_length=128)
    serial_number: str | None = Field(default=None, max_length=128)
    quantity: int | None = Field(default=None, ge=1, le=2**31 - 1)
    condition: str | None = Field(default=None, max_length=32)
    status: EquipmentStatus | None = None
    purchase_date: date | None = None
    purchase_cost: Decimal | None = Field(default=None, ge=Decimal("0"), max_digits=12, decimal_places=2)


class EquipmentListQuery(ListQuery):
    gym_id: UUID | None = None
    location_id: UUID | None = None


class EquipmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    gym_id: UUID
    location_id: UUID | None
    name: str
    type: str
    category: str | None
    brand: str | None
    serial_number: str | None
    quantity: int
    condition: str | None
    status: str
    purchase_date: date | None
    purchase_cost: Decimal | None
    is_deleted: bool
    created_at: datetime
    updated_at: datetime
