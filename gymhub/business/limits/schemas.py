from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel


ResourceType = Literal["gym", "location", "member", "equipment"]


class SubscriptionLimits(BaseModel):
    max_gyms: int = 0
    max_locations: int = 0
    max_members: int = 0
    max_equipment: int = 0


class CurrentCounts(BaseModel):
    gyms: int = 0
    locations: int = 0
    members: int = 0
    equipment: int = 0


class LimitCheckRead(BaseModel):
    exceeded: bool
    current: int
    max: int
    resource_type: ResourceType
    location_id: UUID | None = None

