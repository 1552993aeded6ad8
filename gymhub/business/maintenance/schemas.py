from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel


class ExpiryReminder(BaseModel):
    subscription_type: Literal["OWNER", "MEMBER"]
    subscription_id: UUID
    days_left: int


class SweepSummary(BaseModel):
    owner_expired: int
    member_expired: int
    reminders: int
