from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    message: str
    data: T


class Page(BaseModel, Generic[T]):
    model_config = ConfigDict(populate_by_name=True)

    data: list[T]
    total_count: int = Field(alias="totalCount")
    page_count: int = Field(alias="pageCount")


def envelope(message: str, data: T) -> Envelope[T]:
    return Envelope(message=message, data=data)


class AuditRead(BaseModel):
    id: str
    entity_type: str
    entity_id: str
    action: str
    actor_user_id: str
    occurred_at: datetime
    correlation_id: str | None
    before: dict | None
    after: dict | None
