from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from gymhub.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Plan(Base):
    __tablename__ = "plan"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    monthly_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    yearly_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    max_gyms: Mapped[int] = mapped_column(Integer, nullable=False)
    max_locations: Mapped[int] = mapped_column(Integer, nullable=False)
    max_members: Mapped[int] = mapped_column(Integer, nullable=False)
    max_equipment: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("monthly_price >= 0", name="ck_plan_monthly_price_non_negative"),
        CheckConstraint("yearly_price >= 0", name="ck_plan_yearly_price_non_negative"),
        CheckConstraint(
            "max_gyms >= 0 AND max_locations >= 0 AND max_members >= 0 AND max_equipment >= 0",
            name="ck_plan_quotas_non_negative",
        ),
        Index("ix_plan_active_deleted", "is_active", "is_deleted"),
    )
