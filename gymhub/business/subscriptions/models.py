from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gymhub.business.accounts.models import User
from gymhub.business.plans.models import Plan
from gymhub.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OwnerSubscription(Base):
    __tablename__ = "owner_subscription"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("user_account.id"), nullable=False)
    plan_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), ForeignKey("plan.id"), nullable=True)
    billing_model: Mapped[str] = mapped_column(String(16), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    is_expired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    reminder_sent_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    owner: Mapped[User] = relationship(User, lazy="joined")
    plan: Mapped[Plan | None] = relationship(Plan, lazy="joined")

    __table_args__ = (
        Index("ix_owner_subscription_owner_state", "owner_id", "is_active", "is_expired", "is_deleted"),
        Index("ix_owner_subscription_plan", "plan_id"),
        Index("ix_owner_subscription_end_date", "end_date"),
    )

    @classmethod
    def owned_by(cls, owner_id: uuid.UUID):
        return cls.owner_id == owner_id
