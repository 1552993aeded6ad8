from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint, Uuid, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gymhub.business.accounts.models import User
from gymhub.business.facilities.models import Gym, Location, owned_gym_ids
from gymhub.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Member(Base):
    __tablename__ = "member"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("user_account.id"), nullable=False)
    gym_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("gym.id"), nullable=False)
    location_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("location.id"), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user: Mapped[User] = relationship(User, lazy="joined")
    gym: Mapped[Gym] = relationship(Gym, lazy="joined")
    location: Mapped[Location] = relationship(Location, lazy="joined")

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_member_user"),
        Index("ix_member_location_deleted", "location_id", "is_deleted"),
        Index("ix_member_gym_deleted", "gym_id", "is_deleted"),
    )

    @classmethod
    def owned_by(cls, owner_id: uuid.UUID):
        return cls.gym_id.in_(owned_gym_ids(owner_id))


class MemberSubscription(Base):
    __tablename__ = "member_subscription"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("member.id"), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    billing_model: Mapped[str] = mapped_column(String(16), nullable=False, default="MONTHLY", server_default="MONTHLY")
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    is_expired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    reminder_sent_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    member: Mapped[Member] = relationship(Member, lazy="joined")

    __table_args__ = (
        Index("ix_member_subscription_member_state", "member_id", "is_active", "is_expired", "is_deleted"),
        Index("ix_member_subscription_end_date", "end_date"),
    )

    @classmethod
    def owned_by(cls, owner_id: uuid.UUID):
        return cls.member_id.in_(select(Member.id).where(Member.gym_id.in_(owned_gym_ids(owner_id))))
