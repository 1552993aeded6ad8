from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, Uuid, or_, select
from sqlalchemy.orm import Mapped, mapped_column

from gymhub.business.members.models import MemberSubscription
from gymhub.business.subscriptions.models import OwnerSubscription
from gymhub.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Payment(Base):
    """Append-only ledger entry linked to exactly one owner or member subscription."""

    __tablename__ = "payment"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False)
    transaction_id: Mapped[str] = mapped_column(String(128), nullable=False)
    payment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    notes: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    subscription_type: Mapped[str] = mapped_column(String(16), nullable=False)
    owner_subscription_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("owner_subscription.id"), nullable=True
    )
    member_subscription_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("member_subscription.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        CheckConstraint(
            "(subscription_type = 'OWNER' AND owner_subscription_id IS NOT NULL AND member_subscription_id IS NULL)"
            " OR (subscription_type = 'MEMBER' AND member_subscription_id IS NOT NULL AND owner_subscription_id IS NULL)",
            name="ck_payment_single_subscription",
        ),
        Index("ix_payment_owner_subscription", "owner_subscription_id"),
        Index("ix_payment_member_subscription", "member_subscription_id"),
        Index("ix_payment_type_date", "subscription_type", "payment_date"),
    )

    @classmethod
    def owned_by(cls, owner_id: uuid.UUID):
        return or_(
            cls.owner_subscription_id.in_(select(OwnerSubscription.id).where(OwnerSubscription.owner_id == owner_id)),
            cls.member_subscription_id.in_(select(MemberSubscription.id).where(MemberSubscription.owned_by(owner_id))),
        )
