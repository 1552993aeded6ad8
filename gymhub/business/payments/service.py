from __future__ import annotations

import logging
import secrets
import string
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from gymhub import audit
from gymhub.business.members.models import MemberSubscription
from gymhub.business.payments.models import Payment
from gymhub.business.payments.repository import PaymentRepository
from gymhub.business.payments.schemas import PaymentCreate, PaymentListQuery, PaymentRead
from gymhub.business.subscriptions.models import OwnerSubscription
from gymhub.business.subscriptions.periods import utcnow
from gymhub.platform.errors import NotFoundError, ValidationError
from gymhub.platform.pagination import paginate
from gymhub.platform.schemas import Page
from gymhub.platform.security.context import AuthContext


logger = logging.getLogger("gymhub.payments")

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_cash_transaction_id() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"CASH-{_to_base36(int(time.time() * 1000))}-{suffix}"


def build_payment(
    *,
    subscription_type: str,
    amount: Decimal | None,
    payment_method: str,
    transaction_id: str | None = None,
    payment_date: datetime | None = None,
    notes: str | None = None,
    owner_subscription_id: uuid.UUID | None = None,
    member_subscription_id: uuid.UUID | None = None,
) -> Payment:
    """Validate payment rules and return an unsaved ledger row."""

    if amount is None or amount <= 0:
        raise ValidationError("Payment amount must be a positive number")
    if payment_method not in ("CASH", "BANK_TRANSFER"):
        raise ValidationError(f"Unsupported payment_method: {payment_method}")
    if (owner_subscription_id is None) == (member_subscription_id is None):
        raise ValidationError("Payment must reference exactly one subscription")

    tx_id = (transaction_id or "").strip() or None
    if payment_method == "BANK_TRANSFER" and tx_id is None:
        raise ValidationError("transaction_id is required for BANK_TRANSFER")
    if tx_id is None:
        tx_id = generate_cash_transaction_id()

    return Payment(
        amount=amount,
        payment_method=payment_method,
        transaction_id=tx_id,
        payment_date=payment_date or utcnow(),
        notes=notes or None,
        subscription_type=subscription_type,
        owner_subscription_id=owner_subscription_id,
        member_subscription_id=member_subscription_id,
    )


@dataclass(slots=True)
class PaymentService:
    payment_repository: PaymentRepository = PaymentRepository()

    def record_payment(self, session: Session, ctx: AuthContext, payload: PaymentCreate) -> PaymentRead:
        if payload.subscription_type == "OWNER":
            owner_subscription = session.get(OwnerSubscription, payload.owner_subscription_id)
            if owner_subscription is None:
                raise NotFoundError("Owner subscription not found")
            self.payment_repository.validate_write_security(owner_subscription.owner_id, ctx, action="create")
            links = {"owner_subscription_id": owner_subscription.id}
        else:
            member_subscription = session.get(MemberSubscription, payload.member_subscription_id)
            if member_subscription is None:
                raise NotFoundError("Member subscription not found")
            self.payment_repository.validate_write_security(
                member_subscription.member.gym.owner_id, ctx, action="create"
            )
            links = {"member_subscription_id": member_subscription.id}

        payment = build_payment(
            subscription_type=payload.subscription_type,
            amount=payload.amount,
            payment_method=payload.payment_method,
            transaction_id=payload.transaction_id,
            payment_date=payload.payment_date,
            notes=payload.notes,
            **links,
        )
        session.add(payment)
        session.commit()
        session.refresh(payment)

        audit.record(
            str(ctx.user_id),
            "payment",
            str(payment.id),
            "payment.recorded",
            None,
            {"amount": str(payment.amount), "payment_method": payment.payment_method},
            ctx.correlation_id,
        )
        logger.info("payment.recorded", extra={"subscription_id": str(payment.owner_subscription_id or payment.member_subscription_id)})
        return PaymentRead.model_validate(payment)

    def list_payments(self, session: Session, ctx: AuthContext, params: PaymentListQuery) -> Page[PaymentRead]:
        query = select(Payment)
        if ctx.is_super_admin:
            query = query.where(Payment.owner_subscription_id.is_not(None))
            if params.subscription_type == "OWNER" and params.owner_subscription_id is not None:
                query = query.where(Payment.owner_subscription_id == params.owner_subscription_id)
        else:
            owned_member_subscriptions = select(MemberSubscription.id).where(MemberSubscription.owned_by(ctx.user_id))
            query = query.where(Payment.member_subscription_id.in_(owned_member_subscriptions))
            if params.subscription_type == "MEMBER" and params.member_subscription_id is not None:
                query = query.where(Payment.member_subscription_id == params.member_subscription_id)

        result = paginate(session, query, params, created_at=Payment.created_at)
        return Page[PaymentRead](
            data=[PaymentRead.model_validate(item) for item in result.items],
            total_count=result.total_count,
            page_count=result.page_count,
        )


payment_service = PaymentService()
