from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gymhub.business.payments.schemas import PaymentCreate, PaymentListQuery, PaymentRead
from gymhub.business.payments.service import payment_service
from gymhub.core.database import get_db
from gymhub.core.rbac import require_roles
from gymhub.platform.schemas import Envelope, Page, envelope
from gymhub.platform.security.context import GYM_OWNER, SUPER_ADMIN, AuthContext


router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("", response_model=Envelope[PaymentRead], status_code=status.HTTP_201_CREATED)
def record_payment(
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_roles(SUPER_ADMIN, GYM_OWNER)),
) -> Envelope[PaymentRead]:
    return envelope("Payment recorded successfully", payment_service.record_payment(db, ctx, payload))


@router.post("/search", response_model=Page[PaymentRead])
def list_payments(
    params: PaymentListQuery,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_roles(SUPER_ADMIN, GYM_OWNER)),
) -> Page[PaymentRead]:
    return payment_service.list_payments(db, ctx, params)
