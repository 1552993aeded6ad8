from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gymhub.business.maintenance.schemas import SweepSummary
from gymhub.business.maintenance.service import expiry_sweeper
from gymhub.core.database import get_db
from gymhub.core.rbac import require_roles
from gymhub.platform.schemas import Envelope, envelope
from gymhub.platform.security.context import SUPER_ADMIN, AuthContext


router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/expire-subscriptions", response_model=Envelope[SweepSummary])
def expire_subscriptions(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_roles(SUPER_ADMIN)),
) -> Envelope[SweepSummary]:
    return envelope("Subscription check completed", expiry_sweeper.expire_subscriptions(db))
