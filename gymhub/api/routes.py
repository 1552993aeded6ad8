from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from gymhub import audit
from gymhub.business.accounts.api import router as clients_router
from gymhub.business.facilities.api import equipment_router, gyms_router, locations_router
from gymhub.business.maintenance.api import router as maintenance_router
from gymhub.business.members.api import member_subscriptions_router, members_router
from gymhub.business.payments.api import router as payments_router
from gymhub.business.plans.api import router as plans_router
from gymhub.business.subscriptions.api import router as owner_subscriptions_router
from gymhub.core.auth import AuthUser, get_current_user
from gymhub.core.config import get_settings
from gymhub.core.rbac import require_roles
from gymhub.metrics import generate_metrics_payload, metrics_content_type
from gymhub.platform.schemas import AuditRead
from gymhub.platform.security.context import SUPER_ADMIN, AuthContext

router = APIRouter()
router.include_router(clients_router)
router.include_router(plans_router)
router.include_router(owner_subscriptions_router)
router.include_router(gyms_router)
router.include_router(locations_router)
router.include_router(equipment_router)
router.include_router(members_router)
router.include_router(member_subscriptions_router)
router.include_router(payments_router)
router.include_router(maintenance_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@router.get("/me", tags=["auth"])
async def me(user: AuthUser = Depends(get_current_user)) -> dict[str, str]:
    return {
        "sub": user.sub,
        "role": user.role,
    }


@router.get("/metrics", tags=["system"])
def metrics(user: AuthUser = Depends(get_current_user)) -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    if user.role != SUPER_ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Forbidden: requires {SUPER_ADMIN}")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())


@router.get("/audit", tags=["audit"], response_model=list[AuditRead])
def list_audit_entries(
    entity_type: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    actor_user_id: str | None = Query(default=None),
    action: str | None = Query(default=None),
    correlation_id: str | None = Query(default=None),
    cursor: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    ctx: AuthContext = Depends(require_roles(SUPER_ADMIN)),
) -> list[AuditRead]:
    entries = audit.list_entries(
        {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "actor_user_id": actor_user_id,
            "action": action,
            "correlation_id": correlation_id,
        },
        offset=cursor,
        limit=limit,
    )
    return [AuditRead(**entry) for entry in entries]
