import uuid
from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status

from gymhub.context import get_correlation_id
from gymhub.core.auth import AuthUser, get_current_user
from gymhub.platform.security.context import AuthContext


def get_auth_context(request: Request, user: AuthUser = Depends(get_current_user)) -> AuthContext:
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    return AuthContext(user_id=uuid.UUID(user.sub), role=user.role, correlation_id=correlation_id)


def require_roles(*roles: str) -> Callable[..., AuthContext]:
    def checker(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if ctx.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden: requires one of {', '.join(roles)}",
            )
        return ctx

    return checker
