from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.sql import Select

from gymhub import audit
from gymhub.metrics import observe_ownership_denied_write
from gymhub.platform.errors import AuthorizationError
from gymhub.platform.security.context import AuthContext


def is_admin_bypass(ctx: AuthContext) -> bool:
    return ctx.is_super_admin


def apply_ownership_filter(query: Select[Any], resource: str, ctx: AuthContext) -> Select[Any]:
    """Restrict a select to rows owned by the caller, for models exposing ``owned_by``."""

    if is_admin_bypass(ctx):
        return query

    for description in query.column_descriptions:
        model = description.get("entity")
        if model is None:
            continue
        owned_by = getattr(model, "owned_by", None)
        if owned_by is not None:
            query = query.where(owned_by(ctx.user_id))

    return query


def validate_ownership_write(
    resource: str,
    owner_id: uuid.UUID | None,
    ctx: AuthContext,
    *,
    action: str = "write",
    entity_id: str | None = None,
) -> None:
    if is_admin_bypass(ctx):
        return
    if owner_id is not None and owner_id == ctx.user_id:
        return

    observe_ownership_denied_write(resource)
    audit.record(
        actor_user_id=str(ctx.user_id),
        entity_type=resource,
        entity_id=entity_id or "",
        action="ownership.denied",
        before=None,
        after={"action": action, "owner_id": str(owner_id) if owner_id is not None else None},
        correlation_id=ctx.correlation_id,
    )
    raise AuthorizationError(f"Forbidden: {resource} does not belong to the caller")
