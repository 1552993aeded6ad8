from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.sql import Select

from gymhub.platform.security.context import AuthContext
from gymhub.platform.security.ownership import apply_ownership_filter, validate_ownership_write


class BaseRepository:
    resource = ""

    def apply_scope_query(self, query: Select[Any], ctx: AuthContext) -> Select[Any]:
        return apply_ownership_filter(query, self.resource, ctx)

    def validate_write_security(
        self,
        owner_id: uuid.UUID | None,
        ctx: AuthContext,
        *,
        action: str = "write",
        entity_id: uuid.UUID | None = None,
    ) -> None:
        validate_ownership_write(
            self.resource,
            owner_id,
            ctx,
            action=action,
            entity_id=str(entity_id) if entity_id is not None else None,
        )
