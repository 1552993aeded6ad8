from __future__ import annotations

import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any

from gymhub.context import get_correlation_id
from gymhub.core.config import get_settings

# most recent entries only; older ones are dropped once the buffer is full
audit_entries: deque[dict[str, Any]] = deque(maxlen=get_settings().audit_buffer_size)


def record(
    actor_user_id: str,
    entity_type: str,
    entity_id: str,
    action: str,
    before: dict[str, Any] | None,
    after: dict[str, Any] | None,
    correlation_id: str | None = None,
) -> None:
    """Append an entry to the in-process audit trail."""
    audit_entries.append(
        {
            "id": str(uuid.uuid4()),
            "actor_user_id": actor_user_id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "action": action,
            "before": before,
            "after": after,
            "correlation_id": correlation_id or get_correlation_id(),
            "occurred_at": datetime.now(timezone.utc).isoformat(),
        }
    )


def list_entries(filters: dict[str, Any], *, offset: int = 0, limit: int = 50) -> list[dict[str, Any]]:
    """Newest-first slice of the trail matching every non-empty filter."""

    matched: list[dict[str, Any]] = []
    for entry in reversed(audit_entries):
        if any(value is not None and str(entry.get(key)) != str(value) for key, value in filters.items()):
            continue
        matched.append(entry)
    return matched[offset : offset + limit]
