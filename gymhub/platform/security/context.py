from __future__ import annotations

import uuid
from dataclasses import dataclass


SUPER_ADMIN = "SUPER_ADMIN"
GYM_OWNER = "GYM_OWNER"
MEMBER = "MEMBER"

ROLES = (SUPER_ADMIN, GYM_OWNER, MEMBER)


@dataclass(slots=True)
class AuthContext:
    """Request-scoped caller identity passed explicitly into every service call."""

    user_id: uuid.UUID
    role: str
    correlation_id: str | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN

    @property
    def is_gym_owner(self) -> bool:
        return self.role == GYM_OWNER
