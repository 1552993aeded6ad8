from __future__ import annotations

from gymhub.platform.security.repository import BaseRepository


class PlanRepository(BaseRepository):
    resource = "plans.plan"
