from __future__ import annotations

from gymhub.platform.security.repository import BaseRepository


class OwnerSubscriptionRepository(BaseRepository):
    resource = "subscriptions.owner_subscription"
