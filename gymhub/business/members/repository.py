from __future__ import annotations

from gymhub.platform.security.repository import BaseRepository


class MemberRepository(BaseRepository):
    resource = "members.member"


class MemberSubscriptionRepository(BaseRepository):
    resource = "members.member_subscription"
