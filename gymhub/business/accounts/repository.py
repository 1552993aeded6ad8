from __future__ import annotations

from gymhub.platform.security.repository import BaseRepository


class UserRepository(BaseRepository):
    resource = "accounts.user"
