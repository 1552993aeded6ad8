from gymhub.platform.security.context import GYM_OWNER, MEMBER, SUPER_ADMIN, AuthContext
from gymhub.platform.security.ownership import apply_ownership_filter, is_admin_bypass, validate_ownership_write
from gymhub.platform.security.repository import BaseRepository

__all__ = [
    "AuthContext",
    "BaseRepository",
    "GYM_OWNER",
    "MEMBER",
    "SUPER_ADMIN",
    "apply_ownership_filter",
    "is_admin_bypass",
    "validate_ownership_write",
]
