from mams.core.auth.models import User, UserRole
from mams.core.auth.service import AuthService
from mams.core.auth.jwt import create_access_token, create_refresh_token, decode_token
from mams.core.auth.dependencies import get_current_user, require_roles

__all__ = [
    "User",
    "UserRole",
    "AuthService",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "get_current_user",
    "require_roles",
]
