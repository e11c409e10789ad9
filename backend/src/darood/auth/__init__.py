"""Authentication: bearer tokens carrying the caller's opaque user id."""

from darood.auth.local import LocalAuthService
from darood.auth.middleware import get_current_user_id, require_auth
from darood.auth.models import UserAccount
from darood.auth.users import UserService

__all__ = [
    "UserAccount",
    "LocalAuthService",
    "UserService",
    "get_current_user_id",
    "require_auth",
]
