"""Authentication dependencies for FastAPI."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from darood.auth.local import LocalAuthService
from darood.errors import UnauthenticatedError
from darood.logging_config import get_logger

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

# Auth service instance
auth_service = LocalAuthService()


async def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str | None:
    """Get the authenticated caller's user id.

    Args:
        request: FastAPI request
        credentials: Bearer token

    Returns:
        User id or None if not authenticated
    """
    if not credentials:
        return None

    user_id = auth_service.get_user_id_from_token(credentials.credentials)

    if user_id:
        # Store caller in request state for later use
        request.state.user_id = user_id

    return user_id


def require_auth(user_id: str | None = Depends(get_current_user_id)) -> str:
    """Require authentication.

    Args:
        user_id: Current caller from get_current_user_id

    Returns:
        Authenticated user id

    Raises:
        UnauthenticatedError: If the request carries no valid token
    """
    if not user_id:
        raise UnauthenticatedError("The function must be called while authenticated.")
    return user_id
