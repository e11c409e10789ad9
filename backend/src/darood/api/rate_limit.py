"""Rate limiting for the Darood API."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from darood.settings import settings


def caller_or_remote_address(request: Request) -> str:
    """Throttle signed-in callers by user id, everyone else by IP."""
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


# Single shared limiter instance - disabled outside production
limiter = Limiter(
    key_func=caller_or_remote_address,
    default_limits=["200/minute"],
    storage_uri="memory://",
    enabled=settings.env == "production",
)
