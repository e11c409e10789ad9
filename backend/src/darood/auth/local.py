"""Bearer token issuing and verification.

Signup and sign-in happen at the identity provider; this service only turns
a token into the caller's opaque user id (the ``sub`` claim).
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from darood.logging_config import get_logger
from darood.settings import settings

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"


class LocalAuthService:
    """Issues and verifies HS256 access tokens."""

    def __init__(self, secret_key: str | None = None, expire_hours: int | None = None):
        """Initialize auth service.

        Args:
            secret_key: Signing key (defaults to settings)
            expire_hours: Token lifetime (defaults to settings)
        """
        self.secret_key = secret_key or settings.jwt_secret_key
        self.expire_hours = expire_hours or settings.jwt_expire_hours
        self.logger = get_logger(__name__)

    def create_access_token(
        self,
        user_id: str,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create JWT access token.

        Args:
            user_id: Opaque user id, stored as ``sub``
            expires_delta: Optional expiration time

        Returns:
            JWT token string
        """
        if expires_delta is None:
            expires_delta = timedelta(hours=self.expire_hours)

        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "exp": now + expires_delta,
            "iat": now,
        }

        return jwt.encode(payload, self.secret_key, algorithm=JWT_ALGORITHM)

    def verify_token(self, token: str) -> dict[str, Any] | None:
        """Verify and decode JWT token.

        Args:
            token: JWT token string

        Returns:
            Token payload or None if invalid
        """
        try:
            return jwt.decode(token, self.secret_key, algorithms=[JWT_ALGORITHM])
        except JWTError as e:
            self.logger.debug("token_verification_failed", error=str(e))
            return None

    def get_user_id_from_token(self, token: str) -> str | None:
        """Get the caller's user id from a token, or None if invalid."""
        payload = self.verify_token(token)
        if not payload:
            return None

        user_id = payload.get("sub")
        return str(user_id) if user_id else None
