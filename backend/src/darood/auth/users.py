"""User provisioning for operators and tests. Regular signup is external."""

from datetime import datetime

from darood.auth.models import UserAccount, utcnow
from darood.errors import FailedPreconditionError, InvalidArgumentError
from darood.logging_config import get_logger
from darood.storage.db import Database

logger = get_logger(__name__)


class UserService:
    """Creates and reads user accounts."""

    def __init__(self, database: Database):
        self.database = database

    def create_user(
        self,
        user_id: str,
        name: str | None = None,
        email: str | None = None,
        created_at: datetime | None = None,
    ) -> UserAccount:
        """Create a user with zero balances.

        Args:
            user_id: Opaque id from the identity provider
            name: Display name
            email: Email address
            created_at: Signup time (defaults to now)

        Returns:
            The created account

        Raises:
            InvalidArgumentError: If user_id is empty
            FailedPreconditionError: If the user already exists
        """
        user_id = (user_id or "").strip()
        if not user_id:
            raise InvalidArgumentError("Missing user id")

        with self.database.session() as session:
            if session.get(UserAccount, user_id) is not None:
                raise FailedPreconditionError(f"User {user_id} already exists")

            user = UserAccount(
                id=user_id,
                name=name,
                email=email,
                total_count=0,
                month_count=0,
                referral_count=0,
                created_at=created_at or utcnow(),
            )
            session.add(user)

        logger.info("user_created", user_id=user_id)
        return user

    def get_user(self, user_id: str) -> UserAccount | None:
        with self.database.session() as session:
            return session.get(UserAccount, user_id)
