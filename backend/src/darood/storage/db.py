"""Database connection, session and transaction management."""

from contextlib import contextmanager
from typing import Callable, Generator, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from darood.logging_config import get_logger
from darood.settings import settings
from darood.storage.models import Base

logger = get_logger(__name__)

T = TypeVar("T")


class TransactionConflict(Exception):
    """Raised inside a transaction function to request a retry.

    Used when a conditional write finds that a concurrent transaction
    changed the row after it was read.
    """


class TransactionAbortedError(Exception):
    """Raised when a transaction keeps conflicting after all attempts."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Transaction aborted after {attempts} attempts")


# Postgres SQLSTATEs: serialization failure, deadlock, lock not available
_TRANSIENT_SQLSTATES = {"40001", "40P01", "55P03"}
_TRANSIENT_SQLITE_MESSAGES = ("database is locked", "database table is locked")


def _is_retryable(error: Exception) -> bool:
    """Unique-key collisions, explicit conflicts and transient lock failures."""
    if isinstance(error, (IntegrityError, TransactionConflict)):
        return True
    if isinstance(error, OperationalError):
        orig = error.orig
        sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if sqlstate in _TRANSIENT_SQLSTATES:
            return True
        message = str(orig).lower()
        return any(text in message for text in _TRANSIENT_SQLITE_MESSAGES)
    return False


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str | None = None, echo: bool | None = None):
        """Initialize database connection.

        Args:
            database_url: Database URL (defaults to settings)
            echo: Log SQL statements (defaults to settings)
        """
        self.database_url = database_url or settings.database_url
        connect_args = {}
        if self.database_url.startswith("sqlite"):
            # Sessions are handed across request threads by the pool
            connect_args["check_same_thread"] = False

        self.engine = create_engine(
            self.database_url,
            echo=settings.database_echo if echo is None else echo,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )
        logger.info("database_initialized", url=self.engine.url.render_as_string(hide_password=True))

    def create_tables(self) -> None:
        """Create all tables in the database."""
        # Register every model on the metadata before creating
        import darood.auth.models  # noqa: F401
        import darood.referral.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("tables_created")

    def drop_tables(self) -> None:
        """Drop all tables from the database."""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("tables_dropped")

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for database operations.

        Yields:
            Database session
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def run_transaction(self, fn: Callable[[Session], T], max_attempts: int = 5) -> T:
        """Run ``fn`` in a single transaction, retrying on write conflicts.

        All writes made by ``fn`` are committed together when it returns, or
        rolled back together when it raises. The whole function is re-run on
        a retryable error, so it must not keep state between attempts.

        Args:
            fn: Transaction body, receives the session
            max_attempts: Attempts before giving up

        Returns:
            Whatever ``fn`` returns

        Raises:
            TransactionAbortedError: If every attempt conflicted
        """
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                with self.session() as session:
                    return fn(session)
            except (IntegrityError, OperationalError, TransactionConflict) as e:
                if not _is_retryable(e):
                    raise
                last_error = e
                logger.warning(
                    "transaction_conflict_retry",
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error=type(e).__name__,
                )

        raise TransactionAbortedError(max_attempts) from last_error
