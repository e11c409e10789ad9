"""Referral service: code lookup, code assignment and the points award."""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, TypeVar

from sqlalchemy import desc, func, update
from sqlalchemy.orm import Session

from darood.auth.models import UserAccount, utcnow
from darood.errors import (
    DaroodError,
    FailedPreconditionError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    UnauthenticatedError,
)
from darood.logging_config import get_logger
from darood.referral.codes import generate_referral_code, normalize_code
from darood.referral.models import ReferralCode, ReferralEvent
from darood.referral.outcome import ReferralOutcome, RejectionReason
from darood.settings import Settings, settings
from darood.storage.db import Database, TransactionConflict

logger = get_logger(__name__)

T = TypeVar("T")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ReferralService:
    """Service for applying referral codes and managing users' own codes."""

    def __init__(self, database: Database, config: Settings | None = None):
        """Initialize referral service.

        Args:
            database: Store holding users, codes and referral events
            config: Program limits (defaults to global settings)
        """
        self.database = database
        self.settings = config or settings
        self.logger = get_logger(__name__)

    # ==================== APPLY ====================

    def apply_referral(
        self,
        caller_id: str | None,
        referral_code: Any,
        points: Any = None,
        now: datetime | None = None,
    ) -> ReferralOutcome:
        """Link the caller to the owner of ``referral_code`` and award points.

        Both users receive ``points`` on their total and monthly balances and
        the referrer's referral count goes up by one, all in one transaction
        together with the audit event. Expected refusals come back as a
        rejected outcome and write nothing.

        Args:
            caller_id: Authenticated caller
            referral_code: Code as typed by the caller, any casing
            points: Whole points for each side; non-numbers fall back to the default
            now: Clock override for the account age check

        Returns:
            ReferralOutcome

        Raises:
            UnauthenticatedError: No caller
            InvalidArgumentError: Empty code, or fractional points
            NotFoundError: Code unknown or not owned by anyone
            FailedPreconditionError: Caller has no user record yet
            InternalError: Anything unexpected, after logging it
        """
        if not caller_id:
            raise UnauthenticatedError("The function must be called while authenticated.")

        code = str(referral_code).strip() if referral_code else ""
        if not code:
            raise InvalidArgumentError("Missing referralCode")

        points = self._coerce_points(points)

        try:
            referrer_id, actual_code = self._resolve_referrer(code)

            outcome = self.database.run_transaction(
                lambda session: self._award(
                    session,
                    caller_id=caller_id,
                    referrer_id=referrer_id,
                    actual_code=actual_code,
                    points=points,
                    now=now,
                ),
                max_attempts=self.settings.referral_transaction_attempts,
            )
        except DaroodError:
            raise
        except Exception as e:
            self.logger.exception("apply_referral_failed", caller_id=caller_id, code=code)
            raise InternalError("Internal error applying referral") from e

        if outcome.applied:
            self.logger.info(
                "referral_applied",
                referrer_id=referrer_id,
                referred_id=caller_id,
                code=actual_code,
                points=points,
            )
        else:
            self.logger.info(
                "referral_rejected",
                caller_id=caller_id,
                referrer_id=referrer_id,
                reason=outcome.reason.value,
            )

        return outcome

    def _coerce_points(self, points: Any) -> int:
        """Non-numbers fall back to the default; balances only take whole points."""
        if isinstance(points, bool) or not isinstance(points, (int, float)):
            return self.settings.referral_default_points
        if isinstance(points, float):
            if not math.isfinite(points) or not points.is_integer():
                raise InvalidArgumentError("points must be a whole number")
            return int(points)
        return points

    def _find_code(self, session: Session, code: str) -> ReferralCode | None:
        """Exact key first, then the lowercase index."""
        direct = session.get(ReferralCode, code)
        if direct is not None:
            return direct

        return (
            session.query(ReferralCode)
            .filter(ReferralCode.normalized == normalize_code(code))
            .order_by(ReferralCode.created_at, ReferralCode.code)
            .first()
        )

    def _resolve_referrer(self, code: str) -> tuple[str, str]:
        """Resolve a code to (referrer id, code as stored).

        Not transactional: the award transaction re-checks everything it
        depends on.
        """
        with self.database.session() as session:
            match = self._find_code(session, code)
            if match is None:
                raise NotFoundError("Invalid referral code")
            referrer_id, actual_code = match.user_id, match.code

        if not referrer_id:
            raise NotFoundError("Referral code has no associated user")

        return referrer_id, actual_code

    def _award(
        self,
        session: Session,
        *,
        caller_id: str,
        referrer_id: str,
        actual_code: str,
        points: int,
        now: datetime | None,
    ) -> ReferralOutcome:
        """Transaction body. Re-run from scratch on conflict."""
        if referrer_id == caller_id:
            return ReferralOutcome.rejected(RejectionReason.SELF_REFERRAL)

        caller = (
            session.query(UserAccount)
            .filter(UserAccount.id == caller_id)
            .with_for_update()
            .first()
        )
        if caller is None:
            raise FailedPreconditionError("New user document must exist before applying referral")

        if caller.referred_by_id:
            return ReferralOutcome.rejected(RejectionReason.ALREADY_REFERRED)

        if caller.created_at is not None:
            age = _as_utc(now or utcnow()) - _as_utc(caller.created_at)
            if age > timedelta(days=self.settings.referral_max_account_age_days):
                return ReferralOutcome.rejected(RejectionReason.ACCOUNT_TOO_OLD)

        referrer = (
            session.query(UserAccount)
            .filter(UserAccount.id == referrer_id)
            .with_for_update()
            .first()
        )
        if referrer is None:
            return ReferralOutcome.rejected(RejectionReason.REFERRER_NOT_FOUND)

        if (referrer.referral_count or 0) >= self.settings.referral_max_referrals:
            return ReferralOutcome.rejected(RejectionReason.REFERRER_LIMIT)

        caller_values = {
            "referred_by_id": referrer_id,
            "referred_at": func.now(),
            "total_count": func.coalesce(UserAccount.total_count, 0) + points,
            "month_count": func.coalesce(UserAccount.month_count, 0) + points,
            "updated_at": utcnow(),
        }

        if not caller.referral_code:
            new_code = generate_referral_code(self.settings.referral_code_length)
            session.add(ReferralCode(code=new_code, user_id=caller_id, normalized=normalize_code(new_code)))
            # A taken code fails here and the transaction is retried with a fresh one
            session.flush()
            caller_values["referral_code"] = new_code

        # referred_by_id is write-once: only set it if nobody got there first
        result = session.execute(
            update(UserAccount)
            .where(UserAccount.id == caller_id)
            .where(UserAccount.referred_by_id.is_(None))
            .values(caller_values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise TransactionConflict(f"user {caller_id} was referred concurrently")

        # The cap holds even when concurrent readers all saw room for one more
        result = session.execute(
            update(UserAccount)
            .where(UserAccount.id == referrer_id)
            .where(func.coalesce(UserAccount.referral_count, 0) < self.settings.referral_max_referrals)
            .values(
                total_count=func.coalesce(UserAccount.total_count, 0) + points,
                month_count=func.coalesce(UserAccount.month_count, 0) + points,
                referral_count=func.coalesce(UserAccount.referral_count, 0) + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise TransactionConflict(f"referrer {referrer_id} reached the cap concurrently")

        session.add(
            ReferralEvent(
                referral_code=actual_code,
                referrer_id=referrer_id,
                referred_id=caller_id,
                points_awarded=points,
            )
        )

        return ReferralOutcome.success()

    # ==================== OWN CODE ====================

    def get_or_create_code(self, user_id: str) -> str:
        """Get existing referral code or create one for the user.

        Args:
            user_id: User ID

        Returns:
            The user's referral code

        Raises:
            NotFoundError: If the user does not exist
        """

        def assign(session: Session) -> tuple[str, bool]:
            user = (
                session.query(UserAccount)
                .filter(UserAccount.id == user_id)
                .with_for_update()
                .first()
            )
            if user is None:
                raise NotFoundError("User document does not exist")

            if user.referral_code:
                return user.referral_code, False

            code = generate_referral_code(self.settings.referral_code_length)
            session.add(ReferralCode(code=code, user_id=user_id, normalized=normalize_code(code)))
            session.flush()
            user.referral_code = code
            user.updated_at = utcnow()
            return code, True

        code, created = self._guarded(
            "get_or_create_code_failed",
            lambda: self.database.run_transaction(
                assign, max_attempts=self.settings.referral_transaction_attempts
            ),
            user_id=user_id,
        )

        if created:
            self.logger.info("referral_code_created", user_id=user_id, code=code)

        return code

    # ==================== LOOKUPS ====================

    def validate_code(self, code: str | None) -> ReferralCode | None:
        """Validate a referral code without side effects.

        Args:
            code: Referral code in any casing

        Returns:
            The stored ReferralCode if it resolves to an owner, None otherwise
        """
        code = (code or "").strip()
        if not code:
            return None

        with self.database.session() as session:
            match = self._find_code(session, code)

        if match is None or not match.user_id:
            return None
        return match

    def get_referrer_for_user(self, user_id: str) -> str | None:
        """Get the id of the user who referred ``user_id``, if any."""
        with self.database.session() as session:
            user = session.get(UserAccount, user_id)
            return user.referred_by_id if user else None

    def get_referral_stats(self, user_id: str, recent_limit: int = 20) -> dict[str, Any]:
        """Get referral statistics for a user.

        Creates the user's code if they do not have one yet.

        Args:
            user_id: User ID
            recent_limit: How many recent referral events to include

        Returns:
            Dict with code, counters and recent referrals
        """
        code = self.get_or_create_code(user_id)

        with self.database.session() as session:
            user = session.get(UserAccount, user_id)
            if user is None:
                raise NotFoundError("User document does not exist")

            events = (
                session.query(ReferralEvent)
                .filter(ReferralEvent.referrer_id == user_id)
                .order_by(desc(ReferralEvent.created_at), desc(ReferralEvent.id))
                .limit(recent_limit)
                .all()
            )

            return {
                "code": code,
                "referral_count": user.referral_count or 0,
                "total_count": user.total_count or 0,
                "month_count": user.month_count or 0,
                "referred_by": user.referred_by_id,
                "recent_referrals": [
                    {
                        "referred_id": event.referred_id,
                        "points_awarded": event.points_awarded,
                        "created_at": event.created_at.isoformat() if event.created_at else None,
                    }
                    for event in events
                ],
            }

    def _guarded(self, event: str, fn: Callable[[], T], **context: Any) -> T:
        try:
            return fn()
        except DaroodError:
            raise
        except Exception as e:
            self.logger.exception(event, **context)
            raise InternalError("Internal error") from e
