"""Result of applying a referral code."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class RejectionReason(str, Enum):
    """Why a referral was not applied. These are expected outcomes, not errors."""
    SELF_REFERRAL = "self_referral"
    ALREADY_REFERRED = "already_referred"
    ACCOUNT_TOO_OLD = "account_too_old"
    REFERRER_NOT_FOUND = "referrer_not_found"
    REFERRER_LIMIT = "referrer_limit"


@dataclass(frozen=True)
class ReferralOutcome:
    applied: bool
    reason: RejectionReason | None = None

    @classmethod
    def success(cls) -> "ReferralOutcome":
        return cls(applied=True)

    @classmethod
    def rejected(cls, reason: RejectionReason) -> "ReferralOutcome":
        return cls(applied=False, reason=reason)

    def to_dict(self) -> dict[str, Any]:
        if self.reason is None:
            return {"applied": self.applied}
        return {"applied": self.applied, "reason": self.reason.value}
