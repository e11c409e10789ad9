"""Referral program.

A new user enters a friend's code within a week of signing up; both get
points once, and the friend's referral count goes up by one.
"""

from darood.referral.models import ReferralCode, ReferralEvent
from darood.referral.outcome import ReferralOutcome, RejectionReason
from darood.referral.service import ReferralService

__all__ = [
    "ReferralCode",
    "ReferralEvent",
    "ReferralOutcome",
    "RejectionReason",
    "ReferralService",
]
