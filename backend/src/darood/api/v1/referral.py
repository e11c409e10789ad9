"""Referral API v1 endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from darood.api.rate_limit import limiter
from darood.auth.middleware import require_auth
from darood.logging_config import get_logger
from darood.referral.service import ReferralService
from darood.settings import settings

logger = get_logger(__name__)

router = APIRouter(prefix="/referral", tags=["referral"])


def get_referral_service(request: Request) -> ReferralService:
    """Service built at startup and kept on the app state."""
    return request.app.state.referral_service


# ==================== MODELS ====================


class ApplyReferralRequest(BaseModel):
    """Request to apply a referral code to the caller's account.

    Both fields are loosely typed: an empty code is reported as
    invalid-argument, and a non-numeric ``points`` falls back to the default.
    """
    model_config = ConfigDict(populate_by_name=True)

    referral_code: Any = Field(default=None, alias="referralCode")
    points: Any = None


class ApplyReferralResponse(BaseModel):
    """Outcome of applying a referral code."""
    applied: bool
    reason: str | None = None


class ReferralCodeResponse(BaseModel):
    """Response with user's referral code."""
    code: str


class RecentReferral(BaseModel):
    referred_id: str
    points_awarded: int
    created_at: str | None = None


class ReferralStatsResponse(BaseModel):
    """Response with referral statistics."""
    code: str
    referral_count: int
    total_count: int
    month_count: int
    referred_by: str | None = None
    recent_referrals: list[RecentReferral]


class ValidateCodeRequest(BaseModel):
    """Request to validate a referral code."""
    code: str


class ValidateCodeResponse(BaseModel):
    """Response from code validation."""
    valid: bool
    code: str | None = None


# ==================== ENDPOINTS ====================


@router.post("/apply", response_model=ApplyReferralResponse, response_model_exclude_none=True)
@limiter.limit(settings.referral_apply_rate_limit)
def apply_referral(
    request: Request,
    body: ApplyReferralRequest | None = None,
    user_id: str = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
):
    """Apply a referral code entered by the signed-in user.

    Recognized refusals (self referral, already referred, ...) are returned
    with ``applied: false`` and a ``reason``; everything else is an error.
    """
    if body is None:
        body = ApplyReferralRequest()
    outcome = service.apply_referral(user_id, body.referral_code, body.points)
    return ApplyReferralResponse(**outcome.to_dict())


@router.get("/code", response_model=ReferralCodeResponse)
def get_referral_code(
    user_id: str = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
):
    """Get current user's referral code.

    Creates a new code if user doesn't have one.
    """
    return ReferralCodeResponse(code=service.get_or_create_code(user_id))


@router.get("/stats", response_model=ReferralStatsResponse)
def get_referral_stats(
    user_id: str = Depends(require_auth),
    service: ReferralService = Depends(get_referral_service),
):
    """Get referral statistics for current user."""
    return ReferralStatsResponse(**service.get_referral_stats(user_id))


@router.post("/validate", response_model=ValidateCodeResponse)
@limiter.limit(settings.referral_validate_rate_limit)
def validate_referral_code(
    request: Request,
    body: ValidateCodeRequest,
    service: ReferralService = Depends(get_referral_service),
):
    """Validate a referral code before submitting it.

    The returned code is the stored casing, which may differ from the input.
    """
    referral_code = service.validate_code(body.code)

    if not referral_code:
        return ValidateCodeResponse(valid=False)

    return ValidateCodeResponse(valid=True, code=referral_code.code)
