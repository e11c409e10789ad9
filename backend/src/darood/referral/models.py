"""Referral system database models."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from darood.storage.models import Base


class ReferralCode(Base):
    """Referral code index.

    Keyed by the code exactly as issued. ``normalized`` holds the lowercase
    form so codes typed in any casing can still be resolved.
    """
    __tablename__ = "referral_codes"

    code = Column(String(32), primary_key=True)
    user_id = Column(String(128), nullable=True, index=True)  # Owner; may point at a deleted account
    normalized = Column(String(32), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<ReferralCode(code={self.code}, user_id={self.user_id})>"


class ReferralEvent(Base):
    """Audit record of one applied referral. Never updated or deleted."""
    __tablename__ = "referrals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    referral_code = Column(String(32), nullable=False)  # Code as stored, not as typed
    referrer_id = Column(String(128), ForeignKey("user_accounts.id"), nullable=False, index=True)
    referred_id = Column(String(128), ForeignKey("user_accounts.id"), nullable=False, index=True)
    points_awarded = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<ReferralEvent(referrer={self.referrer_id}, referred={self.referred_id})>"
