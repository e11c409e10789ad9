"""User account model."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from darood.storage.models import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserAccount(Base):
    """User account for the Darood Counter app.

    Rows are created at signup. The referral service only touches the
    referral columns and the point balances.
    """
    __tablename__ = "user_accounts"

    id = Column(String(128), primary_key=True)  # Opaque id from the identity provider

    # Identity
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True)

    # Points
    total_count = Column(Integer, nullable=False, default=0)
    month_count = Column(Integer, nullable=False, default=0)

    # Referral program
    referral_code = Column(String(32), unique=True, nullable=True)
    referred_by_id = Column(String(128), ForeignKey("user_accounts.id"), nullable=True, index=True)  # Write-once
    referred_at = Column(DateTime(timezone=True), nullable=True)
    referral_count = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<UserAccount(id={self.id}, total_count={self.total_count})>"
