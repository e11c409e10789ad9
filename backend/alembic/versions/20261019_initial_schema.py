"""Initial schema: user accounts and referral program

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Adds tables for:
- user_accounts: point balances and referral columns
- referral_codes: code index with lowercase lookup column
- referrals: one audit row per applied referral
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create user and referral tables."""

    op.create_table(
        "user_accounts",
        sa.Column("id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("total_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("month_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("referral_code", sa.String(32), nullable=True),
        sa.Column("referred_by_id", sa.String(128), nullable=True),
        sa.Column("referred_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("referral_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["referred_by_id"], ["user_accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("referral_code"),
    )
    op.create_index("ix_user_accounts_email", "user_accounts", ["email"], unique=False)
    op.create_index("ix_user_accounts_referred_by_id", "user_accounts", ["referred_by_id"], unique=False)

    # Keyed by the literal code; normalized is the lowercase lookup column
    op.create_table(
        "referral_codes",
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=True),
        sa.Column("normalized", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("code"),
    )
    op.create_index("ix_referral_codes_user_id", "referral_codes", ["user_id"], unique=False)
    op.create_index("ix_referral_codes_normalized", "referral_codes", ["normalized"], unique=False)

    op.create_table(
        "referrals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("referral_code", sa.String(32), nullable=False),
        sa.Column("referrer_id", sa.String(128), nullable=False),
        sa.Column("referred_id", sa.String(128), nullable=False),
        sa.Column("points_awarded", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["referrer_id"], ["user_accounts.id"]),
        sa.ForeignKeyConstraint(["referred_id"], ["user_accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_referrals_referrer_id", "referrals", ["referrer_id"], unique=False)
    op.create_index("ix_referrals_referred_id", "referrals", ["referred_id"], unique=False)


def downgrade() -> None:
    """Drop user and referral tables."""
    op.drop_table("referrals")
    op.drop_table("referral_codes")
    op.drop_table("user_accounts")
