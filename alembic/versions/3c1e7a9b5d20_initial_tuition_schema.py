"""initial_tuition_schema

Revision ID: 3c1e7a9b5d20
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3c1e7a9b5d20"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "students",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("roll_no", sa.String(64), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("class_name", sa.String(32), nullable=False),
        sa.Column("board", sa.String(32), nullable=False),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("referral_code", sa.String(16), nullable=False),
        sa.Column("signup_coupon_used", sa.String(32), nullable=True),
        sa.Column("signup_discount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("signup_discount >= 0", name="ck_students_signup_discount_non_negative"),
        sa.UniqueConstraint("roll_no", name="uq_students_roll_no"),
        sa.UniqueConstraint("email", name="uq_students_email"),
        sa.UniqueConstraint("referral_code", name="uq_students_referral_code"),
    )
    op.create_index("idx_students_approved", "students", ["approved"])
    op.create_index("idx_students_name", "students", ["name"])

    op.create_table(
        "counters",
        sa.Column("name", sa.String(32), primary_key=True),
        sa.Column("seq", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
    )

    op.create_table(
        "referral_codes",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("discount", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.String(254), nullable=False),
        sa.Column("used_by", sa.String(254), nullable=True),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("type IN ('admin','student')", name="ck_referral_codes_type"),
        sa.CheckConstraint("discount >= 0", name="ck_referral_codes_discount_non_negative"),
        sa.CheckConstraint("type = 'admin' OR used_by IS NULL", name="ck_referral_codes_student_never_used"),
        sa.UniqueConstraint("code", name="uq_referral_codes_code"),
    )
    op.create_index("idx_referral_codes_type", "referral_codes", ["type"])
    op.create_index("idx_referral_codes_created_by", "referral_codes", ["created_by"])

    op.create_table(
        "student_referrals",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("referrer_email", sa.String(254), nullable=False),
        sa.Column("referred_email", sa.String(254), nullable=False),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("consumed_by_payment_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("referrer_email <> referred_email", name="ck_student_referrals_no_self_referral"),
        sa.CheckConstraint(
            "is_used OR consumed_by_payment_id IS NULL",
            name="ck_student_referrals_unused_untagged",
        ),
    )
    op.create_index(
        "idx_student_referrals_referrer_used",
        "student_referrals",
        ["referrer_email", "is_used"],
    )
    op.create_index("idx_student_referrals_referred_email", "student_referrals", ["referred_email"])
    op.create_index("idx_student_referrals_payment", "student_referrals", ["consumed_by_payment_id"])

    op.create_table(
        "payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("student_email", sa.String(254), nullable=False),
        sa.Column("student_roll", sa.String(64), nullable=False),
        sa.Column("student_name", sa.Text(), nullable=False),
        sa.Column("month", sa.String(7), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("method", sa.String(32), nullable=False),
        sa.Column("screenshot", sa.String(128), nullable=True),
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("discount_coupon", sa.String(32), nullable=True),
        sa.Column("discounts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "discount_details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount >= 0", name="ck_payments_amount_non_negative"),
        sa.CheckConstraint("discounts >= 0", name="ck_payments_discounts_non_negative"),
        sa.UniqueConstraint("student_email", "month", name="uq_payments_student_month"),
    )
    op.create_index("idx_payments_month", "payments", ["month"])
    op.create_index("idx_payments_created_at", "payments", ["created_at"])
    op.create_index("idx_payments_discount_coupon", "payments", ["discount_coupon"])


def downgrade() -> None:
    op.drop_index("idx_payments_discount_coupon", table_name="payments")
    op.drop_index("idx_payments_created_at", table_name="payments")
    op.drop_index("idx_payments_month", table_name="payments")
    op.drop_table("payments")

    op.drop_index("idx_student_referrals_payment", table_name="student_referrals")
    op.drop_index("idx_student_referrals_referred_email", table_name="student_referrals")
    op.drop_index("idx_student_referrals_referrer_used", table_name="student_referrals")
    op.drop_table("student_referrals")

    op.drop_index("idx_referral_codes_created_by", table_name="referral_codes")
    op.drop_index("idx_referral_codes_type", table_name="referral_codes")
    op.drop_table("referral_codes")

    op.drop_table("counters")

    op.drop_index("idx_students_name", table_name="students")
    op.drop_index("idx_students_approved", table_name="students")
    op.drop_table("students")
