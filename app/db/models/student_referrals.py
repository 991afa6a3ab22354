from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import BOOLEAN, BigInteger, CheckConstraint, DateTime, Index, String, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class StudentReferral(Base):
    __tablename__ = "student_referrals"
    __table_args__ = (
        CheckConstraint(
            "referrer_email <> referred_email",
            name="ck_student_referrals_no_self_referral",
        ),
        CheckConstraint(
            "is_used OR consumed_by_payment_id IS NULL",
            name="ck_student_referrals_unused_untagged",
        ),
        Index("idx_student_referrals_referrer_used", "referrer_email", "is_used"),
        Index("idx_student_referrals_referred_email", "referred_email"),
        Index("idx_student_referrals_payment", "consumed_by_payment_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    referrer_email: Mapped[str] = mapped_column(String(254), nullable=False)
    referred_email: Mapped[str] = mapped_column(String(254), nullable=False)
    is_used: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("false"))
    # No FK: facts are tagged before the consuming payment row is inserted.
    consumed_by_payment_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
