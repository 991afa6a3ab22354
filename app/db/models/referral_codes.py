from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base

REFERRAL_CODE_TYPE_ADMIN = "admin"
REFERRAL_CODE_TYPE_STUDENT = "student"
ADMIN_CREATOR = "admin"


class ReferralCode(Base):
    """Discount codes share one table; ``type`` selects the consumption model."""

    __tablename__ = "referral_codes"
    __table_args__ = (
        CheckConstraint("type IN ('admin','student')", name="ck_referral_codes_type"),
        CheckConstraint("discount >= 0", name="ck_referral_codes_discount_non_negative"),
        CheckConstraint(
            "type = 'admin' OR used_by IS NULL",
            name="ck_referral_codes_student_never_used",
        ),
        Index("idx_referral_codes_type", "type"),
        Index("idx_referral_codes_created_by", "created_by"),
    )
    __mapper_args__ = {"polymorphic_on": "type"}

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    discount: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[str] = mapped_column(String(254), nullable=False)
    used_by: Mapped[str | None] = mapped_column(String(254), nullable=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )


class AdminCoupon(ReferralCode):
    """Staff-issued code, consumable by exactly one payment at a time."""

    __mapper_args__ = {"polymorphic_identity": REFERRAL_CODE_TYPE_ADMIN}

    @property
    def is_consumed(self) -> bool:
        return self.used_by is not None


class StudentReferralCode(ReferralCode):
    """A student's permanent code, reusable by any number of referees."""

    __mapper_args__ = {"polymorphic_identity": REFERRAL_CODE_TYPE_STUDENT}
