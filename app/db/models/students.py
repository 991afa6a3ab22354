from __future__ import annotations

from datetime import datetime

from sqlalchemy import BOOLEAN, BigInteger, CheckConstraint, DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class Student(Base):
    __tablename__ = "students"
    __table_args__ = (
        CheckConstraint("signup_discount >= 0", name="ck_students_signup_discount_non_negative"),
        Index("idx_students_approved", "approved"),
        Index("idx_students_name", "name"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    roll_no: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(254), unique=True, nullable=False)
    class_name: Mapped[str] = mapped_column(String(32), nullable=False)
    board: Mapped[str] = mapped_column(String(32), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    referral_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    signup_coupon_used: Mapped[str | None] = mapped_column(String(32), nullable=True)
    signup_discount: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    approved: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("false"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
