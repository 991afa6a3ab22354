from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class MonthStatusResponse(BaseModel):
    month: str
    status: str
    payment_id: UUID | None = None


class StudentDashboardResponse(BaseModel):
    roll_no: str
    name: str
    email: str
    class_name: str
    board: str
    referral_code: str
    signup_coupon_used: str | None = None
    signup_discount: int = Field(ge=0)
    referral_discount: int = Field(ge=0)
    referral_count: int = Field(ge=0)
    months: list[MonthStatusResponse]


class CouponCheckResponse(BaseModel):
    code: str
    discount: int = Field(ge=0)


class PaymentResponse(BaseModel):
    id: UUID
    month: str
    amount: int = Field(ge=0)
    method: str
    approved: bool
    discount_coupon: str | None = None
    discounts: int = Field(ge=0)
    discount_details: list[dict[str, Any]]
    created_at: datetime


class ReversalResponse(BaseModel):
    payment_id: UUID
    coupon_released: bool
    referrals_restored: int = Field(ge=0)
