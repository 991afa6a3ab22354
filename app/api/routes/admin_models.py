from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    message: str


class StudentResponse(BaseModel):
    id: int
    roll_no: str
    name: str
    email: str
    class_name: str
    board: str
    referral_code: str
    signup_coupon_used: str | None = None
    signup_discount: int = Field(ge=0)
    approved: bool
    created_at: datetime
    last_payment_at: datetime | None = None


class AdminPaymentResponse(BaseModel):
    id: UUID
    student_email: str
    student_roll: str
    student_name: str
    class_name: str
    board: str
    month: str
    amount: int = Field(ge=0)
    method: str
    screenshot: str | None = None
    approved: bool
    discount_coupon: str | None = None
    discounts: int = Field(ge=0)
    discount_details: list[dict[str, Any]]
    created_at: datetime
    approved_at: datetime | None = None


class PaymentApprovalResponse(BaseModel):
    id: UUID
    approved: bool
    approved_at: datetime | None = None


class MonthlyStatResponse(BaseModel):
    month: str
    count: int = Field(ge=0)


class CouponCreateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=32)
    discount: int = Field(ge=0)


class CouponResponse(BaseModel):
    id: int
    code: str
    discount: int = Field(ge=0)
    used_by: str | None = None
    is_consumed: bool
    used_count: int = Field(ge=0, le=1)
    created_at: datetime


class ReferralCodeResponse(BaseModel):
    id: int
    code: str
    type: str
    discount: int = Field(ge=0)
    created_by: str
    creator_name: str | None = None
    creator_roll: str | None = None
    used_by: str | None = None
    used_by_name: str | None = None
    used_by_roll: str | None = None
    discount_applied: bool | None = None
