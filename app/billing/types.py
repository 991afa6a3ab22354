from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class CouponDiscount:
    code: str
    amount: int


@dataclass(frozen=True, slots=True)
class ReferralBatch:
    count: int
    amount: int

    @classmethod
    def empty(cls) -> ReferralBatch:
        return cls(count=0, amount=0)


@dataclass(frozen=True, slots=True)
class ReversalResult:
    payment_id: UUID
    coupon_released: bool
    referrals_restored: int


@dataclass(frozen=True, slots=True)
class MonthStatus:
    month: str
    status: str
    payment_id: UUID | None


@dataclass(slots=True)
class StudentDashboard:
    roll_no: str
    name: str
    email: str
    class_name: str
    board: str
    referral_code: str
    signup_coupon_used: str | None
    signup_discount: int
    referral_discount: int
    referral_count: int
    months: list[MonthStatus]


@dataclass(slots=True)
class ReferralCodeOverview:
    id: int
    code: str
    type: str
    discount: int
    created_by: str
    creator_name: str | None
    creator_roll: str | None
    used_by: str | None
    used_by_name: str | None
    used_by_roll: str | None
    discount_applied: bool | None
