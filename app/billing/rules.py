"""Discount stacking for a monthly fee request.

Everything here is pure: callers resolve eligibility and consume coupons or
referrals first, then hand the resolved amounts to :func:`compute_charge`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from app.billing.constants import (
    ALLOWED_MONTHS,
    DISCOUNT_TYPE_COUPON,
    DISCOUNT_TYPE_REFERRAL,
    DISCOUNT_TYPE_SIGNUP,
    FIRST_ALLOWED_MONTH,
    LEGACY_DISCOUNT_TYPE_SIGNUP,
    REFERRAL_UNIT_DISCOUNT,
)
from app.billing.types import CouponDiscount, ReferralBatch


@dataclass(frozen=True, slots=True)
class DiscountEntry:
    type: str
    amount: int
    code: str | None = None
    count: int | None = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"type": self.type, "amount": self.amount}
        if self.code is not None:
            payload["code"] = self.code
        if self.count is not None:
            payload["count"] = self.count
        return payload


@dataclass(frozen=True, slots=True)
class ChargeBreakdown:
    base_fee: int
    final_amount: int
    total_discount: int
    entries: tuple[DiscountEntry, ...]

    def details(self) -> list[dict[str, object]]:
        return [entry.as_dict() for entry in self.entries]


def is_allowed_month(month: str) -> bool:
    return month in ALLOWED_MONTHS


def is_first_month(month: str) -> bool:
    return month == FIRST_ALLOWED_MONTH


def signup_discount_for(month: str, recorded_signup_discount: int | None) -> int:
    """The signup discount is spendable on the first allowed month only."""
    if not is_first_month(month):
        return 0
    if recorded_signup_discount is None or recorded_signup_discount <= 0:
        return 0
    return recorded_signup_discount


def referral_batch_amount(count: int) -> int:
    if count <= 0:
        return 0
    return count * REFERRAL_UNIT_DISCOUNT


def compute_charge(
    *,
    base_fee: int,
    signup_discount: int = 0,
    coupon: CouponDiscount | None = None,
    referral: ReferralBatch | None = None,
) -> ChargeBreakdown:
    entries: list[DiscountEntry] = []
    if signup_discount > 0:
        entries.append(DiscountEntry(type=DISCOUNT_TYPE_SIGNUP, amount=signup_discount))
    if coupon is not None:
        entries.append(
            DiscountEntry(type=DISCOUNT_TYPE_COUPON, amount=coupon.amount, code=coupon.code)
        )
    if referral is not None and referral.count > 0:
        entries.append(
            DiscountEntry(
                type=DISCOUNT_TYPE_REFERRAL,
                amount=referral.amount,
                count=referral.count,
            )
        )

    total_discount = sum(entry.amount for entry in entries)
    return ChargeBreakdown(
        base_fee=base_fee,
        final_amount=max(0, base_fee - total_discount),
        total_discount=total_discount,
        entries=tuple(entries),
    )


def parse_discount_details(
    raw_details: Iterable[Mapping[str, object]] | None,
) -> list[DiscountEntry]:
    entries: list[DiscountEntry] = []
    for raw in raw_details or ():
        entry_type = str(raw.get("type", ""))
        if entry_type == LEGACY_DISCOUNT_TYPE_SIGNUP:
            entry_type = DISCOUNT_TYPE_SIGNUP
        raw_amount = raw.get("amount")
        raw_count = raw.get("count")
        raw_code = raw.get("code")
        entries.append(
            DiscountEntry(
                type=entry_type,
                amount=raw_amount if isinstance(raw_amount, int) else 0,
                code=str(raw_code) if raw_code is not None else None,
                count=raw_count if isinstance(raw_count, int) else None,
            )
        )
    return entries


def has_referral_entry(raw_details: Iterable[Mapping[str, object]] | None) -> bool:
    return any(
        entry.type == DISCOUNT_TYPE_REFERRAL for entry in parse_discount_details(raw_details)
    )
