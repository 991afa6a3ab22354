from __future__ import annotations

BASE_MONTHLY_FEE = 600
REFERRAL_UNIT_DISCOUNT = 100
SIGNUP_DISCOUNT = 100

ALLOWED_MONTHS: tuple[str, ...] = (
    "2025-04",
    "2025-05",
    "2025-06",
    "2025-07",
    "2025-08",
    "2025-09",
    "2025-10",
    "2025-11",
    "2025-12",
    "2026-01",
    "2026-02",
    "2026-03",
)
FIRST_ALLOWED_MONTH = ALLOWED_MONTHS[0]

DISCOUNT_TYPE_SIGNUP = "signup"
DISCOUNT_TYPE_COUPON = "coupon"
DISCOUNT_TYPE_REFERRAL = "referral"
# Rows written before the rename carry this label for the signup discount.
LEGACY_DISCOUNT_TYPE_SIGNUP = "initial"

PAYMENT_METHOD_CASH = "cash"

MONTH_STATUS_PAID = "paid"
MONTH_STATUS_PENDING = "pending"
MONTH_STATUS_UNPAID = "unpaid"
