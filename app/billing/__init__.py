from app.billing.coupons import CouponService
from app.billing.payments import PaymentService
from app.billing.referrals import ReferralService

__all__ = [
    "CouponService",
    "PaymentService",
    "ReferralService",
]
