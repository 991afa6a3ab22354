from app.billing.coupons.service import CouponService

__all__ = ["CouponService"]
