from app.billing.referrals.service import ReferralService

__all__ = ["ReferralService"]
