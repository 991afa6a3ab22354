from app.db.models.base import Base
from app.db.models.counters import Counter
from app.db.models.payments import Payment
from app.db.models.referral_codes import AdminCoupon, ReferralCode, StudentReferralCode
from app.db.models.student_referrals import StudentReferral
from app.db.models.students import Student

__all__ = [
    "AdminCoupon",
    "Base",
    "Counter",
    "Payment",
    "ReferralCode",
    "Student",
    "StudentReferral",
    "StudentReferralCode",
]
