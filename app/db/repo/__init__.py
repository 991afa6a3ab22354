from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.referral_codes_repo import ReferralCodesRepo
from app.db.repo.student_referrals_repo import StudentReferralsRepo
from app.db.repo.students_repo import StudentsRepo

__all__ = [
    "PaymentsRepo",
    "ReferralCodesRepo",
    "StudentReferralsRepo",
    "StudentsRepo",
]
