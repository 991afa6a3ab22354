from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.constants import (
    ALLOWED_MONTHS,
    MONTH_STATUS_PAID,
    MONTH_STATUS_PENDING,
    MONTH_STATUS_UNPAID,
)
from app.billing.errors import PaymentStudentNotFoundError
from app.billing.referrals.service import ReferralService
from app.billing.types import MonthStatus, StudentDashboard
from app.db.models.payments import Payment
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.students_repo import StudentsRepo
from app.services.auth_context import AuthContext


def build_month_statuses(payments: list[Payment]) -> list[MonthStatus]:
    by_month = {payment.month: payment for payment in payments}
    statuses: list[MonthStatus] = []
    for month in ALLOWED_MONTHS:
        payment = by_month.get(month)
        if payment is None:
            statuses.append(MonthStatus(month=month, status=MONTH_STATUS_UNPAID, payment_id=None))
            continue
        statuses.append(
            MonthStatus(
                month=month,
                status=MONTH_STATUS_PAID if payment.approved else MONTH_STATUS_PENDING,
                payment_id=payment.id,
            )
        )
    return statuses


async def student_dashboard(session: AsyncSession, *, auth: AuthContext) -> StudentDashboard:
    student_email = auth.require_student()
    student = await StudentsRepo.get_by_email(session, student_email)
    if student is None:
        raise PaymentStudentNotFoundError

    payments = await PaymentsRepo.list_by_student(session, student_email=student.email)
    months = build_month_statuses(payments)
    has_unpaid_months = any(month.status == MONTH_STATUS_UNPAID for month in months)
    referral_count, referral_discount = await ReferralService.available_discount(
        session,
        referrer_email=student.email,
        has_unpaid_months=has_unpaid_months,
    )

    return StudentDashboard(
        roll_no=student.roll_no,
        name=student.name,
        email=student.email,
        class_name=student.class_name,
        board=student.board,
        referral_code=student.referral_code,
        signup_coupon_used=student.signup_coupon_used,
        signup_discount=student.signup_discount,
        referral_discount=referral_discount,
        referral_count=referral_count,
        months=months,
    )
