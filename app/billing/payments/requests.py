from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.constants import BASE_MONTHLY_FEE, PAYMENT_METHOD_CASH
from app.billing.coupons.service import CouponService
from app.billing.errors import (
    PaymentAlreadyApprovedError,
    PaymentDuplicateError,
    PaymentMonthNotAllowedError,
    PaymentNotFoundError,
    PaymentReceiptRequiredError,
    PaymentStudentNotFoundError,
    PaymentValidationError,
)
from app.billing.referrals.service import ReferralService
from app.billing.rules import (
    compute_charge,
    is_allowed_month,
    is_first_month,
    signup_discount_for,
)
from app.billing.types import CouponDiscount, ReferralBatch, ReversalResult
from app.db.models.payments import Payment
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.students_repo import StudentsRepo
from app.services.auth_context import AuthContext

from .reversal import reverse_and_delete

logger = structlog.get_logger(__name__)

MAX_METHOD_LENGTH = 32


def _normalize_method(method: str) -> str:
    normalized = method.strip().lower()
    if not normalized or len(normalized) > MAX_METHOD_LENGTH:
        raise PaymentValidationError
    return normalized


async def request_payment(
    session: AsyncSession,
    *,
    auth: AuthContext,
    month: str,
    method: str,
    coupon_code: str | None = None,
    receipt_handle: str | None = None,
    now_utc: datetime | None = None,
) -> Payment:
    student_email = auth.require_student()
    now_utc = now_utc or datetime.now(timezone.utc)

    if not is_allowed_month(month):
        raise PaymentMonthNotAllowedError
    normalized_method = _normalize_method(method)
    if normalized_method != PAYMENT_METHOD_CASH and not receipt_handle:
        raise PaymentReceiptRequiredError

    existing = await PaymentsRepo.get_by_student_and_month(
        session,
        student_email=student_email,
        month=month,
    )
    if existing is not None:
        raise PaymentDuplicateError

    student = await StudentsRepo.get_by_email(session, student_email)
    if student is None:
        raise PaymentStudentNotFoundError

    # The id is fixed up front so referral facts can be tagged with it.
    payment_id = uuid4()
    signup_discount = signup_discount_for(month, student.signup_discount)

    coupon: CouponDiscount | None = None
    if coupon_code and coupon_code.strip():
        consumed = await CouponService.consume(
            session,
            code=coupon_code,
            consumer_email=student.email,
        )
        coupon = CouponDiscount(code=consumed.code, amount=consumed.discount)

    referral = ReferralBatch.empty()
    if not is_first_month(month):
        referral = await ReferralService.redeem_all(
            session,
            referrer_email=student.email,
            payment_id=payment_id,
        )

    charge = compute_charge(
        base_fee=BASE_MONTHLY_FEE,
        signup_discount=signup_discount,
        coupon=coupon,
        referral=referral,
    )
    payment = Payment(
        id=payment_id,
        student_email=student.email,
        student_roll=student.roll_no,
        student_name=student.name,
        month=month,
        amount=charge.final_amount,
        method=normalized_method,
        screenshot=None if normalized_method == PAYMENT_METHOD_CASH else receipt_handle,
        approved=False,
        discount_coupon=coupon.code if coupon is not None else None,
        discounts=charge.total_discount,
        discount_details=charge.details(),
        created_at=now_utc,
        approved_at=None,
    )
    try:
        await PaymentsRepo.create(session, payment=payment)
    except IntegrityError as exc:
        # A concurrent request won the (student, month) slot; the enclosing
        # transaction rolls back the coupon and referral updates with it.
        raise PaymentDuplicateError from exc

    logger.info(
        "payment_requested",
        payment_id=str(payment.id),
        student=student.email,
        month=month,
        amount=payment.amount,
        discounts=payment.discounts,
        coupon=payment.discount_coupon,
        referral_count=referral.count,
    )
    return payment


async def cancel_payment(
    session: AsyncSession,
    *,
    auth: AuthContext,
    payment_id: UUID,
) -> ReversalResult:
    student_email = auth.require_student()

    payment = await PaymentsRepo.get_by_id_for_update(session, payment_id)
    if payment is None or payment.student_email != student_email:
        raise PaymentNotFoundError
    if payment.approved:
        raise PaymentAlreadyApprovedError

    result = await reverse_and_delete(session, payment=payment)
    logger.info(
        "payment_cancelled",
        payment_id=str(payment_id),
        student=student_email,
        coupon_released=result.coupon_released,
        referrals_restored=result.referrals_restored,
    )
    return result


async def check_coupon(session: AsyncSession, *, auth: AuthContext, code: str) -> int:
    auth.require_student()
    return await CouponService.validate(session, code=code)
