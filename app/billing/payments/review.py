from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.errors import PaymentAlreadyApprovedError, PaymentNotFoundError
from app.billing.types import ReversalResult
from app.db.models.payments import Payment
from app.db.repo.payments_repo import PaymentsRepo
from app.services.auth_context import AuthContext

from .reversal import reverse_and_delete

logger = structlog.get_logger(__name__)


async def approve_payment(
    session: AsyncSession,
    *,
    auth: AuthContext,
    payment_id: UUID,
    now_utc: datetime | None = None,
) -> Payment:
    auth.require_admin()
    now_utc = now_utc or datetime.now(timezone.utc)

    payment = await PaymentsRepo.get_by_id_for_update(session, payment_id)
    if payment is None:
        raise PaymentNotFoundError
    if payment.approved:
        return payment

    payment.approved = True
    payment.approved_at = now_utc
    await session.flush()
    logger.info(
        "payment_approved",
        payment_id=str(payment.id),
        student=payment.student_email,
        month=payment.month,
        amount=payment.amount,
    )
    return payment


async def reject_payment(
    session: AsyncSession,
    *,
    auth: AuthContext,
    payment_id: UUID,
) -> ReversalResult:
    auth.require_admin()

    payment = await PaymentsRepo.get_by_id_for_update(session, payment_id)
    if payment is None:
        raise PaymentNotFoundError
    if payment.approved:
        raise PaymentAlreadyApprovedError

    student_email = payment.student_email
    month = payment.month
    result = await reverse_and_delete(session, payment=payment)
    logger.info(
        "payment_rejected",
        payment_id=str(payment_id),
        student=student_email,
        month=month,
        coupon_released=result.coupon_released,
        referrals_restored=result.referrals_restored,
    )
    return result
