from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.coupons.service import CouponService
from app.billing.referrals.service import ReferralService
from app.billing.rules import has_referral_entry
from app.billing.types import ReversalResult
from app.db.models.payments import Payment
from app.db.repo.payments_repo import PaymentsRepo


async def reverse_and_delete(session: AsyncSession, *, payment: Payment) -> ReversalResult:
    """Undoes coupon and referral consumption, then removes the pending payment."""
    coupon_released = False
    if payment.discount_coupon:
        coupon_released = await CouponService.release(session, code=payment.discount_coupon)

    referrals_restored = 0
    if has_referral_entry(payment.discount_details):
        referrals_restored = await ReferralService.restore_for_payment(
            session,
            payment_id=payment.id,
        )
        if referrals_restored == 0:
            # Facts consumed before payment tagging existed carry no payment id.
            referrals_restored = await ReferralService.restore_all(
                session,
                referrer_email=payment.student_email,
                untagged_only=True,
            )

    payment_id = payment.id
    await PaymentsRepo.delete(session, payment=payment)
    return ReversalResult(
        payment_id=payment_id,
        coupon_released=coupon_released,
        referrals_restored=referrals_restored,
    )
