from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.rules import referral_batch_amount
from app.billing.types import ReferralBatch
from app.db.models.student_referrals import StudentReferral
from app.db.repo.student_referrals_repo import StudentReferralsRepo

logger = structlog.get_logger(__name__)


class ReferralService:
    """Referral facts accumulate per referrer and are spent as one batch."""

    @staticmethod
    async def count_unused(session: AsyncSession, *, referrer_email: str) -> int:
        return await StudentReferralsRepo.count_unused(session, referrer_email=referrer_email)

    @staticmethod
    async def available_discount(
        session: AsyncSession,
        *,
        referrer_email: str,
        has_unpaid_months: bool,
    ) -> tuple[int, int]:
        count = await StudentReferralsRepo.count_unused(session, referrer_email=referrer_email)
        amount = referral_batch_amount(count) if has_unpaid_months else 0
        return count, amount

    @staticmethod
    async def redeem_all(
        session: AsyncSession,
        *,
        referrer_email: str,
        payment_id: UUID,
    ) -> ReferralBatch:
        count = await StudentReferralsRepo.mark_unused_as_consumed(
            session,
            referrer_email=referrer_email,
            payment_id=payment_id,
        )
        if count <= 0:
            return ReferralBatch.empty()

        batch = ReferralBatch(count=count, amount=referral_batch_amount(count))
        logger.info(
            "referrals_redeemed",
            referrer=referrer_email,
            payment_id=str(payment_id),
            count=batch.count,
            amount=batch.amount,
        )
        return batch

    @staticmethod
    async def restore_for_payment(session: AsyncSession, *, payment_id: UUID) -> int:
        restored = await StudentReferralsRepo.restore_for_payment(session, payment_id=payment_id)
        if restored:
            logger.info("referrals_restored", payment_id=str(payment_id), count=restored)
        return restored

    @staticmethod
    async def restore_all(
        session: AsyncSession,
        *,
        referrer_email: str,
        untagged_only: bool = False,
    ) -> int:
        restored = await StudentReferralsRepo.restore_all_for_referrer(
            session,
            referrer_email=referrer_email,
            untagged_only=untagged_only,
        )
        if restored:
            logger.info(
                "referrals_restored_for_referrer",
                referrer=referrer_email,
                untagged_only=untagged_only,
                count=restored,
            )
        return restored

    @staticmethod
    async def record_signup(
        session: AsyncSession,
        *,
        referrer_email: str,
        referred_email: str,
        now_utc: datetime,
    ) -> StudentReferral:
        return await StudentReferralsRepo.create(
            session,
            referral=StudentReferral(
                referrer_email=referrer_email,
                referred_email=referred_email,
                is_used=False,
                consumed_by_payment_id=None,
                created_at=now_utc,
            ),
        )
