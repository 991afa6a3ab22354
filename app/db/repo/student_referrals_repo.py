from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.student_referrals import StudentReferral


class StudentReferralsRepo:
    @staticmethod
    async def create(session: AsyncSession, *, referral: StudentReferral) -> StudentReferral:
        session.add(referral)
        await session.flush()
        return referral

    @staticmethod
    async def count_unused(session: AsyncSession, *, referrer_email: str) -> int:
        stmt = select(func.count(StudentReferral.id)).where(
            StudentReferral.referrer_email == referrer_email,
            StudentReferral.is_used.is_(False),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def mark_unused_as_consumed(
        session: AsyncSession,
        *,
        referrer_email: str,
        payment_id: UUID,
    ) -> int:
        stmt = (
            select(StudentReferral)
            .where(
                StudentReferral.referrer_email == referrer_email,
                StudentReferral.is_used.is_(False),
            )
            .with_for_update()
        )
        result = await session.execute(stmt)
        referrals = list(result.scalars().all())
        for referral in referrals:
            referral.is_used = True
            referral.consumed_by_payment_id = payment_id
        await session.flush()
        return len(referrals)

    @staticmethod
    async def restore_for_payment(session: AsyncSession, *, payment_id: UUID) -> int:
        stmt = (
            update(StudentReferral)
            .where(
                StudentReferral.consumed_by_payment_id == payment_id,
                StudentReferral.is_used.is_(True),
            )
            .values(is_used=False, consumed_by_payment_id=None)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0)

    @staticmethod
    async def restore_all_for_referrer(
        session: AsyncSession,
        *,
        referrer_email: str,
        untagged_only: bool = False,
    ) -> int:
        stmt = update(StudentReferral).where(
            StudentReferral.referrer_email == referrer_email,
            StudentReferral.is_used.is_(True),
        )
        if untagged_only:
            stmt = stmt.where(StudentReferral.consumed_by_payment_id.is_(None))
        stmt = stmt.values(is_used=False, consumed_by_payment_id=None).execution_options(
            synchronize_session="fetch"
        )
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0)
