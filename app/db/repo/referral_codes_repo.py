from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.referral_codes import (
    REFERRAL_CODE_TYPE_ADMIN,
    AdminCoupon,
    ReferralCode,
)


class ReferralCodesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, code_id: int) -> ReferralCode | None:
        return await session.get(ReferralCode, code_id)

    @staticmethod
    async def get_by_code(session: AsyncSession, code: str) -> ReferralCode | None:
        stmt = select(ReferralCode).where(ReferralCode.code == code)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, referral_code: ReferralCode) -> ReferralCode:
        session.add(referral_code)
        await session.flush()
        return referral_code

    @staticmethod
    async def claim_admin_coupon(
        session: AsyncSession,
        *,
        code: str,
        consumer_email: str,
    ) -> AdminCoupon | None:
        """Single conditional write: only an unclaimed admin coupon is updated."""
        stmt = (
            update(ReferralCode)
            .where(
                ReferralCode.code == code,
                ReferralCode.type == REFERRAL_CODE_TYPE_ADMIN,
                ReferralCode.used_by.is_(None),
            )
            .values(used_by=consumer_email)
            .returning(ReferralCode.id)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        coupon_id = result.scalar_one_or_none()
        if coupon_id is None:
            return None
        coupon = await session.get(AdminCoupon, coupon_id)
        return coupon

    @staticmethod
    async def release_admin_coupon(session: AsyncSession, *, code: str) -> bool:
        stmt = (
            update(ReferralCode)
            .where(
                ReferralCode.code == code,
                ReferralCode.type == REFERRAL_CODE_TYPE_ADMIN,
                ReferralCode.used_by.is_not(None),
            )
            .values(used_by=None)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0) > 0

    @staticmethod
    async def delete_unused_admin_coupon(session: AsyncSession, *, coupon_id: int) -> bool:
        stmt = (
            delete(ReferralCode)
            .where(
                ReferralCode.id == coupon_id,
                ReferralCode.type == REFERRAL_CODE_TYPE_ADMIN,
                ReferralCode.used_by.is_(None),
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0) > 0

    @staticmethod
    async def list_admin_coupons(session: AsyncSession) -> list[AdminCoupon]:
        stmt = select(AdminCoupon).order_by(AdminCoupon.created_at.desc(), AdminCoupon.id.desc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_all(session: AsyncSession) -> list[ReferralCode]:
        stmt = select(ReferralCode).order_by(ReferralCode.type.asc(), ReferralCode.code.asc())
        result = await session.execute(stmt)
        return list(result.scalars().all())
