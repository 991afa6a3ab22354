from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.errors import (
    CouponAlreadyUsedError,
    CouponDuplicateError,
    CouponInUseError,
    CouponNotFoundError,
    CouponValidationError,
    CouponWrongTypeError,
)
from app.billing.types import ReferralCodeOverview
from app.core.referral_codes import normalize_code
from app.db.models.referral_codes import (
    ADMIN_CREATOR,
    REFERRAL_CODE_TYPE_STUDENT,
    AdminCoupon,
    ReferralCode,
)
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.referral_codes_repo import ReferralCodesRepo
from app.db.repo.students_repo import StudentsRepo

logger = structlog.get_logger(__name__)

MAX_COUPON_CODE_LENGTH = 32


def _ensure_consumable(code: ReferralCode | None) -> AdminCoupon:
    if code is None:
        raise CouponNotFoundError
    if not isinstance(code, AdminCoupon):
        raise CouponWrongTypeError
    if code.used_by is not None:
        raise CouponAlreadyUsedError
    return code


class CouponService:
    """Admin coupon lifecycle: AVAILABLE -> CONSUMED -> AVAILABLE, or AVAILABLE -> DELETED."""

    @staticmethod
    async def validate(session: AsyncSession, *, code: str) -> int:
        normalized = normalize_code(code)
        if not normalized:
            raise CouponNotFoundError
        coupon = _ensure_consumable(await ReferralCodesRepo.get_by_code(session, normalized))
        return coupon.discount

    @staticmethod
    async def consume(
        session: AsyncSession,
        *,
        code: str,
        consumer_email: str,
    ) -> AdminCoupon:
        normalized = normalize_code(code)
        if not normalized:
            raise CouponNotFoundError

        claimed = await ReferralCodesRepo.claim_admin_coupon(
            session,
            code=normalized,
            consumer_email=consumer_email,
        )
        if claimed is not None:
            logger.info("coupon_consumed", code=normalized, consumer=consumer_email)
            return claimed

        # Nothing matched the conditional update; re-read to report why.
        _ensure_consumable(await ReferralCodesRepo.get_by_code(session, normalized))
        raise CouponAlreadyUsedError

    @staticmethod
    async def release(session: AsyncSession, *, code: str) -> bool:
        normalized = normalize_code(code)
        if not normalized:
            return False
        released = await ReferralCodesRepo.release_admin_coupon(session, code=normalized)
        if released:
            logger.info("coupon_released", code=normalized)
        return released

    @staticmethod
    async def delete(session: AsyncSession, *, coupon_id: int) -> None:
        coupon = await ReferralCodesRepo.get_by_id(session, coupon_id)
        if coupon is None or not isinstance(coupon, AdminCoupon):
            raise CouponNotFoundError
        if coupon.used_by is not None:
            raise CouponInUseError

        deleted = await ReferralCodesRepo.delete_unused_admin_coupon(session, coupon_id=coupon_id)
        if not deleted:
            raise CouponInUseError
        logger.info("coupon_deleted", coupon_id=coupon_id, code=coupon.code)

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        code: str,
        discount: int,
        now_utc: datetime | None = None,
    ) -> AdminCoupon:
        now_utc = now_utc or datetime.now(timezone.utc)
        normalized = normalize_code(code)
        if not normalized or len(normalized) > MAX_COUPON_CODE_LENGTH:
            raise CouponValidationError
        if discount < 0:
            raise CouponValidationError

        if await ReferralCodesRepo.get_by_code(session, normalized) is not None:
            raise CouponDuplicateError

        coupon = AdminCoupon(
            code=normalized,
            discount=discount,
            created_by=ADMIN_CREATOR,
            used_by=None,
            created_at=now_utc,
        )
        try:
            await ReferralCodesRepo.create(session, referral_code=coupon)
        except IntegrityError as exc:
            raise CouponDuplicateError from exc

        logger.info("coupon_created", code=normalized, discount=discount)
        return coupon

    @staticmethod
    async def list_admin_coupons(session: AsyncSession) -> list[AdminCoupon]:
        return await ReferralCodesRepo.list_admin_coupons(session)

    @staticmethod
    async def list_referral_codes(session: AsyncSession) -> list[ReferralCodeOverview]:
        codes = await ReferralCodesRepo.list_all(session)
        emails = [code.created_by for code in codes if code.created_by != ADMIN_CREATOR]
        emails.extend(code.used_by for code in codes if code.used_by)
        students_by_email = {
            student.email: student
            for student in await StudentsRepo.list_by_emails(session, emails)
        }
        referrer_emails = [
            code.created_by for code in codes if code.type == REFERRAL_CODE_TYPE_STUDENT
        ]
        with_referral_discount = await PaymentsRepo.list_emails_with_referral_discount(
            session,
            referrer_emails,
        )

        overviews: list[ReferralCodeOverview] = []
        for code in codes:
            creator = students_by_email.get(code.created_by)
            consumer = students_by_email.get(code.used_by) if code.used_by else None
            is_admin_created = code.created_by == ADMIN_CREATOR
            overviews.append(
                ReferralCodeOverview(
                    id=code.id,
                    code=code.code,
                    type=code.type,
                    discount=code.discount,
                    created_by=code.created_by,
                    creator_name="Admin" if is_admin_created else getattr(creator, "name", None),
                    creator_roll=None if is_admin_created else getattr(creator, "roll_no", None),
                    used_by=code.used_by,
                    used_by_name=getattr(consumer, "name", None),
                    used_by_roll=getattr(consumer, "roll_no", None),
                    discount_applied=(
                        code.created_by in with_referral_discount
                        if code.type == REFERRAL_CODE_TYPE_STUDENT
                        else None
                    ),
                )
            )
        return overviews
