from __future__ import annotations

from fastapi import APIRouter, Depends

from app.billing import CouponService
from app.billing.types import ReferralCodeOverview
from app.db.models.referral_codes import AdminCoupon
from app.db.session import SessionLocal
from app.services.auth_context import AuthContext

from .admin_models import (
    CouponCreateRequest,
    CouponResponse,
    MessageResponse,
    ReferralCodeResponse,
)
from .errors import DOMAIN_ERRORS, as_http_exception
from .session_helpers import current_auth

router = APIRouter(prefix="/api/admin", tags=["admin", "coupons"])


def _coupon_as_response(coupon: AdminCoupon) -> CouponResponse:
    return CouponResponse(
        id=coupon.id,
        code=coupon.code,
        discount=coupon.discount,
        used_by=coupon.used_by,
        is_consumed=coupon.is_consumed,
        used_count=1 if coupon.is_consumed else 0,
        created_at=coupon.created_at,
    )


def _overview_as_response(overview: ReferralCodeOverview) -> ReferralCodeResponse:
    return ReferralCodeResponse(
        id=overview.id,
        code=overview.code,
        type=overview.type,
        discount=overview.discount,
        created_by=overview.created_by,
        creator_name=overview.creator_name,
        creator_roll=overview.creator_roll,
        used_by=overview.used_by,
        used_by_name=overview.used_by_name,
        used_by_roll=overview.used_by_roll,
        discount_applied=overview.discount_applied,
    )


@router.post("/referral", response_model=CouponResponse)
async def create_coupon(
    payload: CouponCreateRequest,
    auth: AuthContext = Depends(current_auth),
) -> CouponResponse:
    try:
        auth.require_admin()
        async with SessionLocal.begin() as session:
            coupon = await CouponService.create(
                session,
                code=payload.code,
                discount=payload.discount,
            )
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return _coupon_as_response(coupon)


@router.get("/coupons", response_model=list[CouponResponse])
async def list_coupons(auth: AuthContext = Depends(current_auth)) -> list[CouponResponse]:
    try:
        auth.require_admin()
        async with SessionLocal() as session:
            coupons = await CouponService.list_admin_coupons(session)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return [_coupon_as_response(coupon) for coupon in coupons]


@router.delete("/coupons/{coupon_id}", response_model=MessageResponse)
async def delete_coupon(
    coupon_id: int,
    auth: AuthContext = Depends(current_auth),
) -> MessageResponse:
    try:
        auth.require_admin()
        async with SessionLocal.begin() as session:
            await CouponService.delete(session, coupon_id=coupon_id)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return MessageResponse(message="Coupon deleted")


@router.get("/referral", response_model=list[ReferralCodeResponse])
async def list_referral_codes(
    auth: AuthContext = Depends(current_auth),
) -> list[ReferralCodeResponse]:
    try:
        auth.require_admin()
        async with SessionLocal() as session:
            overviews = await CouponService.list_referral_codes(session)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return [_overview_as_response(overview) for overview in overviews]
