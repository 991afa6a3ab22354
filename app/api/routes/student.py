from __future__ import annotations

from pathlib import Path
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.exc import SQLAlchemyError

from app.billing import PaymentService
from app.billing.constants import PAYMENT_METHOD_CASH
from app.billing.types import ReversalResult, StudentDashboard
from app.core.config import get_settings
from app.core.referral_codes import normalize_code
from app.db.models.payments import Payment
from app.db.session import SessionLocal
from app.services.auth_context import AuthContext
from app.services.receipts import discard_receipt, store_receipt

from .errors import DOMAIN_ERRORS, as_http_exception
from .session_helpers import current_auth
from .student_models import (
    CouponCheckResponse,
    MonthStatusResponse,
    PaymentResponse,
    ReversalResponse,
    StudentDashboardResponse,
)

router = APIRouter(prefix="/api/student", tags=["student"])


def _dashboard_as_response(dashboard: StudentDashboard) -> StudentDashboardResponse:
    return StudentDashboardResponse(
        roll_no=dashboard.roll_no,
        name=dashboard.name,
        email=dashboard.email,
        class_name=dashboard.class_name,
        board=dashboard.board,
        referral_code=dashboard.referral_code,
        signup_coupon_used=dashboard.signup_coupon_used,
        signup_discount=dashboard.signup_discount,
        referral_discount=dashboard.referral_discount,
        referral_count=dashboard.referral_count,
        months=[
            MonthStatusResponse(month=item.month, status=item.status, payment_id=item.payment_id)
            for item in dashboard.months
        ],
    )


def _payment_as_response(payment: Payment) -> PaymentResponse:
    return PaymentResponse(
        id=payment.id,
        month=payment.month,
        amount=payment.amount,
        method=payment.method,
        approved=payment.approved,
        discount_coupon=payment.discount_coupon,
        discounts=payment.discounts,
        discount_details=list(payment.discount_details or []),
        created_at=payment.created_at,
    )


def _reversal_as_response(result: ReversalResult) -> ReversalResponse:
    return ReversalResponse(
        payment_id=result.payment_id,
        coupon_released=result.coupon_released,
        referrals_restored=result.referrals_restored,
    )


@router.get("/me", response_model=StudentDashboardResponse)
async def get_dashboard(auth: AuthContext = Depends(current_auth)) -> StudentDashboardResponse:
    try:
        async with SessionLocal() as session:
            dashboard = await PaymentService.student_dashboard(session, auth=auth)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return _dashboard_as_response(dashboard)


@router.get("/coupon/{code}", response_model=CouponCheckResponse)
async def check_coupon(
    code: str,
    auth: AuthContext = Depends(current_auth),
) -> CouponCheckResponse:
    try:
        async with SessionLocal() as session:
            discount = await PaymentService.check_coupon(session, auth=auth, code=code)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return CouponCheckResponse(code=normalize_code(code), discount=discount)


@router.post("/pay", response_model=PaymentResponse)
async def request_payment(
    month: str = Form(...),
    method: str = Form(...),
    discount_coupon: str | None = Form(default=None),
    screenshot: UploadFile | None = File(default=None),
    auth: AuthContext = Depends(current_auth),
) -> PaymentResponse:
    settings = get_settings()
    upload_dir = Path(settings.upload_dir)
    receipt_handle: str | None = None
    try:
        auth.require_student()
        wants_receipt = method.strip().lower() != PAYMENT_METHOD_CASH
        if wants_receipt and screenshot is not None and screenshot.filename:
            receipt_handle = await store_receipt(
                filename=screenshot.filename,
                content=await screenshot.read(),
                upload_dir=upload_dir,
                max_bytes=settings.receipt_max_bytes,
            )
        async with SessionLocal.begin() as session:
            payment = await PaymentService.request_payment(
                session,
                auth=auth,
                month=month,
                method=method,
                coupon_code=discount_coupon,
                receipt_handle=receipt_handle,
            )
    except DOMAIN_ERRORS as exc:
        await discard_receipt(receipt_handle, upload_dir=upload_dir)
        raise as_http_exception(exc) from exc
    except SQLAlchemyError:
        await discard_receipt(receipt_handle, upload_dir=upload_dir)
        raise
    return _payment_as_response(payment)


@router.delete("/pay/{payment_id}", response_model=ReversalResponse)
async def cancel_payment(
    payment_id: UUID,
    auth: AuthContext = Depends(current_auth),
) -> ReversalResponse:
    try:
        async with SessionLocal.begin() as session:
            result = await PaymentService.cancel_payment(
                session,
                auth=auth,
                payment_id=payment_id,
            )
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return _reversal_as_response(result)
