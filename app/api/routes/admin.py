from __future__ import annotations

from datetime import datetime
from pathlib import Path
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from app.billing import PaymentService
from app.core.config import get_settings
from app.db.models.payments import Payment
from app.db.models.students import Student
from app.db.session import SessionLocal
from app.services.auth_context import AuthContext
from app.services.receipts import ReceiptNotFoundError, resolve_receipt
from app.services.students import StudentService

from .admin_models import (
    AdminPaymentResponse,
    MessageResponse,
    MonthlyStatResponse,
    PaymentApprovalResponse,
    StudentResponse,
)
from .errors import DOMAIN_ERRORS, as_http_exception
from .session_helpers import current_auth
from .student_models import ReversalResponse

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = structlog.get_logger(__name__)


def _student_as_response(
    student: Student,
    *,
    last_payment_at: datetime | None = None,
) -> StudentResponse:
    return StudentResponse(
        id=student.id,
        roll_no=student.roll_no,
        name=student.name,
        email=student.email,
        class_name=student.class_name,
        board=student.board,
        referral_code=student.referral_code,
        signup_coupon_used=student.signup_coupon_used,
        signup_discount=student.signup_discount,
        approved=student.approved,
        created_at=student.created_at,
        last_payment_at=last_payment_at,
    )


def _payment_as_response(payment: Payment, student: Student) -> AdminPaymentResponse:
    return AdminPaymentResponse(
        id=payment.id,
        student_email=payment.student_email,
        student_roll=payment.student_roll,
        student_name=payment.student_name,
        class_name=student.class_name,
        board=student.board,
        month=payment.month,
        amount=payment.amount,
        method=payment.method,
        screenshot=payment.screenshot,
        approved=payment.approved,
        discount_coupon=payment.discount_coupon,
        discounts=payment.discounts,
        discount_details=list(payment.discount_details or []),
        created_at=payment.created_at,
        approved_at=payment.approved_at,
    )


@router.get("/students/pending", response_model=list[StudentResponse])
async def list_pending_students(
    auth: AuthContext = Depends(current_auth),
) -> list[StudentResponse]:
    try:
        async with SessionLocal() as session:
            students = await StudentService.list_pending(session, auth=auth)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return [_student_as_response(student) for student in students]


@router.get("/students", response_model=list[StudentResponse])
async def list_students(auth: AuthContext = Depends(current_auth)) -> list[StudentResponse]:
    try:
        async with SessionLocal() as session:
            rows = await StudentService.list_with_last_payment(session, auth=auth)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return [
        _student_as_response(student, last_payment_at=last_payment_at)
        for student, last_payment_at in rows
    ]


@router.get("/students/search", response_model=list[StudentResponse])
async def search_students(
    q: str = Query(default="", max_length=128),
    auth: AuthContext = Depends(current_auth),
) -> list[StudentResponse]:
    try:
        async with SessionLocal() as session:
            students = await StudentService.search(session, auth=auth, query=q)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return [_student_as_response(student) for student in students]


@router.post("/students/approve/{student_id}", response_model=MessageResponse)
async def approve_student(
    student_id: int,
    auth: AuthContext = Depends(current_auth),
) -> MessageResponse:
    try:
        async with SessionLocal.begin() as session:
            await StudentService.approve_student(session, auth=auth, student_id=student_id)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return MessageResponse(message="Student approved")


@router.delete("/students/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: int,
    auth: AuthContext = Depends(current_auth),
) -> MessageResponse:
    try:
        async with SessionLocal.begin() as session:
            await StudentService.delete_student(session, auth=auth, student_id=student_id)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return MessageResponse(message="Student deleted")


@router.get("/payments", response_model=list[AdminPaymentResponse])
async def list_payments(
    month: str | None = Query(default=None, max_length=7),
    auth: AuthContext = Depends(current_auth),
) -> list[AdminPaymentResponse]:
    try:
        async with SessionLocal() as session:
            rows = await PaymentService.list_payments(session, auth=auth, month=month)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return [_payment_as_response(payment, student) for payment, student in rows]


@router.post("/payments/approve/{payment_id}", response_model=PaymentApprovalResponse)
async def approve_payment(
    payment_id: UUID,
    auth: AuthContext = Depends(current_auth),
) -> PaymentApprovalResponse:
    try:
        async with SessionLocal.begin() as session:
            payment = await PaymentService.approve_payment(
                session,
                auth=auth,
                payment_id=payment_id,
            )
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return PaymentApprovalResponse(
        id=payment.id,
        approved=payment.approved,
        approved_at=payment.approved_at,
    )


@router.post("/payments/{payment_id}/reject", response_model=ReversalResponse)
async def reject_payment(
    payment_id: UUID,
    auth: AuthContext = Depends(current_auth),
) -> ReversalResponse:
    try:
        async with SessionLocal.begin() as session:
            result = await PaymentService.reject_payment(
                session,
                auth=auth,
                payment_id=payment_id,
            )
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return ReversalResponse(
        payment_id=result.payment_id,
        coupon_released=result.coupon_released,
        referrals_restored=result.referrals_restored,
    )


@router.get("/receipts/{filename}", response_class=FileResponse)
async def download_receipt(
    filename: str,
    auth: AuthContext = Depends(current_auth),
) -> FileResponse:
    try:
        auth.require_admin()
        receipt = resolve_receipt(filename, upload_dir=Path(get_settings().upload_dir))
    except DOMAIN_ERRORS as exc:
        if isinstance(exc, ReceiptNotFoundError):
            logger.warning("receipt_lookup_failed", receipt=filename)
        raise as_http_exception(exc) from exc
    return FileResponse(receipt.path, media_type=receipt.media_type)


@router.get("/monthly-stats", response_model=list[MonthlyStatResponse])
async def monthly_stats(auth: AuthContext = Depends(current_auth)) -> list[MonthlyStatResponse]:
    try:
        async with SessionLocal() as session:
            rows = await PaymentService.monthly_stats(session, auth=auth)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return [MonthlyStatResponse(month=month, count=count) for month, count in rows]


@router.get("/monthly-stats/{month}", response_model=list[AdminPaymentResponse])
async def monthly_details(
    month: str,
    auth: AuthContext = Depends(current_auth),
) -> list[AdminPaymentResponse]:
    try:
        async with SessionLocal() as session:
            rows = await PaymentService.monthly_details(session, auth=auth, month=month)
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return [_payment_as_response(payment, student) for payment, student in rows]
