from __future__ import annotations

import structlog
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.billing.errors import (
    BillingError,
    CouponAlreadyUsedError,
    CouponDuplicateError,
    CouponInUseError,
    CouponNotFoundError,
    CouponValidationError,
    CouponWrongTypeError,
    PaymentAlreadyApprovedError,
    PaymentDuplicateError,
    PaymentMonthNotAllowedError,
    PaymentNotFoundError,
    PaymentReceiptRequiredError,
    PaymentStudentNotFoundError,
    PaymentValidationError,
)
from app.services.auth_context import UnauthorizedError
from app.services.receipts import (
    ReceiptEmptyError,
    ReceiptError,
    ReceiptNotFoundError,
    ReceiptTooLargeError,
    ReceiptTypeError,
)
from app.services.students import (
    InvalidCredentialsError,
    StudentEmailTakenError,
    StudentError,
    StudentNotFoundError,
    StudentReferralCodeInvalidError,
    StudentReferralCodeUnavailableError,
)

logger = structlog.get_logger(__name__)

ERROR_RESPONSES: dict[type[Exception], tuple[int, str, str]] = {
    UnauthorizedError: (401, "E_UNAUTHORIZED", "Unauthorized"),
    InvalidCredentialsError: (
        401,
        "E_INVALID_CREDENTIALS",
        "Invalid credentials or not approved",
    ),
    PaymentMonthNotAllowedError: (400, "E_PAYMENT_MONTH_INVALID", "Invalid month"),
    PaymentReceiptRequiredError: (
        400,
        "E_PAYMENT_RECEIPT_REQUIRED",
        "A receipt is required for non-cash payments",
    ),
    PaymentValidationError: (400, "E_PAYMENT_INVALID", "Invalid payment request"),
    PaymentDuplicateError: (409, "E_PAYMENT_DUPLICATE", "Already requested"),
    PaymentStudentNotFoundError: (404, "E_STUDENT_NOT_FOUND", "Student not found"),
    PaymentNotFoundError: (404, "E_PAYMENT_NOT_FOUND", "Payment not found"),
    PaymentAlreadyApprovedError: (409, "E_PAYMENT_ALREADY_APPROVED", "Payment already approved"),
    CouponNotFoundError: (404, "E_COUPON_INVALID", "Invalid coupon code"),
    CouponWrongTypeError: (400, "E_COUPON_WRONG_TYPE", "Not a valid discount coupon"),
    CouponAlreadyUsedError: (400, "E_COUPON_ALREADY_USED", "Coupon already used"),
    CouponInUseError: (409, "E_COUPON_IN_USE", "Cannot delete coupon that has been used"),
    CouponDuplicateError: (409, "E_COUPON_DUPLICATE", "Code already exists"),
    CouponValidationError: (422, "E_COUPON_INVALID_INPUT", "Coupon code or discount is invalid"),
    BillingError: (400, "E_BILLING", "Request could not be processed"),
    StudentEmailTakenError: (409, "E_EMAIL_TAKEN", "Email already registered"),
    StudentReferralCodeInvalidError: (
        400,
        "E_REFERRAL_CODE_INVALID",
        "Invalid referral code. Please use a student referral code.",
    ),
    StudentReferralCodeUnavailableError: (
        503,
        "E_REFERRAL_CODE_UNAVAILABLE",
        "Could not allocate a referral code, please retry",
    ),
    StudentNotFoundError: (404, "E_STUDENT_NOT_FOUND", "Student not found"),
    StudentError: (400, "E_STUDENT", "Request could not be processed"),
    ReceiptTypeError: (
        400,
        "E_RECEIPT_TYPE",
        "Invalid file type. Only JPG, PNG and PDF are allowed.",
    ),
    ReceiptTooLargeError: (413, "E_RECEIPT_TOO_LARGE", "Receipt file is too large"),
    ReceiptEmptyError: (400, "E_RECEIPT_EMPTY", "Receipt file is empty"),
    ReceiptNotFoundError: (404, "E_RECEIPT_NOT_FOUND", "File not found"),
    ReceiptError: (400, "E_RECEIPT", "Receipt could not be processed"),
}
DOMAIN_ERRORS: tuple[type[Exception], ...] = (
    UnauthorizedError,
    BillingError,
    StudentError,
    ReceiptError,
)


def error_detail(code: str, message: str) -> dict[str, str]:
    return {"code": code, "message": message}


def as_http_exception(exc: Exception) -> HTTPException:
    for exc_type in type(exc).__mro__:
        mapped = ERROR_RESPONSES.get(exc_type)
        if mapped is not None:
            status_code, code, message = mapped
            return HTTPException(status_code=status_code, detail=error_detail(code, message))
    return HTTPException(status_code=400, detail=error_detail("E_BAD_REQUEST", "Bad request"))


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "storage_failure",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": error_detail("E_SERVER", "Server error")},
    )

