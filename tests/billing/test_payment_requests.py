from __future__ import annotations

from uuid import uuid4

import pytest

from app.billing import PaymentService
from app.billing.errors import (
    CouponAlreadyUsedError,
    CouponNotFoundError,
    PaymentAlreadyApprovedError,
    PaymentDuplicateError,
    PaymentMonthNotAllowedError,
    PaymentNotFoundError,
    PaymentReceiptRequiredError,
    PaymentStudentNotFoundError,
    PaymentValidationError,
)
from app.services.auth_context import AuthContext, UnauthorizedError
from tests.billing.billing_fakes import NOW_UTC, BillingStore, fake_session

STUDENT = "riya@example.com"
RECEIPT = "1746178200000-123456789.png"


async def _request(store: BillingStore, month: str = "2025-05", **kwargs):
    kwargs.setdefault("method", "cash")
    return await PaymentService.request_payment(
        fake_session(),
        auth=AuthContext.student(STUDENT),
        month=month,
        now_utc=NOW_UTC,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_request_without_discounts_charges_base_fee(store: BillingStore) -> None:
    store.add_student(email=STUDENT)

    payment = await _request(store)

    assert payment.amount == 600
    assert payment.discounts == 0
    assert payment.discount_details == []
    assert payment.approved is False
    assert payment.screenshot is None
    assert store.payments[payment.id] is payment


@pytest.mark.asyncio
async def test_first_month_signup_discount(store: BillingStore) -> None:
    store.add_student(email=STUDENT, signup_discount=100)

    payment = await _request(store, month="2025-04")

    assert payment.amount == 500
    assert payment.discount_details == [{"type": "signup", "amount": 100}]


@pytest.mark.asyncio
async def test_signup_discount_is_ignored_after_first_month(store: BillingStore) -> None:
    store.add_student(email=STUDENT, signup_discount=100)

    payment = await _request(store, month="2025-06")

    assert payment.amount == 600


@pytest.mark.asyncio
async def test_coupon_and_signup_clamp_amount_at_zero(store: BillingStore) -> None:
    store.add_student(email=STUDENT, signup_discount=100)
    coupon = store.add_coupon("BIG700", 700)

    payment = await _request(store, month="2025-04", coupon_code="big700")

    assert payment.amount == 0
    assert payment.discounts == 800
    assert payment.discount_coupon == "BIG700"
    assert coupon.used_by == STUDENT


@pytest.mark.asyncio
async def test_referral_batch_redeemed_on_non_first_month(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    store.add_referrals(STUDENT, 3)

    payment = await _request(store, month="2025-05")

    assert payment.amount == 300
    assert payment.discount_details == [{"type": "referral", "amount": 300, "count": 3}]
    assert store.unused_referrals(STUDENT) == 0
    assert {referral.consumed_by_payment_id for referral in store.referrals} == {payment.id}


@pytest.mark.asyncio
async def test_referrals_are_not_redeemed_in_first_month(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    store.add_referrals(STUDENT, 2)

    payment = await _request(store, month="2025-04")

    assert payment.amount == 600
    assert store.unused_referrals(STUDENT) == 2


@pytest.mark.asyncio
async def test_discounts_equal_sum_of_detail_entries(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    store.add_coupon("SPRING50", 50)
    store.add_referrals(STUDENT, 1)

    payment = await _request(store, month="2025-07", coupon_code="SPRING50")

    assert payment.discounts == sum(entry["amount"] for entry in payment.discount_details)
    assert payment.amount == 450


@pytest.mark.asyncio
async def test_duplicate_request_for_same_month_conflicts(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    await _request(store, month="2025-05")

    with pytest.raises(PaymentDuplicateError):
        await _request(store, month="2025-05")


@pytest.mark.asyncio
async def test_month_outside_calendar_is_rejected(store: BillingStore) -> None:
    store.add_student(email=STUDENT)

    with pytest.raises(PaymentMonthNotAllowedError):
        await _request(store, month="2026-04")


@pytest.mark.asyncio
async def test_non_cash_method_requires_receipt(store: BillingStore) -> None:
    store.add_student(email=STUDENT)

    with pytest.raises(PaymentReceiptRequiredError):
        await _request(store, method="UPI")


@pytest.mark.asyncio
async def test_non_cash_method_keeps_receipt_handle(store: BillingStore) -> None:
    store.add_student(email=STUDENT)

    payment = await _request(store, method=" UPI ", receipt_handle=RECEIPT)

    assert payment.method == "upi"
    assert payment.screenshot == RECEIPT


@pytest.mark.asyncio
async def test_blank_method_is_rejected(store: BillingStore) -> None:
    store.add_student(email=STUDENT)

    with pytest.raises(PaymentValidationError):
        await _request(store, method="  ")


@pytest.mark.asyncio
async def test_unknown_student_is_not_found(store: BillingStore) -> None:
    with pytest.raises(PaymentStudentNotFoundError):
        await _request(store)


@pytest.mark.asyncio
async def test_invalid_coupon_aborts_request(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    store.add_referrals(STUDENT, 1)

    with pytest.raises(CouponNotFoundError):
        await _request(store, coupon_code="MISSING")

    assert store.payments == {}


@pytest.mark.asyncio
async def test_used_coupon_aborts_request(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    store.add_coupon("ONCE", 100, used_by="kabir@example.com")

    with pytest.raises(CouponAlreadyUsedError):
        await _request(store, coupon_code="ONCE")


@pytest.mark.asyncio
async def test_admin_cannot_request_payment(store: BillingStore) -> None:
    with pytest.raises(UnauthorizedError):
        await PaymentService.request_payment(
            fake_session(),
            auth=AuthContext.admin(),
            month="2025-05",
            method="cash",
        )


@pytest.mark.asyncio
async def test_cancel_reverses_coupon_and_referrals(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    coupon = store.add_coupon("ONCE", 100)
    store.add_referrals(STUDENT, 2)
    payment = await _request(store, month="2025-05", coupon_code="ONCE")

    result = await PaymentService.cancel_payment(
        fake_session(),
        auth=AuthContext.student(STUDENT),
        payment_id=payment.id,
    )

    assert result.coupon_released is True
    assert result.referrals_restored == 2
    assert coupon.used_by is None
    assert store.unused_referrals(STUDENT) == 2
    assert store.payments == {}


@pytest.mark.asyncio
async def test_cancel_approved_payment_fails(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    payment = await _request(store)
    payment.approved = True

    with pytest.raises(PaymentAlreadyApprovedError):
        await PaymentService.cancel_payment(
            fake_session(),
            auth=AuthContext.student(STUDENT),
            payment_id=payment.id,
        )


@pytest.mark.asyncio
async def test_cancel_other_students_payment_is_not_found(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    store.add_student(email="kabir@example.com")
    payment = await _request(store)

    with pytest.raises(PaymentNotFoundError):
        await PaymentService.cancel_payment(
            fake_session(),
            auth=AuthContext.student("kabir@example.com"),
            payment_id=payment.id,
        )

    with pytest.raises(PaymentNotFoundError):
        await PaymentService.cancel_payment(
            fake_session(),
            auth=AuthContext.student(STUDENT),
            payment_id=uuid4(),
        )


@pytest.mark.asyncio
async def test_check_coupon_previews_discount(store: BillingStore) -> None:
    store.add_coupon("SPRING50", 50)

    discount = await PaymentService.check_coupon(
        fake_session(),
        auth=AuthContext.student(STUDENT),
        code="spring50",
    )

    assert discount == 50
    assert store.codes["SPRING50"].used_by is None
