from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from app.billing import PaymentService
from app.billing.errors import (
    PaymentAlreadyApprovedError,
    PaymentMonthNotAllowedError,
    PaymentNotFoundError,
)
from app.services.auth_context import AuthContext, UnauthorizedError
from tests.billing.billing_fakes import NOW_UTC, BillingStore, fake_session

STUDENT = "riya@example.com"
ADMIN = AuthContext.admin()


async def _request(store: BillingStore, month: str = "2025-05", **kwargs):
    return await PaymentService.request_payment(
        fake_session(),
        auth=AuthContext.student(STUDENT),
        month=month,
        method="cash",
        now_utc=NOW_UTC,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_approve_sets_timestamp_and_is_idempotent(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    payment = await _request(store)
    approved_at = NOW_UTC + timedelta(hours=1)

    approved = await PaymentService.approve_payment(
        fake_session(),
        auth=ADMIN,
        payment_id=payment.id,
        now_utc=approved_at,
    )
    again = await PaymentService.approve_payment(
        fake_session(),
        auth=ADMIN,
        payment_id=payment.id,
        now_utc=approved_at + timedelta(hours=1),
    )

    assert approved.approved is True
    assert again.approved_at == approved_at


@pytest.mark.asyncio
async def test_approve_missing_payment_is_not_found(store: BillingStore) -> None:
    with pytest.raises(PaymentNotFoundError):
        await PaymentService.approve_payment(fake_session(), auth=ADMIN, payment_id=uuid4())


@pytest.mark.asyncio
async def test_student_cannot_approve(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    payment = await _request(store)

    with pytest.raises(UnauthorizedError):
        await PaymentService.approve_payment(
            fake_session(),
            auth=AuthContext.student(STUDENT),
            payment_id=payment.id,
        )


@pytest.mark.asyncio
async def test_reject_frees_coupon_for_reuse(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    coupon = store.add_coupon("ONCE", 100)
    payment = await _request(store, coupon_code="ONCE")
    assert coupon.used_by == STUDENT

    result = await PaymentService.reject_payment(fake_session(), auth=ADMIN, payment_id=payment.id)

    assert result.coupon_released is True
    assert coupon.used_by is None
    assert payment.id not in store.payments

    retried = await _request(store, coupon_code="ONCE")
    assert retried.discount_coupon == "ONCE"


@pytest.mark.asyncio
async def test_reject_restores_referral_batch(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    store.add_referrals(STUDENT, 3)
    payment = await _request(store)
    assert payment.discount_details == [{"type": "referral", "amount": 300, "count": 3}]

    result = await PaymentService.reject_payment(fake_session(), auth=ADMIN, payment_id=payment.id)

    assert result.referrals_restored == 3
    assert store.unused_referrals(STUDENT) == 3


@pytest.mark.asyncio
async def test_reject_leaves_other_payments_referrals_consumed(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    store.add_referrals(STUDENT, 2)
    await _request(store, month="2025-05")
    store.add_referrals(STUDENT, 1)
    second = await _request(store, month="2025-06")

    result = await PaymentService.reject_payment(fake_session(), auth=ADMIN, payment_id=second.id)

    assert result.referrals_restored == 1
    assert store.unused_referrals(STUDENT) == 1


@pytest.mark.asyncio
async def test_reject_falls_back_to_untagged_facts(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    legacy = store.add_referrals(STUDENT, 2)
    payment = await _request(store)
    for referral in legacy:
        referral.consumed_by_payment_id = None

    result = await PaymentService.reject_payment(fake_session(), auth=ADMIN, payment_id=payment.id)

    assert result.referrals_restored == 2
    assert store.unused_referrals(STUDENT) == 2


@pytest.mark.asyncio
async def test_reject_approved_payment_fails(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    payment = await _request(store)
    await PaymentService.approve_payment(fake_session(), auth=ADMIN, payment_id=payment.id)

    with pytest.raises(PaymentAlreadyApprovedError):
        await PaymentService.reject_payment(fake_session(), auth=ADMIN, payment_id=payment.id)

    assert payment.id in store.payments


@pytest.mark.asyncio
async def test_reject_missing_payment_is_not_found(store: BillingStore) -> None:
    with pytest.raises(PaymentNotFoundError):
        await PaymentService.reject_payment(fake_session(), auth=ADMIN, payment_id=uuid4())


@pytest.mark.asyncio
async def test_reports_list_payments_and_monthly_counts(store: BillingStore) -> None:
    store.add_student(email=STUDENT)
    await _request(store, month="2025-05")
    await _request(store, month="2025-06")

    rows = await PaymentService.list_payments(fake_session(), auth=ADMIN)
    stats = await PaymentService.monthly_stats(fake_session(), auth=ADMIN)
    details = await PaymentService.monthly_details(fake_session(), auth=ADMIN, month="2025-06")

    assert len(rows) == 2
    assert stats == [("2025-05", 1), ("2025-06", 1)]
    assert [payment.month for payment, _ in details] == ["2025-06"]
    assert details[0][1].email == STUDENT


@pytest.mark.asyncio
async def test_monthly_details_rejects_unknown_month(store: BillingStore) -> None:
    with pytest.raises(PaymentMonthNotAllowedError):
        await PaymentService.monthly_details(fake_session(), auth=ADMIN, month="1999-01")
