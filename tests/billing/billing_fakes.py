from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from app.db.models.payments import Payment
from app.db.models.referral_codes import (
    ADMIN_CREATOR,
    AdminCoupon,
    ReferralCode,
    StudentReferralCode,
)
from app.db.models.student_referrals import StudentReferral
from app.db.models.students import Student
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.referral_codes_repo import ReferralCodesRepo
from app.db.repo.student_referrals_repo import StudentReferralsRepo
from app.db.repo.students_repo import StudentsRepo

UTC = timezone.utc
NOW_UTC = datetime(2025, 5, 2, 9, 30, tzinfo=UTC)


class BillingStore:
    """In-memory stand-in for the four billing repositories."""

    def __init__(self) -> None:
        self.students: dict[str, Student] = {}
        self.codes: dict[str, ReferralCode] = {}
        self.referrals: list[StudentReferral] = []
        self.payments: dict[UUID, Payment] = {}
        self.counters: dict[str, int] = {}
        self._next_id = 0

    def _allocate_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def add_student(
        self,
        *,
        email: str,
        name: str = "Asha Verma",
        class_name: str = "10",
        board: str = "CBSE",
        signup_discount: int = 0,
        approved: bool = True,
        referral_code: str | None = None,
    ) -> Student:
        student_id = self._allocate_id()
        student = Student(
            id=student_id,
            roll_no=f"{class_name}-{board}-{student_id}",
            name=name,
            email=email,
            class_name=class_name,
            board=board,
            password_hash="not-a-real-hash",
            referral_code=referral_code or f"REF{student_id:05d}",
            signup_coupon_used=None,
            signup_discount=signup_discount,
            approved=approved,
            created_at=NOW_UTC,
        )
        self.students[email] = student
        return student

    def add_coupon(self, code: str, discount: int, *, used_by: str | None = None) -> AdminCoupon:
        coupon = AdminCoupon(
            id=self._allocate_id(),
            code=code,
            discount=discount,
            created_by=ADMIN_CREATOR,
            used_by=used_by,
            created_at=NOW_UTC,
        )
        self.codes[code] = coupon
        return coupon

    def add_student_code(self, code: str, *, owner_email: str) -> StudentReferralCode:
        student_code = StudentReferralCode(
            id=self._allocate_id(),
            code=code,
            discount=100,
            created_by=owner_email,
            used_by=None,
            created_at=NOW_UTC,
        )
        self.codes[code] = student_code
        return student_code

    def add_referrals(self, referrer_email: str, count: int) -> list[StudentReferral]:
        added: list[StudentReferral] = []
        for index in range(count):
            referral = StudentReferral(
                id=self._allocate_id(),
                referrer_email=referrer_email,
                referred_email=f"friend{len(self.referrals) + index}@example.com",
                is_used=False,
                consumed_by_payment_id=None,
                created_at=NOW_UTC,
            )
            added.append(referral)
        self.referrals.extend(added)
        return added

    def unused_referrals(self, referrer_email: str) -> int:
        return sum(
            1
            for referral in self.referrals
            if referral.referrer_email == referrer_email and not referral.is_used
        )

    def install(self, monkeypatch) -> None:
        store = self

        async def _get_student_by_id(session, student_id: int):
            return next(
                (student for student in store.students.values() if student.id == student_id),
                None,
            )

        async def _get_student_by_email(session, email: str):
            return store.students.get(email)

        async def _get_student_by_referral_code(session, referral_code: str):
            return next(
                (
                    student
                    for student in store.students.values()
                    if student.referral_code == referral_code
                ),
                None,
            )

        async def _list_students_by_emails(session, emails: Sequence[str]):
            return [store.students[email] for email in set(emails) if email in store.students]

        async def _create_student(session, *, student: Student):
            if student.email in store.students:
                raise IntegrityError("INSERT INTO students", {}, Exception("uq_students_email"))
            student.id = store._allocate_id()
            store.students[student.email] = student
            return student

        async def _next_sequence(session, *, name: str) -> int:
            store.counters[name] = store.counters.get(name, 0) + 1
            return store.counters[name]

        async def _delete_student(session, student_id: int) -> bool:
            for email, student in list(store.students.items()):
                if student.id == student_id:
                    del store.students[email]
                    return True
            return False

        async def _get_code_by_id(session, code_id: int):
            return next((code for code in store.codes.values() if code.id == code_id), None)

        async def _get_code(session, code: str):
            return store.codes.get(code)

        async def _create_code(session, *, referral_code: ReferralCode):
            if referral_code.code in store.codes:
                raise IntegrityError("INSERT INTO referral_codes", {}, Exception("uq_code"))
            referral_code.id = store._allocate_id()
            store.codes[referral_code.code] = referral_code
            return referral_code

        async def _claim_admin_coupon(session, *, code: str, consumer_email: str):
            coupon = store.codes.get(code)
            if not isinstance(coupon, AdminCoupon) or coupon.used_by is not None:
                return None
            coupon.used_by = consumer_email
            return coupon

        async def _release_admin_coupon(session, *, code: str) -> bool:
            coupon = store.codes.get(code)
            if not isinstance(coupon, AdminCoupon) or coupon.used_by is None:
                return False
            coupon.used_by = None
            return True

        async def _delete_unused_admin_coupon(session, *, coupon_id: int) -> bool:
            for code, coupon in list(store.codes.items()):
                if coupon.id == coupon_id and isinstance(coupon, AdminCoupon) and coupon.used_by is None:
                    del store.codes[code]
                    return True
            return False

        async def _list_admin_coupons(session):
            return [code for code in store.codes.values() if isinstance(code, AdminCoupon)]

        async def _list_all_codes(session):
            return list(store.codes.values())

        async def _create_referral(session, *, referral: StudentReferral):
            # Mirrors ck_student_referrals_no_self_referral; referred_email is not unique.
            if referral.referrer_email == referral.referred_email:
                raise IntegrityError(
                    "INSERT INTO student_referrals",
                    {},
                    Exception("ck_student_referrals_no_self_referral"),
                )
            referral.id = store._allocate_id()
            store.referrals.append(referral)
            return referral

        async def _count_unused(session, *, referrer_email: str) -> int:
            return store.unused_referrals(referrer_email)

        async def _mark_unused_as_consumed(session, *, referrer_email: str, payment_id: UUID) -> int:
            consumed = 0
            for referral in store.referrals:
                if referral.referrer_email == referrer_email and not referral.is_used:
                    referral.is_used = True
                    referral.consumed_by_payment_id = payment_id
                    consumed += 1
            return consumed

        async def _restore_for_payment(session, *, payment_id: UUID) -> int:
            restored = 0
            for referral in store.referrals:
                if referral.is_used and referral.consumed_by_payment_id == payment_id:
                    referral.is_used = False
                    referral.consumed_by_payment_id = None
                    restored += 1
            return restored

        async def _restore_all_for_referrer(
            session,
            *,
            referrer_email: str,
            untagged_only: bool = False,
        ) -> int:
            restored = 0
            for referral in store.referrals:
                if referral.referrer_email != referrer_email or not referral.is_used:
                    continue
                if untagged_only and referral.consumed_by_payment_id is not None:
                    continue
                referral.is_used = False
                referral.consumed_by_payment_id = None
                restored += 1
            return restored

        async def _get_payment(session, payment_id: UUID):
            return store.payments.get(payment_id)

        async def _get_payment_by_student_and_month(session, *, student_email: str, month: str):
            return next(
                (
                    payment
                    for payment in store.payments.values()
                    if payment.student_email == student_email and payment.month == month
                ),
                None,
            )

        async def _list_payments_by_student(session, *, student_email: str):
            return [
                payment
                for payment in store.payments.values()
                if payment.student_email == student_email
            ]

        async def _create_payment(session, *, payment: Payment):
            duplicate = await _get_payment_by_student_and_month(
                session,
                student_email=payment.student_email,
                month=payment.month,
            )
            if duplicate is not None:
                raise IntegrityError(
                    "INSERT INTO payments",
                    {},
                    Exception("uq_payments_student_month"),
                )
            store.payments[payment.id] = payment
            return payment

        async def _delete_payment(session, *, payment: Payment) -> None:
            store.payments.pop(payment.id, None)

        async def _list_payments_with_students(session, *, month: str | None = None):
            rows = [
                (payment, store.students[payment.student_email])
                for payment in store.payments.values()
                if payment.student_email in store.students and (month is None or payment.month == month)
            ]
            return sorted(rows, key=lambda row: row[0].created_at, reverse=True)

        async def _count_by_month(session):
            counts: dict[str, int] = {}
            for payment in store.payments.values():
                counts[payment.month] = counts.get(payment.month, 0) + 1
            return sorted(counts.items())

        async def _list_emails_with_referral_discount(session, emails: Sequence[str]):
            wanted = set(emails)
            return {
                payment.student_email
                for payment in store.payments.values()
                if payment.student_email in wanted
                and any(entry.get("type") == "referral" for entry in payment.discount_details)
            }

        monkeypatch.setattr(StudentsRepo, "get_by_id", _get_student_by_id)
        monkeypatch.setattr(StudentsRepo, "get_by_email", _get_student_by_email)
        monkeypatch.setattr(StudentsRepo, "get_by_referral_code", _get_student_by_referral_code)
        monkeypatch.setattr(StudentsRepo, "list_by_emails", _list_students_by_emails)
        monkeypatch.setattr(StudentsRepo, "create", _create_student)
        monkeypatch.setattr(StudentsRepo, "next_sequence", _next_sequence)
        monkeypatch.setattr(StudentsRepo, "delete", _delete_student)

        monkeypatch.setattr(ReferralCodesRepo, "get_by_id", _get_code_by_id)
        monkeypatch.setattr(ReferralCodesRepo, "get_by_code", _get_code)
        monkeypatch.setattr(ReferralCodesRepo, "create", _create_code)
        monkeypatch.setattr(ReferralCodesRepo, "claim_admin_coupon", _claim_admin_coupon)
        monkeypatch.setattr(ReferralCodesRepo, "release_admin_coupon", _release_admin_coupon)
        monkeypatch.setattr(
            ReferralCodesRepo,
            "delete_unused_admin_coupon",
            _delete_unused_admin_coupon,
        )
        monkeypatch.setattr(ReferralCodesRepo, "list_admin_coupons", _list_admin_coupons)
        monkeypatch.setattr(ReferralCodesRepo, "list_all", _list_all_codes)

        monkeypatch.setattr(StudentReferralsRepo, "create", _create_referral)
        monkeypatch.setattr(StudentReferralsRepo, "count_unused", _count_unused)
        monkeypatch.setattr(
            StudentReferralsRepo,
            "mark_unused_as_consumed",
            _mark_unused_as_consumed,
        )
        monkeypatch.setattr(StudentReferralsRepo, "restore_for_payment", _restore_for_payment)
        monkeypatch.setattr(
            StudentReferralsRepo,
            "restore_all_for_referrer",
            _restore_all_for_referrer,
        )

        monkeypatch.setattr(PaymentsRepo, "get_by_id", _get_payment)
        monkeypatch.setattr(PaymentsRepo, "get_by_id_for_update", _get_payment)
        monkeypatch.setattr(
            PaymentsRepo,
            "get_by_student_and_month",
            _get_payment_by_student_and_month,
        )
        monkeypatch.setattr(PaymentsRepo, "list_by_student", _list_payments_by_student)
        monkeypatch.setattr(PaymentsRepo, "create", _create_payment)
        monkeypatch.setattr(PaymentsRepo, "delete", _delete_payment)
        monkeypatch.setattr(PaymentsRepo, "list_with_students", _list_payments_with_students)
        monkeypatch.setattr(PaymentsRepo, "count_by_month", _count_by_month)
        monkeypatch.setattr(
            PaymentsRepo,
            "list_emails_with_referral_discount",
            _list_emails_with_referral_discount,
        )


class _FakeSession:
    async def flush(self) -> None:
        return None


def fake_session() -> _FakeSession:
    return _FakeSession()
