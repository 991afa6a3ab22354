from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.payments import Payment
from app.db.models.students import Student

REFERRAL_DETAIL_FILTER = [{"type": "referral"}]


class PaymentsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, payment_id: UUID) -> Payment | None:
        return await session.get(Payment, payment_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, payment_id: UUID) -> Payment | None:
        stmt = select(Payment).where(Payment.id == payment_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_student_and_month(
        session: AsyncSession,
        *,
        student_email: str,
        month: str,
    ) -> Payment | None:
        stmt = select(Payment).where(
            Payment.student_email == student_email,
            Payment.month == month,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_by_student(session: AsyncSession, *, student_email: str) -> list[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.student_email == student_email)
            .order_by(Payment.month.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, payment: Payment) -> Payment:
        session.add(payment)
        await session.flush()
        return payment

    @staticmethod
    async def delete(session: AsyncSession, *, payment: Payment) -> None:
        await session.delete(payment)
        await session.flush()

    @staticmethod
    async def list_with_students(
        session: AsyncSession,
        *,
        month: str | None = None,
    ) -> list[tuple[Payment, Student]]:
        # Inner join: payments orphaned by a deleted student are not listed.
        stmt = (
            select(Payment, Student)
            .join(Student, Student.email == Payment.student_email)
            .order_by(Payment.created_at.desc())
        )
        if month is not None:
            stmt = stmt.where(Payment.month == month)
        result = await session.execute(stmt)
        return [(payment, student) for payment, student in result.all()]

    @staticmethod
    async def count_by_month(session: AsyncSession) -> list[tuple[str, int]]:
        stmt = (
            select(Payment.month, func.count(Payment.id))
            .group_by(Payment.month)
            .order_by(Payment.month.asc())
        )
        result = await session.execute(stmt)
        return [(str(month), int(count)) for month, count in result.all()]

    @staticmethod
    async def list_emails_with_referral_discount(
        session: AsyncSession,
        emails: Sequence[str],
    ) -> set[str]:
        unique_emails = tuple({email for email in emails if email})
        if not unique_emails:
            return set()
        stmt = select(Payment.student_email).where(
            Payment.student_email.in_(unique_emails),
            Payment.discount_details.contains(REFERRAL_DETAIL_FILTER),
        )
        result = await session.execute(stmt)
        return {str(email) for email in result.scalars().all()}
