from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.counters import Counter
from app.db.models.payments import Payment
from app.db.models.students import Student


class StudentsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, student_id: int) -> Student | None:
        return await session.get(Student, student_id)

    @staticmethod
    async def get_by_email(session: AsyncSession, email: str) -> Student | None:
        stmt = select(Student).where(Student.email == email)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_referral_code(session: AsyncSession, referral_code: str) -> Student | None:
        stmt = select(Student).where(Student.referral_code == referral_code)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_by_emails(
        session: AsyncSession,
        emails: Sequence[str],
    ) -> list[Student]:
        unique_emails = tuple({email for email in emails if email})
        if not unique_emails:
            return []
        stmt = select(Student).where(Student.email.in_(unique_emails))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_pending(session: AsyncSession) -> list[Student]:
        stmt = select(Student).where(Student.approved.is_(False)).order_by(Student.created_at.asc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def search(session: AsyncSession, *, query: str, limit: int = 50) -> list[Student]:
        pattern = f"%{query}%"
        stmt = (
            select(Student)
            .where(or_(Student.name.ilike(pattern), Student.roll_no.ilike(pattern)))
            .order_by(Student.name.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_with_last_payment(
        session: AsyncSession,
    ) -> list[tuple[Student, datetime | None]]:
        last_payment = (
            select(Payment.student_email, func.max(Payment.created_at).label("last_payment_at"))
            .group_by(Payment.student_email)
            .subquery()
        )
        stmt = (
            select(Student, last_payment.c.last_payment_at)
            .outerjoin(last_payment, last_payment.c.student_email == Student.email)
            .order_by(Student.roll_no.asc())
        )
        result = await session.execute(stmt)
        return [(student, last_payment_at) for student, last_payment_at in result.all()]

    @staticmethod
    async def create(session: AsyncSession, *, student: Student) -> Student:
        session.add(student)
        await session.flush()
        return student

    @staticmethod
    async def approve(session: AsyncSession, student_id: int) -> bool:
        stmt = update(Student).where(Student.id == student_id).values(approved=True)
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0) > 0

    @staticmethod
    async def delete(session: AsyncSession, student_id: int) -> bool:
        stmt = delete(Student).where(Student.id == student_id)
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0) > 0

    @staticmethod
    async def next_sequence(session: AsyncSession, *, name: str) -> int:
        stmt = (
            pg_insert(Counter)
            .values(name=name, seq=1)
            .on_conflict_do_update(
                index_elements=[Counter.name],
                set_={"seq": Counter.seq + 1},
            )
            .returning(Counter.seq)
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())
