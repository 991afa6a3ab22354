from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.errors import PaymentMonthNotAllowedError
from app.billing.rules import is_allowed_month
from app.db.models.payments import Payment
from app.db.models.students import Student
from app.db.repo.payments_repo import PaymentsRepo
from app.services.auth_context import AuthContext


async def list_payments(
    session: AsyncSession,
    *,
    auth: AuthContext,
    month: str | None = None,
) -> list[tuple[Payment, Student]]:
    auth.require_admin()
    return await PaymentsRepo.list_with_students(session, month=month)


async def monthly_stats(session: AsyncSession, *, auth: AuthContext) -> list[tuple[str, int]]:
    auth.require_admin()
    return await PaymentsRepo.count_by_month(session)


async def monthly_details(
    session: AsyncSession,
    *,
    auth: AuthContext,
    month: str,
) -> list[tuple[Payment, Student]]:
    auth.require_admin()
    if not is_allowed_month(month):
        raise PaymentMonthNotAllowedError
    return await PaymentsRepo.list_with_students(session, month=month)
