from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.constants import REFERRAL_UNIT_DISCOUNT, SIGNUP_DISCOUNT
from app.billing.referrals.service import ReferralService
from app.core.config import get_settings
from app.core.referral_codes import generate_referral_code, normalize_code
from app.db.models.referral_codes import StudentReferralCode
from app.db.models.students import Student
from app.db.repo.referral_codes_repo import ReferralCodesRepo
from app.db.repo.students_repo import StudentsRepo
from app.services.auth_context import AuthContext
from app.services.passwords import hash_password, verify_password
from app.services.session_tokens import is_valid_admin_login

logger = structlog.get_logger(__name__)

ROLL_SEQUENCE_NAME = "student"


class StudentError(Exception):
    pass


class StudentEmailTakenError(StudentError):
    pass


class StudentReferralCodeInvalidError(StudentError):
    pass


class StudentReferralCodeUnavailableError(StudentError):
    pass


class StudentNotFoundError(StudentError):
    pass


class InvalidCredentialsError(StudentError):
    pass


def build_roll_no(*, class_name: str, board: str, sequence: int) -> str:
    return f"{class_name}-{board}-{sequence}"


class StudentService:
    @staticmethod
    async def _generate_unique_referral_code(session: AsyncSession) -> str:
        for _ in range(10):
            referral_code = generate_referral_code()
            if await StudentsRepo.get_by_referral_code(session, referral_code) is not None:
                continue
            if await ReferralCodesRepo.get_by_code(session, referral_code) is not None:
                continue
            return referral_code
        raise StudentReferralCodeUnavailableError

    @staticmethod
    async def signup(
        session: AsyncSession,
        *,
        name: str,
        email: str,
        class_name: str,
        board: str,
        password: str,
        referral_code: str | None = None,
        now_utc: datetime | None = None,
    ) -> Student:
        now_utc = now_utc or datetime.now(timezone.utc)
        email = email.strip().lower()

        if await StudentsRepo.get_by_email(session, email) is not None:
            raise StudentEmailTakenError

        referrer: Student | None = None
        presented_code = normalize_code(referral_code)
        if presented_code:
            # Only another student's code earns the signup discount; admin coupons do not.
            referrer = await StudentsRepo.get_by_referral_code(session, presented_code)
            if referrer is None:
                raise StudentReferralCodeInvalidError

        sequence = await StudentsRepo.next_sequence(session, name=ROLL_SEQUENCE_NAME)
        own_code = await StudentService._generate_unique_referral_code(session)
        student = Student(
            roll_no=build_roll_no(class_name=class_name, board=board, sequence=sequence),
            name=name.strip(),
            email=email,
            class_name=class_name,
            board=board,
            password_hash=hash_password(password),
            referral_code=own_code,
            signup_coupon_used=presented_code if referrer is not None else None,
            signup_discount=SIGNUP_DISCOUNT if referrer is not None else 0,
            approved=False,
            created_at=now_utc,
        )
        try:
            await StudentsRepo.create(session, student=student)
        except IntegrityError as exc:
            raise StudentEmailTakenError from exc

        await ReferralCodesRepo.create(
            session,
            referral_code=StudentReferralCode(
                code=own_code,
                discount=REFERRAL_UNIT_DISCOUNT,
                created_by=email,
                used_by=None,
                created_at=now_utc,
            ),
        )
        if referrer is not None:
            await ReferralService.record_signup(
                session,
                referrer_email=referrer.email,
                referred_email=email,
                now_utc=now_utc,
            )

        logger.info(
            "student_signup",
            email=email,
            roll_no=student.roll_no,
            referred_by=referrer.email if referrer is not None else None,
        )
        return student

    @staticmethod
    async def authenticate(session: AsyncSession, *, email: str, password: str) -> AuthContext:
        settings = get_settings()
        if is_valid_admin_login(
            email=email,
            password=password,
            expected_email=settings.admin_email,
            expected_password=settings.admin_password,
        ):
            return AuthContext.admin()

        student = await StudentsRepo.get_by_email(session, email.strip().lower())
        if student is None or not student.approved:
            raise InvalidCredentialsError
        if not verify_password(password, student.password_hash):
            raise InvalidCredentialsError
        return AuthContext.student(student.email)

    @staticmethod
    async def list_pending(session: AsyncSession, *, auth: AuthContext) -> list[Student]:
        auth.require_admin()
        return await StudentsRepo.list_pending(session)

    @staticmethod
    async def list_with_last_payment(
        session: AsyncSession,
        *,
        auth: AuthContext,
    ) -> list[tuple[Student, datetime | None]]:
        auth.require_admin()
        return await StudentsRepo.list_with_last_payment(session)

    @staticmethod
    async def search(session: AsyncSession, *, auth: AuthContext, query: str) -> list[Student]:
        auth.require_admin()
        query = query.strip()
        if not query:
            return []
        return await StudentsRepo.search(session, query=query)

    @staticmethod
    async def approve_student(session: AsyncSession, *, auth: AuthContext, student_id: int) -> None:
        auth.require_admin()
        if not await StudentsRepo.approve(session, student_id):
            raise StudentNotFoundError
        logger.info("student_approved", student_id=student_id)

    @staticmethod
    async def delete_student(session: AsyncSession, *, auth: AuthContext, student_id: int) -> None:
        auth.require_admin()
        # Payments are kept and become orphaned.
        if not await StudentsRepo.delete(session, student_id):
            raise StudentNotFoundError
        logger.info("student_deleted", student_id=student_id)
