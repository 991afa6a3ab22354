from __future__ import annotations

from dataclasses import dataclass

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"


class UnauthorizedError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class AuthContext:
    role: str
    email: str | None = None

    @classmethod
    def student(cls, email: str) -> AuthContext:
        return cls(role=ROLE_STUDENT, email=email)

    @classmethod
    def admin(cls) -> AuthContext:
        return cls(role=ROLE_ADMIN, email=None)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def require_student(self) -> str:
        if self.role != ROLE_STUDENT or not self.email:
            raise UnauthorizedError
        return self.email

    def require_admin(self) -> None:
        if self.role != ROLE_ADMIN:
            raise UnauthorizedError
