from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr, Field

from app.db.session import SessionLocal
from app.services.auth_context import ROLE_ADMIN, ROLE_STUDENT, AuthContext
from app.services.students import InvalidCredentialsError, StudentService

from .errors import DOMAIN_ERRORS, as_http_exception
from .session_helpers import current_auth, end_session, start_session

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = structlog.get_logger(__name__)


class SignupRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    email: EmailStr
    class_name: str = Field(min_length=1, max_length=32)
    board: str = Field(min_length=1, max_length=32)
    password: str = Field(min_length=6, max_length=128)
    referral_code: str | None = Field(default=None, max_length=32)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=254)
    password: str = Field(min_length=1, max_length=128)


class MessageResponse(BaseModel):
    message: str


class RoleResponse(BaseModel):
    role: str | None = None


@router.post("/signup", response_model=MessageResponse)
async def signup(payload: SignupRequest) -> MessageResponse:
    try:
        async with SessionLocal.begin() as session:
            await StudentService.signup(
                session,
                name=payload.name,
                email=str(payload.email),
                class_name=payload.class_name,
                board=payload.board,
                password=payload.password,
                referral_code=payload.referral_code,
            )
    except DOMAIN_ERRORS as exc:
        raise as_http_exception(exc) from exc
    return MessageResponse(message="Account created, pending admin approval")


@router.post("/login", response_model=RoleResponse)
async def login(payload: LoginRequest, response: Response) -> RoleResponse:
    try:
        async with SessionLocal() as session:
            auth = await StudentService.authenticate(
                session,
                email=payload.email,
                password=payload.password,
            )
    except InvalidCredentialsError as exc:
        logger.warning("auth_failed", reason="invalid_credentials")
        raise as_http_exception(exc) from exc

    start_session(response, auth)
    logger.info("auth_login", role=auth.role, email=auth.email)
    return RoleResponse(role=auth.role)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    end_session(response)
    return MessageResponse(message="Logged out")


@router.get("/status", response_model=RoleResponse)
async def session_status(auth: AuthContext = Depends(current_auth)) -> RoleResponse:
    if auth.role not in {ROLE_STUDENT, ROLE_ADMIN}:
        return RoleResponse(role=None)
    return RoleResponse(role=auth.role)
