from __future__ import annotations

import time

import structlog
from fastapi import Request, Response

from app.core.config import get_settings
from app.services.auth_context import AuthContext
from app.services.session_tokens import (
    SESSION_COOKIE,
    build_session_value,
    parse_session_value,
)

logger = structlog.get_logger(__name__)

ANONYMOUS = AuthContext(role="anonymous", email=None)


def current_auth(request: Request) -> AuthContext:
    settings = get_settings()
    auth = parse_session_value(
        request.cookies.get(SESSION_COOKIE),
        secret=settings.session_secret,
        now_ts=int(time.time()),
        max_age_seconds=settings.session_max_age_seconds,
    )
    if auth is None:
        if request.cookies.get(SESSION_COOKIE):
            logger.warning("session_cookie_rejected", path=request.url.path)
        return ANONYMOUS
    return auth


def start_session(response: Response, auth: AuthContext) -> None:
    settings = get_settings()
    response.set_cookie(
        key=SESSION_COOKIE,
        value=build_session_value(
            auth,
            secret=settings.session_secret,
            issued_at=int(time.time()),
        ),
        max_age=settings.session_max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.app_env != "dev",
        path="/",
    )


def end_session(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE, path="/")
