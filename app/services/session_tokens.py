from __future__ import annotations

import hashlib
import hmac
import secrets

from app.services.auth_context import ROLE_ADMIN, ROLE_STUDENT, AuthContext

SESSION_COOKIE = "tuition_session"
_SEPARATOR = "|"
_KNOWN_ROLES = {ROLE_ADMIN, ROLE_STUDENT}


def _sign(payload: str, *, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256)
    return digest.hexdigest()


def build_session_value(auth: AuthContext, *, secret: str, issued_at: int) -> str:
    payload = _SEPARATOR.join((auth.role, str(issued_at), auth.email or ""))
    return f"{payload}{_SEPARATOR}{_sign(payload, secret=secret)}"


def parse_session_value(
    value: str | None,
    *,
    secret: str,
    now_ts: int,
    max_age_seconds: int,
) -> AuthContext | None:
    """Returns the identity carried by a signed cookie, or None when it is not trustworthy."""
    if not value or not secret:
        return None

    payload, _, signature = value.rpartition(_SEPARATOR)
    if not payload or not secrets.compare_digest(
        _sign(payload, secret=secret).encode("utf-8"),
        signature.encode("utf-8"),
    ):
        return None

    role, _, rest = payload.partition(_SEPARATOR)
    raw_issued_at, _, email = rest.partition(_SEPARATOR)
    if role not in _KNOWN_ROLES:
        return None
    try:
        issued_at = int(raw_issued_at)
    except ValueError:
        return None
    if issued_at > now_ts or now_ts - issued_at > max_age_seconds:
        return None

    if role == ROLE_ADMIN:
        return AuthContext.admin()
    if not email:
        return None
    return AuthContext.student(email)


def is_valid_admin_login(
    *,
    email: str,
    password: str,
    expected_email: str,
    expected_password: str,
) -> bool:
    if not expected_email or not expected_password:
        return False
    email_ok = secrets.compare_digest(
        email.strip().lower().encode("utf-8"),
        expected_email.strip().lower().encode("utf-8"),
    )
    password_ok = secrets.compare_digest(
        password.encode("utf-8"),
        expected_password.encode("utf-8"),
    )
    return email_ok and password_ok
