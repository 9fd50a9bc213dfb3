"""Session token and cookie utilities."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import HTTPException, Request, Response

from .settings import settings


SESSION_COOKIE_NAME = "obdscribe_session"
SESSION_ALGORITHM = "HS256"


@dataclass(frozen=True)
class AuthSession:
    """The authenticated identity reconstructed from a session cookie."""

    user_id: uuid.UUID
    shop_id: uuid.UUID


def issue_session_token(
    user_id: uuid.UUID,
    shop_id: uuid.UUID,
    *,
    secret: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Sign a session token carrying the user and shop ids."""
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "userId": str(user_id),
        "shopId": str(shop_id),
        "iat": issued_at,
        "exp": issued_at + timedelta(days=settings.session_ttl_days),
    }
    return jwt.encode(payload, secret or settings.auth_secret, algorithm=SESSION_ALGORITHM)


def _claim_as_uuid(claims: dict[str, Any], name: str) -> Optional[uuid.UUID]:
    value = claims.get(name)
    if not isinstance(value, str) or not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def parse_session_token(token: Optional[str], *, secret: Optional[str] = None) -> Optional[AuthSession]:
    """Decode a session token, returning ``None`` on any failure."""
    if not token:
        return None
    try:
        claims = jwt.decode(
            token,
            secret or settings.auth_secret,
            algorithms=[SESSION_ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.PyJWTError:
        return None
    user_id = _claim_as_uuid(claims, "userId")
    shop_id = _claim_as_uuid(claims, "shopId")
    if user_id is None or shop_id is None:
        return None
    return AuthSession(user_id=user_id, shop_id=shop_id)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=settings.session_ttl_days * 24 * 60 * 60,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


def get_optional_session(request: Request) -> Optional[AuthSession]:
    """Resolve the session from the request cookie, if any.

    In development, an explicitly configured identity stands in for a
    missing cookie so the UI can be exercised without signing in.
    """
    session = parse_session_token(request.cookies.get(SESSION_COOKIE_NAME))
    if session is None and settings.dev_identity_enabled:
        return AuthSession(user_id=settings.dev_user_id, shop_id=settings.dev_shop_id)
    return session


def get_current_session(request: Request) -> AuthSession:
    """FastAPI dependency that requires a valid session cookie."""
    session = get_optional_session(request)
    if session is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return session
