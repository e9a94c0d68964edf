import datetime
import logging
import secrets
from typing import Optional
from fastapi import Request, Response
from passlib.hash import bcrypt

from .entities import Session, User, utcnow
from .errors import AuthenticationError

logger = logging.getLogger(__name__)

COOKIE_NAME = "session_token"
BEARER_PREFIX = "bearer "


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.using(rounds=rounds).hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.verify(password, password_hash)


def new_token() -> str:
    return secrets.token_hex(32)


def session_expiry(days: int) -> datetime.datetime:
    return utcnow() + datetime.timedelta(days=days)


def token_from_request(request: Request) -> Optional[str]:
    """Session token from the cookie, falling back to an Authorization: Bearer header."""
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    header = request.headers.get("authorization", "")
    if header.lower().startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):].strip() or None
    return None


def set_session_cookie(response: Response, session: Session, secure: bool) -> None:
    max_age = int((session.expires_at - utcnow()).total_seconds())
    response.set_cookie(
        COOKIE_NAME,
        session.token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=secure,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME)


def get_current_session(request: Request) -> Optional[Session]:
    """Return the live Session for this request or None."""
    token = token_from_request(request)
    if not token:
        return None
    return request.app.state.store.get_session(token)


def require_user(request: Request) -> User:
    """FastAPI dependency: the logged-in User, or 401."""
    session = get_current_session(request)
    if session is None:
        raise AuthenticationError("Not authenticated")
    user = request.app.state.store.get_user(session.user_id)
    if user is None:
        logger.warning("Session for missing user_id=%s", session.user_id)
        raise AuthenticationError("Not authenticated")
    return user
