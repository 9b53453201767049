"""Session cookie signing and lookup."""

from datetime import datetime, timedelta

from fastapi import Response
from jose import JWTError, jwt

from magiclink.config import settings
from magiclink.models import Session, User
from magiclink.models.base import as_utc, utcnow
from magiclink.services.store import IdentityStore


class AuthError(Exception):
    """Authentication error."""

    pass


def session_expiry() -> datetime:
    """Expiry timestamp for a session created now."""
    return utcnow() + timedelta(seconds=settings.session_expires_in)


def create_token(session: Session) -> str:
    """Sign a session handle for use as the cookie value."""
    payload = {
        "sid": session.token,
        "sub": session.user_id,
        "exp": as_utc(session.expires_at),
        "iat": utcnow(),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a signed session cookie."""
    try:
        payload = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError as e:
        raise AuthError(f"Invalid token: {e}") from e


async def verify_token(store: IdentityStore, token: str) -> tuple[Session, User]:
    """Resolve a cookie value to a live session and its user."""
    payload = decode_token(token)

    session_token = payload.get("sid")
    if not session_token:
        raise AuthError("Invalid token: missing session ID")

    found = await store.find_session(session_token)
    if not found:
        raise AuthError("Session not found")

    session, user = found
    if session.is_expired(utcnow()):
        await store.delete_session(session.token)
        raise AuthError("Session expired")

    if session.user_id != payload.get("sub"):
        raise AuthError("Invalid token: subject mismatch")

    return session, user


def set_session_cookie(response: Response, session: Session) -> None:
    """Attach the signed session cookie to a response."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=create_token(session),
        max_age=settings.session_expires_in,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
    )


def delete_session_cookie(response: Response) -> None:
    """Clear the session cookie. Attributes must match set_session_cookie."""
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
    )
