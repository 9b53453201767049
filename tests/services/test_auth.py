"""Session cookie signing and verification tests."""

from datetime import timedelta

import pytest
from jose import jwt

from magiclink.config import settings
from magiclink.models import User
from magiclink.models.base import utcnow
from magiclink.services.auth import (
    AuthError,
    create_token,
    decode_token,
    session_expiry,
    verify_token,
)
from magiclink.services.store import SQLIdentityStore


async def make_session(store: SQLIdentityStore, user: User, expires_in: timedelta = timedelta(days=1)):
    session = await store.create_session(user_id=user.id, expires_at=utcnow() + expires_in)
    assert session is not None
    return session


def test_session_expiry_uses_configured_lifetime():
    before = utcnow()
    expiry = session_expiry()
    assert expiry - before >= timedelta(seconds=settings.session_expires_in - 1)


async def test_token_round_trip(store: SQLIdentityStore, user: User):
    session = await make_session(store, user)

    payload = decode_token(create_token(session))

    assert payload["sid"] == session.token
    assert payload["sub"] == user.id


def test_decode_rejects_garbage():
    with pytest.raises(AuthError, match="Invalid token"):
        decode_token("garbage")


def test_decode_rejects_wrong_secret():
    token = jwt.encode({"sid": "x", "sub": "y"}, "other-secret", algorithm=settings.jwt_algorithm)
    with pytest.raises(AuthError):
        decode_token(token)


async def test_verify_token(store: SQLIdentityStore, user: User):
    session = await make_session(store, user)

    found_session, found_user = await verify_token(store, create_token(session))

    assert found_session.id == session.id
    assert found_user.id == user.id


async def test_verify_token_missing_sid(store: SQLIdentityStore):
    token = jwt.encode({"sub": "y"}, settings.session_secret, algorithm=settings.jwt_algorithm)
    with pytest.raises(AuthError, match="missing session ID"):
        await verify_token(store, token)


async def test_verify_token_unknown_session(store: SQLIdentityStore):
    token = jwt.encode(
        {"sid": "unknown", "sub": "y"}, settings.session_secret, algorithm=settings.jwt_algorithm
    )
    with pytest.raises(AuthError, match="Session not found"):
        await verify_token(store, token)


async def test_verify_token_subject_mismatch(store: SQLIdentityStore, user: User):
    session = await make_session(store, user)
    token = jwt.encode(
        {"sid": session.token, "sub": "someone-else"},
        settings.session_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(AuthError, match="subject mismatch"):
        await verify_token(store, token)


async def test_verify_token_expired_session_deleted(store: SQLIdentityStore, user: User):
    session = await make_session(store, user)
    token = create_token(session)
    session.expires_at = utcnow() - timedelta(seconds=1)
    await store.db.commit()

    with pytest.raises(AuthError, match="Session expired"):
        await verify_token(store, token)

    assert await store.find_session(session.token) is None
