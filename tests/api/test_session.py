"""Session endpoint tests."""

from datetime import timedelta

from httpx import AsyncClient

from magiclink.config import settings
from magiclink.models import User
from magiclink.models.base import utcnow
from magiclink.services.auth import create_token
from magiclink.services.store import SQLIdentityStore


async def sign_in(client: AsyncClient, store: SQLIdentityStore, user: User, **session_kwargs):
    """Create a session for ``user`` and load its cookie into the client."""
    session_kwargs.setdefault("expires_at", utcnow() + timedelta(days=1))
    session = await store.create_session(user_id=user.id, **session_kwargs)
    assert session is not None
    client.cookies.set(settings.session_cookie_name, create_token(session))
    return session


async def test_session_without_cookie(client: AsyncClient):
    response = await client.get("/api/auth/session")

    assert response.status_code == 200
    assert response.json() is None


async def test_session_with_cookie(client: AsyncClient, store: SQLIdentityStore, user: User):
    session = await sign_in(client, store, user, ip_address="10.0.0.1")

    response = await client.get("/api/auth/session")

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == user.id
    assert data["user"]["email"] == user.email
    assert data["session"]["id"] == session.id
    assert data["session"]["ip_address"] == "10.0.0.1"


async def test_session_with_garbage_cookie(client: AsyncClient):
    client.cookies.set(settings.session_cookie_name, "not-a-jwt")

    response = await client.get("/api/auth/session")

    assert response.status_code == 200
    assert response.json() is None


async def test_expired_session_is_removed(
    client: AsyncClient, store: SQLIdentityStore, user: User
):
    # Cookie still carries a valid signature; the stored session is what expired
    session = await sign_in(client, store, user, expires_at=utcnow() + timedelta(days=1))
    session.expires_at = utcnow() - timedelta(minutes=1)
    await store.db.commit()

    response = await client.get("/api/auth/session")

    assert response.json() is None
    assert await store.find_session(session.token) is None


async def test_sign_out(client: AsyncClient, store: SQLIdentityStore, user: User):
    session = await sign_in(client, store, user)

    response = await client.post("/api/auth/sign-out")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert await store.find_session(session.token) is None
    assert f'{settings.session_cookie_name}=""' in response.headers["set-cookie"]


async def test_sign_out_without_session(client: AsyncClient):
    response = await client.post("/api/auth/sign-out")

    assert response.status_code == 200
    assert response.json() == {"success": True}


async def test_magic_link_round_trip(client: AsyncClient, outbox, store: SQLIdentityStore):
    """Sign in through the emailed link, read the session, then sign out."""
    await client.post("/api/auth/sign-in/magic-link", json={"email": "flow@example.com"})

    verify = await client.get(outbox.last.url)
    assert verify.status_code == 200

    session = await client.get("/api/auth/session")
    assert session.json()["user"]["email"] == "flow@example.com"

    cookie = client.cookies.get(settings.session_cookie_name)
    await client.post("/api/auth/sign-out")

    # Replaying the old cookie finds nothing once the session is gone
    client.cookies.clear()
    client.cookies.set(settings.session_cookie_name, cookie)

    after = await client.get("/api/auth/session")
    assert after.json() is None
