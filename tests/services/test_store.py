"""Identity store tests."""

from datetime import timedelta

from magiclink.models import User
from magiclink.models.base import utcnow
from magiclink.services.store import SQLIdentityStore


class TestUsers:
    async def test_create_and_find(self, store: SQLIdentityStore):
        created = await store.create_user(email="a@b.com", name="A", email_verified=True)

        found = await store.find_user_by_email("a@b.com")

        assert created is not None
        assert found is not None
        assert found.id == created.id
        assert len(found.id) == 21
        assert found.email_verified is True

    async def test_find_missing(self, store: SQLIdentityStore):
        assert await store.find_user_by_email("missing@example.com") is None

    async def test_duplicate_email_returns_none(self, store: SQLIdentityStore, user: User):
        email = user.email
        duplicate = await store.create_user(email=email, name=None, email_verified=False)

        assert duplicate is None
        # Session is still usable after the rollback
        assert await store.find_user_by_email(email) is not None


class TestVerifications:
    async def test_consume_returns_record_once(self, store: SQLIdentityStore):
        expires_at = utcnow() + timedelta(minutes=5)
        await store.create_verification(identifier="tok", value="a@b.com", expires_at=expires_at)

        first = await store.consume_verification("tok")
        second = await store.consume_verification("tok")

        assert first is not None
        assert first.identifier == "tok"
        assert first.value == "a@b.com"
        assert not first.is_expired(utcnow())
        assert second is None
        assert await store.find_verification("tok") is None

    async def test_consume_missing(self, store: SQLIdentityStore):
        assert await store.consume_verification("nope") is None

    async def test_consume_expired_still_deletes(self, store: SQLIdentityStore):
        await store.create_verification(
            identifier="old", value="a@b.com", expires_at=utcnow() - timedelta(seconds=1)
        )

        consumed = await store.consume_verification("old")

        assert consumed is not None
        assert consumed.is_expired(utcnow())
        assert await store.find_verification("old") is None

    async def test_delete_expired(self, store: SQLIdentityStore):
        now = utcnow()
        await store.create_verification(
            identifier="old", value="a@b.com", expires_at=now - timedelta(minutes=1)
        )
        await store.create_verification(
            identifier="new", value="a@b.com", expires_at=now + timedelta(minutes=1)
        )

        deleted = await store.delete_expired_verifications(now)

        assert deleted == 1
        assert await store.find_verification("old") is None
        assert await store.find_verification("new") is not None


class TestSessions:
    async def test_create_and_find(self, store: SQLIdentityStore, user: User):
        session = await store.create_session(
            user_id=user.id,
            expires_at=utcnow() + timedelta(days=1),
            ip_address="10.0.0.1",
            user_agent="x" * 1000,
        )

        assert session is not None
        assert len(session.token) == 32
        assert session.user_agent is not None
        assert len(session.user_agent) == 512

        found = await store.find_session(session.token)
        assert found is not None
        found_session, found_user = found
        assert found_session.id == session.id
        assert found_user.id == user.id

    async def test_find_missing(self, store: SQLIdentityStore):
        assert await store.find_session("missing") is None

    async def test_delete(self, store: SQLIdentityStore, user: User):
        session = await store.create_session(user_id=user.id, expires_at=utcnow() + timedelta(days=1))
        assert session is not None

        await store.delete_session(session.token)

        assert await store.find_session(session.token) is None

    async def test_delete_expired(self, store: SQLIdentityStore, user: User):
        now = utcnow()
        expired = await store.create_session(user_id=user.id, expires_at=now - timedelta(hours=1))
        live = await store.create_session(user_id=user.id, expires_at=now + timedelta(hours=1))
        assert expired is not None and live is not None

        deleted = await store.delete_expired_sessions(now)

        assert deleted == 1
        assert await store.find_session(expired.token) is None
        assert await store.find_session(live.token) is not None
