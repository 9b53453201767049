"""Identity store: persistence for users, sessions and verification records."""

import logging
from datetime import datetime
from typing import Protocol

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from magiclink.models import Session, User, Verification
from magiclink.services.tokens import generate_session_token

logger = logging.getLogger(__name__)


class IdentityStore(Protocol):
    """Account, session and verification persistence used by the auth flows."""

    async def find_user_by_email(self, email: str) -> User | None: ...

    async def create_user(
        self, *, email: str, name: str | None, email_verified: bool
    ) -> User | None: ...

    async def create_verification(
        self, *, identifier: str, value: str, expires_at: datetime
    ) -> Verification: ...

    async def find_verification(self, identifier: str) -> Verification | None: ...

    async def consume_verification(self, identifier: str) -> Verification | None:
        """Delete the record and return what was deleted, as one atomic step."""
        ...

    async def delete_expired_verifications(self, now: datetime) -> int: ...

    async def create_session(
        self,
        *,
        user_id: str,
        expires_at: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Session | None: ...

    async def find_session(self, token: str) -> tuple[Session, User] | None: ...

    async def delete_session(self, token: str) -> None: ...

    async def delete_expired_sessions(self, now: datetime) -> int: ...


class SQLIdentityStore:
    """IdentityStore backed by SQLModel tables.

    Every write commits on its own, so a persisted record survives a later
    failure in the same request.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_user_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_user(
        self, *, email: str, name: str | None, email_verified: bool
    ) -> User | None:
        user = User(email=email, name=name, email_verified=email_verified)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another request created the same email first
            await self.db.rollback()
            logger.warning(f"Could not create user for {email}: already exists")
            return None
        return user

    async def create_verification(
        self, *, identifier: str, value: str, expires_at: datetime
    ) -> Verification:
        verification = Verification(identifier=identifier, value=value, expires_at=expires_at)
        self.db.add(verification)
        await self.db.commit()
        return verification

    async def find_verification(self, identifier: str) -> Verification | None:
        stmt = select(Verification).where(Verification.identifier == identifier)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def consume_verification(self, identifier: str) -> Verification | None:
        # DELETE ... RETURNING: of two concurrent callers only one gets the row
        stmt = (
            delete(Verification)
            .where(Verification.identifier == identifier)  # type: ignore[arg-type]
            .returning(
                Verification.identifier,  # type: ignore[arg-type]
                Verification.value,  # type: ignore[arg-type]
                Verification.expires_at,  # type: ignore[arg-type]
                Verification.created_at,  # type: ignore[arg-type]
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        row = result.one_or_none()
        await self.db.commit()

        if row is None:
            return None
        return Verification(
            identifier=row.identifier,
            value=row.value,
            expires_at=row.expires_at,
            created_at=row.created_at,
        )

    async def delete_expired_verifications(self, now: datetime) -> int:
        stmt = (
            delete(Verification)
            .where(Verification.expires_at < now)  # type: ignore[arg-type]
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount  # type: ignore[attr-defined]

    async def create_session(
        self,
        *,
        user_id: str,
        expires_at: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Session | None:
        session = Session(
            token=generate_session_token(),
            user_id=user_id,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent[:512] if user_agent else None,
        )
        self.db.add(session)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning(f"Could not create session for user {user_id}", exc_info=True)
            return None
        return session

    async def find_session(self, token: str) -> tuple[Session, User] | None:
        stmt = (
            select(Session, User)
            .join(User, User.id == Session.user_id)  # type: ignore[arg-type]
            .where(Session.token == token)
        )
        result = await self.db.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return row[0], row[1]

    async def delete_session(self, token: str) -> None:
        stmt = delete(Session).where(Session.token == token)  # type: ignore[arg-type]
        await self.db.execute(stmt)
        await self.db.commit()

    async def delete_expired_sessions(self, now: datetime) -> int:
        stmt = (
            delete(Session)
            .where(Session.expires_at < now)  # type: ignore[arg-type]
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount  # type: ignore[attr-defined]
