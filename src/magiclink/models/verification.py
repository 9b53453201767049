"""Verification model for magic link tokens."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from magiclink.models.base import as_utc, utcnow


class Verification(SQLModel, table=True):
    """Single-use magic link token.

    Keyed by the token itself; ``value`` holds the email it was issued for.
    Rows are never updated, only created and consumed.
    """

    __tablename__ = "verifications"

    identifier: str = Field(primary_key=True, max_length=255, description="Verification token")
    value: str = Field(max_length=255, description="Email address")
    expires_at: datetime = Field(
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        index=True,
        description="Token expiration time",
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )

    def is_expired(self, now: datetime) -> bool:
        return as_utc(self.expires_at) < now
