"""Session model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlmodel import Field, SQLModel

from magiclink.models.base import TimestampMixin, as_utc, generate_nanoid


class Session(TimestampMixin, SQLModel, table=True):
    """An authenticated session for one user.

    The token is the opaque handle carried by the session cookie.
    """

    __tablename__ = "sessions"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    token: str = Field(unique=True, index=True, max_length=64)
    user_id: str = Field(
        sa_column=Column(
            String(21),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    expires_at: datetime = Field(
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        description="Session expiration time",
    )
    ip_address: str | None = Field(default=None, max_length=64)
    user_agent: str | None = Field(default=None, max_length=512)

    def is_expired(self, now: datetime) -> bool:
        return as_utc(self.expires_at) < now


class SessionRead(SQLModel):
    """Schema for reading a session."""

    id: str
    token: str
    user_id: str
    expires_at: datetime
    ip_address: str | None
    user_agent: str | None
    created_at: datetime
