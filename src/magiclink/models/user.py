"""User model."""

from sqlmodel import Field, SQLModel

from magiclink.models.base import TimestampMixin, generate_nanoid


class User(TimestampMixin, SQLModel, table=True):
    """User account model."""

    __tablename__ = "users"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    email: str = Field(unique=True, index=True, max_length=255)
    email_verified: bool = Field(default=False)
    name: str | None = Field(default=None, max_length=255)


class UserRead(SQLModel):
    """Schema for reading a user."""

    id: str
    email: str
    email_verified: bool
    name: str | None
