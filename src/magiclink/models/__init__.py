"""SQLModel database models."""

from magiclink.models.base import TimestampMixin, generate_nanoid, utcnow
from magiclink.models.session import Session, SessionRead
from magiclink.models.user import User, UserRead
from magiclink.models.verification import Verification

__all__ = [
    "Session",
    "SessionRead",
    "TimestampMixin",
    "User",
    "UserRead",
    "Verification",
    "generate_nanoid",
    "utcnow",
]
