"""Request and response schemas for the auth routes."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from magiclink.models import SessionRead, UserRead


class MagicLinkRequest(BaseModel):
    """Request body for POST /sign-in/magic-link."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr = Field(description="Email address to send the magic link")
    callback_url: str | None = Field(
        default=None,
        alias="callbackURL",
        description="URL to redirect after magic link verification",
    )


class SessionResponse(BaseModel):
    """An authenticated session and its user."""

    session: SessionRead
    user: UserRead
