"""Common schemas used across the API."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str | None = None


class StatusResponse(BaseModel):
    """Bare acknowledgement."""

    status: bool


class SuccessResponse(BaseModel):
    """Standard success response."""

    success: bool
