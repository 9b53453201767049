"""Pydantic schemas for API requests and responses."""

from magiclink.schemas.auth import MagicLinkRequest, SessionResponse
from magiclink.schemas.common import ErrorResponse, StatusResponse, SuccessResponse

__all__ = [
    "ErrorResponse",
    "MagicLinkRequest",
    "SessionResponse",
    "StatusResponse",
    "SuccessResponse",
]
