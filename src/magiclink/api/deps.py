"""FastAPI dependencies for dependency injection."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from magiclink.config import settings
from magiclink.database import get_session
from magiclink.models import Session, User
from magiclink.services.auth import AuthError, verify_token
from magiclink.services.magic_link import MagicLink, RequestContext
from magiclink.services.rate_limit import (
    InMemoryRateLimiter,
    RateLimitRule,
    get_client_ip,
    get_identifier,
    match_rules,
    rate_limit_headers,
)
from magiclink.services.store import IdentityStore, SQLIdentityStore

logger = logging.getLogger(__name__)

# Type alias for database session dependency
DbSession = Annotated[AsyncSession, Depends(get_session)]


def get_identity_store(db: DbSession) -> IdentityStore:
    """Identity store bound to the request's database session."""
    return SQLIdentityStore(db)


StoreDep = Annotated[IdentityStore, Depends(get_identity_store)]


def get_magic_link(request: Request) -> MagicLink:
    """The magic link plugin registered on the app."""
    magic_link: MagicLink | None = getattr(request.app.state, "magic_link", None)
    if magic_link is None:
        raise RuntimeError("Magic link plugin is not registered")
    return magic_link


MagicLinkDep = Annotated[MagicLink, Depends(get_magic_link)]


def get_request_context(request: Request) -> RequestContext:
    return RequestContext.from_request(request)


RequestContextDep = Annotated[RequestContext, Depends(get_request_context)]


async def get_current_session_optional(
    request: Request,
    store: StoreDep,
) -> tuple[Session, User] | None:
    """Session and user for the request's cookie, None if absent or invalid."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return None

    try:
        return await verify_token(store, token)
    except AuthError as e:
        # Expected for stale or tampered cookies
        logger.debug(f"Session verification failed: {e!r}")
        return None


CurrentSessionOptional = Annotated[
    tuple[Session, User] | None, Depends(get_current_session_optional)
]


class RateLimitDependency:
    """Enforce the rate limit rules registered on the app.

    Paths are matched relative to the base path the auth routes were mounted
    at, so plugins declare rules against their own route paths.
    """

    async def __call__(self, request: Request) -> None:
        """Check every matching rule and raise 429 if one is exceeded."""
        rules: list[RateLimitRule] = getattr(request.app.state, "rate_limit_rules", [])
        limiter: InMemoryRateLimiter | None = getattr(request.app.state, "rate_limiter", None)
        if not rules or limiter is None:
            return

        path = request.url.path.removeprefix(
            getattr(request.app.state, "auth_base_path", settings.base_path)
        )
        identifier = get_identifier(get_client_ip(request))

        for rule in match_rules(rules, path):
            result = await limiter.check(identifier, rule)
            if not result.success:
                headers = rate_limit_headers(result)
                retry_after = headers.get("Retry-After", str(rule.window))
                logger.warning(f"Rate limit exceeded for {identifier} on {rule.name}")
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail=f"Rate limit exceeded. Please try again in {retry_after} seconds.",
                    headers=headers,
                )


AuthRateLimit = Annotated[None, Depends(RateLimitDependency())]
