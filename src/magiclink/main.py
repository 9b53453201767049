"""FastAPI application entrypoint."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from magiclink.api import auth
from magiclink.api.middleware import RequestIDMiddleware
from magiclink.api.router import api_router
from magiclink.config import settings
from magiclink.database import close_db
from magiclink.schemas import ErrorResponse
from magiclink.services.email import send_magic_link_email
from magiclink.services.magic_link import MagicLink, MagicLinkError, MagicLinkOptions
from magiclink.services.rate_limit import InMemoryRateLimiter

logger = logging.getLogger(__name__)

# Initialize Sentry for error tracking
if settings.sentry_dsn:
    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
    )
    logger.info("Sentry initialized")


RATE_LIMIT_PRUNE_INTERVAL = 300


async def prune_rate_limits(limiter: InMemoryRateLimiter) -> None:
    while True:
        await asyncio.sleep(RATE_LIMIT_PRUNE_INTERVAL)
        removed = await limiter.prune()
        if removed:
            logger.debug(f"Dropped {removed} idle rate limit buckets")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Schema is managed by Alembic migrations
    pruner = asyncio.create_task(prune_rate_limits(app.state.rate_limiter))
    try:
        yield
    finally:
        pruner.cancel()
        await close_db()


async def magic_link_error_handler(_request: Request, exc: MagicLinkError) -> JSONResponse:
    """Render issuance failures as structured API errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(detail=exc.message, code=exc.code).model_dump(),
    )


def register_magic_link(app: FastAPI, magic_link: MagicLink) -> None:
    """Mount the auth routes at the plugin's base path and install its rate limit rules."""
    app.state.magic_link = magic_link
    app.state.auth_base_path = magic_link.base_path
    app.state.rate_limit_rules = [
        *getattr(app.state, "rate_limit_rules", []),
        *magic_link.rate_limit_rules(),
    ]
    app.include_router(auth.router, prefix=magic_link.base_path, tags=["auth"])


def create_app(magic_link: MagicLink | None = None) -> FastAPI:
    """Build the application.

    Args:
        magic_link: Plugin to register; defaults to one configured from settings
            that delivers through the email service
    """
    app = FastAPI(
        title="Magic Link Auth",
        description="Passwordless sign-in with single-use email links",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug_enabled else None,
        redoc_url="/api/redoc" if settings.debug_enabled else None,
        openapi_url="/api/openapi.json" if settings.debug_enabled else None,
    )

    app.add_middleware(RequestIDMiddleware)  # type: ignore[arg-type]
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(MagicLinkError, magic_link_error_handler)  # type: ignore[arg-type]

    app.state.rate_limiter = InMemoryRateLimiter()
    app.state.rate_limit_rules = []
    if magic_link is None:
        magic_link = MagicLink(MagicLinkOptions.from_settings(send_magic_link_email))
    register_magic_link(app, magic_link)

    app.include_router(api_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from magiclink.logging import build_log_config, setup_logging

    setup_logging()
    uvicorn.run(
        "magiclink.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_config=build_log_config(),
    )
