"""Authentication endpoints: magic link sign-in and session management."""

import logging
from typing import Annotated

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse, RedirectResponse, Response

from magiclink.api.deps import (
    AuthRateLimit,
    CurrentSessionOptional,
    MagicLinkDep,
    RequestContextDep,
    StoreDep,
)
from magiclink.models import SessionRead, UserRead
from magiclink.schemas import (
    ErrorResponse,
    MagicLinkRequest,
    SessionResponse,
    StatusResponse,
    SuccessResponse,
)
from magiclink.services.auth import delete_session_cookie, set_session_cookie
from magiclink.services.magic_link import SIGN_IN_PATH, VERIFY_PATH, RedirectError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    SIGN_IN_PATH,
    response_model=StatusResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def sign_in_magic_link(
    body: MagicLinkRequest,
    store: StoreDep,
    magic_link: MagicLinkDep,
    context: RequestContextDep,
    _rate_limit: AuthRateLimit,
):
    """
    Request a magic link for authentication.

    The link is only ever delivered by email; the response carries no token.
    """
    status_ok = await magic_link.issue(
        store,
        str(body.email),
        callback_url=body.callback_url,
        context=context,
    )
    return StatusResponse(status=status_ok)


@router.get(VERIFY_PATH, response_model=SessionResponse)
async def magic_link_verify(
    token: Annotated[str, Query(description="Verification token")],
    store: StoreDep,
    magic_link: MagicLinkDep,
    context: RequestContextDep,
    _rate_limit: AuthRateLimit,
    callback_url: Annotated[
        str | None,
        Query(
            alias="callbackURL",
            description="URL to redirect after verification, if not provided will return session",
        ),
    ] = None,
):
    """
    Verify a magic link token and sign the user in.

    Failures always redirect with an ``error`` query parameter.
    """
    outcome = await magic_link.redeem(store, token, callback_url=callback_url, context=context)

    if isinstance(outcome, RedirectError):
        logger.info(f"Magic link verification failed: {outcome.code.value}")
        return RedirectResponse(outcome.url, status_code=status.HTTP_302_FOUND)

    response: Response
    if outcome.callback_url:
        response = RedirectResponse(outcome.callback_url, status_code=status.HTTP_302_FOUND)
    else:
        payload = SessionResponse(
            session=SessionRead.model_validate(outcome.session),
            user=UserRead.model_validate(outcome.user),
        )
        response = JSONResponse(payload.model_dump(mode="json"))

    set_session_cookie(response, outcome.session)
    return response


@router.get("/session", response_model=SessionResponse | None)
async def get_session_info(current: CurrentSessionOptional):
    """Get the session for the current cookie, or null."""
    if current is None:
        return None
    session, user = current
    return SessionResponse(
        session=SessionRead.model_validate(session),
        user=UserRead.model_validate(user),
    )


@router.post("/sign-out", response_model=SuccessResponse)
async def sign_out(current: CurrentSessionOptional, store: StoreDep, response: Response):
    """Delete the current session and clear the cookie."""
    if current is not None:
        await store.delete_session(current[0].token)
    delete_session_cookie(response)
    return SuccessResponse(success=True)
