"""Magic link sign-in: token issuance and redemption.

A ``MagicLink`` exposes the two operations plus the rate limit rules the host
should enforce in front of them. The host registers it explicitly.

Redemption never raises to the caller. Each failure is returned as a
``RedirectError`` carrying a machine-readable code, and the HTTP layer turns
outcomes into responses.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from fastapi import Request

from magiclink.config import Settings, settings
from magiclink.models import Session, User
from magiclink.models.base import utcnow
from magiclink.services.auth import session_expiry
from magiclink.services.rate_limit import RateLimitRule, get_client_ip
from magiclink.services.store import IdentityStore
from magiclink.services.tokens import generate_magic_link_token

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 60 * 5
DEFAULT_RATE_LIMIT_WINDOW = 60
DEFAULT_RATE_LIMIT_MAX = 5

SIGN_IN_PATH = "/sign-in/magic-link"
VERIFY_PATH = "/magic-link/verify"


@dataclass(frozen=True)
class MagicLinkData:
    """What the delivery callback receives."""

    email: str
    url: str
    token: str
    expires_in: int


@dataclass(frozen=True)
class RequestContext:
    """Transport details of the request that triggered an operation."""

    ip_address: str | None = None
    user_agent: str | None = None
    request: Request | None = None

    @classmethod
    def from_request(cls, request: Request) -> "RequestContext":
        return cls(
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("user-agent"),
            request=request,
        )


SendMagicLink = Callable[[MagicLinkData, RequestContext | None], Awaitable[None] | None]


@dataclass
class RateLimitOptions:
    window: int = DEFAULT_RATE_LIMIT_WINDOW
    max: int = DEFAULT_RATE_LIMIT_MAX


@dataclass
class MagicLinkOptions:
    """Configuration for the magic link flow.

    Attributes:
        send_magic_link: Delivery callback, sync or async. Raising aborts issuance.
        expires_in: Token lifetime in seconds.
        disable_sign_up: Never create accounts; refuse links for unknown emails.
        rate_limit: Window/max for the shared magic link bucket.
    """

    send_magic_link: SendMagicLink
    expires_in: int = DEFAULT_EXPIRES_IN
    disable_sign_up: bool = False
    rate_limit: RateLimitOptions = field(default_factory=RateLimitOptions)

    @classmethod
    def from_settings(
        cls,
        send_magic_link: SendMagicLink,
        config: Settings = settings,
    ) -> "MagicLinkOptions":
        return cls(
            send_magic_link=send_magic_link,
            expires_in=config.magic_link_expires_in,
            disable_sign_up=config.magic_link_disable_sign_up,
            rate_limit=RateLimitOptions(
                window=config.magic_link_rate_limit_window,
                max=config.magic_link_rate_limit_max,
            ),
        )


class MagicLinkError(Exception):
    """Issuance failure reported to the caller as a structured API error."""

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UserNotFoundError(MagicLinkError):
    """Sign-up is disabled and no account exists for the email."""

    code = "BAD_REQUEST"
    status_code = 400


class MagicLinkDeliveryError(MagicLinkError):
    """The delivery callback failed."""

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500


class RedeemErrorCode(str, Enum):
    """Error codes appended to the redirect target when redemption fails."""

    INVALID_TOKEN = "INVALID_TOKEN"
    EXPIRED_TOKEN = "EXPIRED_TOKEN"
    USER_NOT_CREATED = "USER_NOT_CREATED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    SESSION_NOT_CREATED = "SESSION_NOT_CREATED"


@dataclass(frozen=True)
class SignedIn:
    """Redemption succeeded and a session exists."""

    session: Session
    user: User
    callback_url: str | None = None


@dataclass(frozen=True)
class RedirectError:
    """Redemption failed; send the browser to ``url``."""

    target: str
    code: RedeemErrorCode

    @property
    def url(self) -> str:
        return f"{self.target}?error={self.code.value}"


RedeemOutcome = SignedIn | RedirectError


def is_magic_link_path(path: str) -> bool:
    return path.startswith(SIGN_IN_PATH) or path.startswith(VERIFY_PATH)


class MagicLink:
    """Passwordless sign-in through single-use emailed tokens."""

    id = "magic-link"

    def __init__(
        self,
        options: MagicLinkOptions,
        *,
        base_url: str | None = None,
        base_path: str | None = None,
    ) -> None:
        self.options = options
        self.base_url = (base_url if base_url is not None else settings.base_url).rstrip("/")
        self.base_path = base_path if base_path is not None else settings.base_path

    @property
    def expires_in(self) -> int:
        return self.options.expires_in or DEFAULT_EXPIRES_IN

    def build_url(self, token: str, callback_url: str | None = None) -> str:
        """Redemption URL sent to the user. ``callback_url`` goes in verbatim."""
        return (
            f"{self.base_url}{self.base_path}{VERIFY_PATH}"
            f"?token={token}&callbackURL={callback_url or '/'}"
        )

    def redirect_target(self, callback_url: str | None) -> str:
        """Where failed redemptions send the browser."""
        if callback_url and callback_url.startswith("http"):
            return callback_url
        if callback_url:
            return f"{self.base_url}{callback_url}"
        return self.base_url

    async def issue(
        self,
        store: IdentityStore,
        email: str,
        callback_url: str | None = None,
        context: RequestContext | None = None,
    ) -> bool:
        """Create a token for ``email`` and hand the link to the delivery callback.

        Raises:
            UserNotFoundError: Sign-up is disabled and the email has no account
            MagicLinkDeliveryError: The delivery callback raised
        """
        if self.options.disable_sign_up:
            user = await store.find_user_by_email(email)
            if not user:
                raise UserNotFoundError("User not found")

        token = generate_magic_link_token()
        await store.create_verification(
            identifier=token,
            value=email,
            expires_at=utcnow() + timedelta(seconds=self.expires_in),
        )

        url = self.build_url(token, callback_url)
        try:
            result = self.options.send_magic_link(
                MagicLinkData(email=email, url=url, token=token, expires_in=self.expires_in),
                context,
            )
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # The stored token is left to expire on its own
            logger.error("Failed to send magic link", exc_info=True)
            raise MagicLinkDeliveryError("Failed to send magic link") from e

        logger.info(f"Magic link issued for {email}")
        return True

    async def redeem(
        self,
        store: IdentityStore,
        token: str,
        callback_url: str | None = None,
        context: RequestContext | None = None,
    ) -> RedeemOutcome:
        """Exchange a token for a session.

        The token is consumed by the first lookup whatever happens afterwards,
        so a later failure still requires a fresh link.
        """
        target = self.redirect_target(callback_url)

        verification = await store.consume_verification(token)
        if verification is None:
            return RedirectError(target, RedeemErrorCode.INVALID_TOKEN)

        if verification.is_expired(utcnow()):
            return RedirectError(target, RedeemErrorCode.EXPIRED_TOKEN)

        email = verification.value
        user = await store.find_user_by_email(email)

        if user is None:
            if self.options.disable_sign_up:
                return RedirectError(target, RedeemErrorCode.USER_NOT_FOUND)

            user = await store.create_user(email=email, name=email, email_verified=True)
            if user is None or not user.id:
                return RedirectError(target, RedeemErrorCode.USER_NOT_CREATED)
            logger.info(f"Created user {user.id} for {email}")

        context = context or RequestContext()
        session = await store.create_session(
            user_id=user.id,
            expires_at=session_expiry(),
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
        if session is None:
            return RedirectError(target, RedeemErrorCode.SESSION_NOT_CREATED)

        return SignedIn(session=session, user=user, callback_url=callback_url)

    def rate_limit_rules(self) -> list[RateLimitRule]:
        """Rules the host should enforce, as one shared bucket for both endpoints."""
        rate_limit = self.options.rate_limit
        return [
            RateLimitRule(
                name=self.id,
                path_matcher=is_magic_link_path,
                window=rate_limit.window or DEFAULT_RATE_LIMIT_WINDOW,
                max=rate_limit.max or DEFAULT_RATE_LIMIT_MAX,
            )
        ]
