"""Delivery of sign-in links by email.

``send_magic_link_email`` is the default ``send_magic_link`` callback. It renders
the link into a message and hands it to the transport picked by
``settings.email_backend``. Transports raise ``EmailDeliveryError`` so the
issuer can abort and report the failure.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from functools import lru_cache
from typing import TYPE_CHECKING

import aiosmtplib
import httpx

from magiclink.config import settings

if TYPE_CHECKING:
    from magiclink.services.magic_link import MagicLinkData, RequestContext

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailDeliveryError(Exception):
    """The transport could not hand the message off."""

    pass


@dataclass(frozen=True)
class SignInEmail:
    to: str
    subject: str
    html: str
    text: str


def describe_lifetime(seconds: int) -> str:
    """Human wording for a link lifetime, e.g. ``5 minutes``."""
    if seconds >= 3600 and seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour{'s' if hours != 1 else ''}"
    if seconds >= 60:
        minutes = seconds // 60
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"


def render_sign_in_email(data: "MagicLinkData") -> SignInEmail:
    """Build the message for one issued link."""
    lifetime = describe_lifetime(data.expires_in)
    html = f"""\
<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; color: #333; max-width: 560px; margin: 0 auto; padding: 24px;">
    <h2 style="margin-top: 0;">Sign in</h2>
    <p>Use the button below to sign in. The link works once and expires in {lifetime}.</p>
    <p style="text-align: center; margin: 28px 0;">
        <a href="{data.url}" style="background: #2563eb; color: #fff; padding: 12px 28px; border-radius: 6px; text-decoration: none;">Sign in</a>
    </p>
    <p style="color: #666; font-size: 13px;">Or paste this address into your browser:<br>
        <a href="{data.url}" style="word-break: break-all;">{data.url}</a></p>
    <p style="color: #666; font-size: 13px;">Didn't ask to sign in? Ignore this email.</p>
</body>
</html>
"""
    text = (
        f"Sign in with this link. It works once and expires in {lifetime}.\n\n"
        f"{data.url}\n\n"
        "Didn't ask to sign in? Ignore this email.\n"
    )
    return SignInEmail(to=data.email, subject="Your sign-in link", html=html, text=text)


class EmailTransport(ABC):
    """Hands a rendered message to some delivery channel."""

    @abstractmethod
    async def deliver(self, message: SignInEmail) -> None:
        """Deliver ``message`` or raise ``EmailDeliveryError``."""


class ConsoleTransport(EmailTransport):
    """Logs the link instead of sending it. Development only."""

    async def deliver(self, message: SignInEmail) -> None:
        logger.info(f"Sign-in email for {message.to} (not sent):\n{message.text}")


class SMTPTransport(EmailTransport):
    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        from_address: str = "",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    def build_message(self, message: SignInEmail) -> EmailMessage:
        mime = EmailMessage()
        mime["From"] = self.from_address
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content(message.text)
        mime.add_alternative(message.html, subtype="html")
        return mime

    async def deliver(self, message: SignInEmail) -> None:
        try:
            await aiosmtplib.send(
                self.build_message(message),
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
            )
        except aiosmtplib.SMTPException as e:
            raise EmailDeliveryError(f"SMTP delivery to {message.to} failed: {e}") from e


class ResendTransport(EmailTransport):
    def __init__(self, api_key: str, from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    async def deliver(self, message: SignInEmail) -> None:
        async with httpx.AsyncClient(timeout=30.0) as client:
            try:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.from_address,
                        "to": [message.to],
                        "subject": message.subject,
                        "html": message.html,
                        "text": message.text,
                    },
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise EmailDeliveryError(
                    f"Resend rejected message to {message.to}: "
                    f"{e.response.status_code} {e.response.text}"
                ) from e
            except httpx.HTTPError as e:
                raise EmailDeliveryError(f"Resend request for {message.to} failed: {e}") from e


@lru_cache
def get_transport() -> EmailTransport:
    """Transport for ``settings.email_backend``, built once."""
    backend = settings.email_backend
    if backend == "console":
        return ConsoleTransport()
    if backend == "smtp":
        return SMTPTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_address=settings.email_from,
        )
    if backend == "resend":
        return ResendTransport(api_key=settings.resend_api_key, from_address=settings.email_from)
    raise ValueError(f"Unknown email backend: {backend}")


async def send_magic_link_email(
    data: "MagicLinkData",
    context: "RequestContext | None" = None,
) -> None:
    """Default magic link sender.

    Raises:
        EmailDeliveryError: If the transport could not deliver the message
    """
    await get_transport().deliver(render_sign_in_email(data))
    logger.info(f"Sign-in email sent to {data.email}")
