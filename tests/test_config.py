"""Settings tests."""

import pytest
from pydantic import ValidationError

from magiclink.config import Settings


def test_base_url_trailing_slash_dropped():
    assert Settings(base_url="https://auth.example.com/").base_url == "https://auth.example.com"


@pytest.mark.parametrize("raw", ["/auth", "auth", "/auth/"])
def test_base_path_normalized(raw: str):
    assert Settings(base_path=raw).base_path == "/auth"


@pytest.mark.parametrize(
    ("environment", "debug", "expected"),
    [
        ("development", None, True),
        ("production", None, False),
        ("production", True, True),
        ("development", False, False),
    ],
)
def test_debug_enabled(environment: str, debug: bool | None, expected: bool):
    assert Settings(environment=environment, debug=debug).debug_enabled is expected


def test_short_session_secret_rejected():
    with pytest.raises(ValidationError):
        Settings(session_secret="too-short")


def test_zero_link_lifetime_rejected():
    with pytest.raises(ValidationError):
        Settings(magic_link_expires_in=0)
