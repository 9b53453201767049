"""Random token generation tests."""

import string

import pytest

from magiclink.services.tokens import (
    MAGIC_LINK_TOKEN_LENGTH,
    generate_magic_link_token,
    generate_random_string,
    generate_session_token,
)


class TestGenerateRandomString:
    def test_length_and_alphabet(self):
        value = generate_random_string(64, "ab")

        assert len(value) == 64
        assert set(value) <= {"a", "b"}

    def test_single_character_alphabet(self):
        assert generate_random_string(5, "z") == "zzzzz"

    @pytest.mark.parametrize("length", [0, -1])
    def test_rejects_non_positive_length(self, length: int):
        with pytest.raises(ValueError, match="length"):
            generate_random_string(length, "abc")

    def test_rejects_empty_alphabet(self):
        with pytest.raises(ValueError, match="alphabet"):
            generate_random_string(8, "")


def test_magic_link_token_shape():
    token = generate_magic_link_token()

    assert len(token) == MAGIC_LINK_TOKEN_LENGTH == 32
    assert all(c in string.ascii_letters for c in token)


def test_magic_link_tokens_do_not_repeat():
    tokens = {generate_magic_link_token() for _ in range(1000)}
    assert len(tokens) == 1000


def test_session_token_shape():
    token = generate_session_token()

    assert len(token) == 32
    assert token.isalnum()
