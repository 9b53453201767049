"""Random token generation."""

import secrets
import string

# Magic link tokens: 32 letters, ~182 bits of entropy
MAGIC_LINK_ALPHABET = string.ascii_letters
MAGIC_LINK_TOKEN_LENGTH = 32

SESSION_TOKEN_ALPHABET = string.ascii_letters + string.digits
SESSION_TOKEN_LENGTH = 32


def generate_random_string(length: int, alphabet: str) -> str:
    """Generate a string drawn uniformly from ``alphabet`` using the OS CSPRNG."""
    if length <= 0:
        raise ValueError("length must be positive")
    if not alphabet:
        raise ValueError("alphabet must not be empty")
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_magic_link_token() -> str:
    return generate_random_string(MAGIC_LINK_TOKEN_LENGTH, MAGIC_LINK_ALPHABET)


def generate_session_token() -> str:
    return generate_random_string(SESSION_TOKEN_LENGTH, SESSION_TOKEN_ALPHABET)
