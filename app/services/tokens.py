"""Activation and password-reset token generation.

Raw tokens are random alphanumeric strings stored on the user row. Clients
receive them composed with the numeric user id as ``<id>_<token>``.
"""

import random
import secrets
import string

from app.config import get_settings

TOKEN_CHARSET = string.ascii_letters + string.digits
TOKEN_SEPARATOR = "_"
# Ids must fit a signed 64-bit INTEGER column
MAX_USER_ID = 2**63 - 1


class MalformedTokenError(ValueError):
    """Composite token is not of the form ``<id>_<token>``."""


class TokenGenerator:
    """Generates raw tokens and converts them to and from the composite form."""

    def __init__(self, length: int = 50, rng: random.Random | None = None) -> None:
        self.length = length
        self.rng = rng or secrets.SystemRandom()

    def generate_raw_token(self) -> str:
        """Return a fresh random token of ``length`` characters."""
        return "".join(self.rng.choice(TOKEN_CHARSET) for _ in range(self.length))

    def compose_token(self, user_id: int, raw_token: str) -> str:
        """Join a user id and raw token into the wire format."""
        return f"{user_id}{TOKEN_SEPARATOR}{raw_token}"

    def decompose_token(self, composite: str) -> tuple[int, str]:
        """Split a composite token into ``(user_id, raw_token)``.

        Raises MalformedTokenError unless there is exactly one separator and
        the id part is a non-negative integer that fits a database id.
        """
        parts = composite.split(TOKEN_SEPARATOR)
        if len(parts) != 2:
            raise MalformedTokenError(f"expected 2 token parts, found {len(parts)}")
        raw_id, raw_token = parts
        try:
            user_id = int(raw_id)
        except ValueError:
            raise MalformedTokenError(f"user id part '{raw_id}' is not an integer") from None
        if not 0 <= user_id <= MAX_USER_ID:
            raise MalformedTokenError(f"user id {raw_id} is out of range")
        return user_id, raw_token


_token_generator: TokenGenerator | None = None


def get_token_generator() -> TokenGenerator:
    """Get singleton token generator."""
    global _token_generator
    if _token_generator is None:
        _token_generator = TokenGenerator(length=get_settings().ACTIVATION_TOKEN_LENGTH)
    return _token_generator
