"""Cryptographically secure random tokens."""
import base64
import secrets

REMEMBER_TOKEN_BYTES = 32


def random_bytes(n: int) -> bytes:
    """Return n bytes from the OS CSPRNG."""
    if n <= 0:
        raise ValueError("n must be a positive integer")
    return secrets.token_bytes(n)


def random_base64_url_string(n: int) -> str:
    """
    Return n random bytes encoded as URL-safe base64.

    Padding is kept so the length is predictable: 32 bytes yield 44 characters.
    """
    return base64.urlsafe_b64encode(random_bytes(n)).decode("ascii")


def remember_token() -> str:
    """Generate an opaque remember-me session token."""
    return random_base64_url_string(REMEMBER_TOKEN_BYTES)
