"""
Sortable, time-ordered unique identifiers.

A UID is 20 bytes: a 4-byte big-endian Unix timestamp (seconds) followed by
16 random bytes. Its textual form is a fixed-width, zero-padded base62 string
so that lexicographic order follows generation time.
"""
import secrets
import time
from collections.abc import Callable

BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
PAYLOAD_SIZE = 16
TIMESTAMP_SIZE = 4
UID_SIZE = TIMESTAMP_SIZE + PAYLOAD_SIZE
UID_STRING_LENGTH = 27

_MAX_VALUE = (1 << (UID_SIZE * 8)) - 1
_BASE62_INDEX = {char: index for index, char in enumerate(BASE62_ALPHABET)}


def _encode_base62(value: int) -> str:
    chars = []
    while value > 0:
        value, remainder = divmod(value, 62)
        chars.append(BASE62_ALPHABET[remainder])
    return "".join(reversed(chars)).rjust(UID_STRING_LENGTH, "0")


def _decode_base62(text: str) -> int:
    value = 0
    for char in text:
        value = value * 62 + _BASE62_INDEX[char]
    return value


def new_uid(clock: Callable[[], float] = time.time) -> str:
    """
    Generate a new UID.

    Args:
        clock: Returns the current Unix time in seconds.

    Returns:
        The 27-character base62 representation of the UID.

    Raises:
        OverflowError: If the clock is outside the 32-bit unsigned range.
    """
    timestamp = int(clock()).to_bytes(TIMESTAMP_SIZE, "big")
    # secrets.token_bytes raises if the OS entropy source is unavailable
    payload = secrets.token_bytes(PAYLOAD_SIZE)
    return _encode_base62(int.from_bytes(timestamp + payload, "big"))


def is_valid_uid(text: str) -> bool:
    """Return True if text is the string form of a UID."""
    if len(text) != UID_STRING_LENGTH:
        return False
    if any(char not in _BASE62_INDEX for char in text):
        return False
    return _decode_base62(text) <= _MAX_VALUE


def uid_timestamp(text: str) -> int:
    """
    Return the Unix timestamp (seconds) embedded in a UID.

    Raises:
        ValueError: If text is not a valid UID.
    """
    if not is_valid_uid(text):
        raise ValueError(f"Invalid UID: {text!r}")
    raw = _decode_base62(text).to_bytes(UID_SIZE, "big")
    return int.from_bytes(raw[:TIMESTAMP_SIZE], "big")
