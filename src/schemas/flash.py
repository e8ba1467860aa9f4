"""Flash message schema."""
import base64
import binascii
import json
from enum import StrEnum

from pydantic import BaseModel


class FlashLevel(StrEnum):
    """Severity of a flash message."""

    ERROR = "error"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"


class Flash(BaseModel):
    """A message displayed by the next rendered page."""

    level: FlashLevel
    message: str

    def encode(self) -> str:
        """Serialize as URL-safe base64 JSON, suitable for a cookie value."""
        return base64.urlsafe_b64encode(self.model_dump_json().encode("utf-8")).decode("ascii")

    @classmethod
    def decode(cls, value: str) -> "Flash":
        """
        Parse a value produced by encode().

        Raises:
            ValueError: If the value is not an encoded flash.
        """
        try:
            raw = base64.urlsafe_b64decode(value.encode("ascii"))
            return cls.model_validate(json.loads(raw))
        except (binascii.Error, UnicodeError, json.JSONDecodeError) as e:
            raise ValueError("Malformed flash cookie") from e
