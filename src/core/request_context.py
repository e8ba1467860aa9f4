"""Per-request identity."""
from dataclasses import dataclass

from schemas.user import User


@dataclass
class RequestContext:
    """
    Identity attached to a request by the remember-me cookie.

    An anonymous request has no user.
    """

    user: User | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.is_admin
