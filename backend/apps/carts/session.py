from __future__ import annotations

from dataclasses import dataclass
from typing import Any, MutableMapping, Optional

from .dtos import CartSnapshot
from .mappers import SessionCartMapper

SESSION_KEY = "storefront.cart"


@dataclass(frozen=True)
class Shopper:
    """Who is shopping: a signed-in user, or a guest identified by their session."""

    user_id: Optional[int]
    session: Optional[MutableMapping[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @classmethod
    def from_request(cls, request) -> "Shopper":
        user = getattr(request, "user", None)
        user_id = user.id if user is not None and user.is_authenticated else None
        return cls(user_id=user_id, session=getattr(request, "session", None))

    def as_guest(self) -> "Shopper":
        return Shopper(user_id=None, session=self.session)


class SessionCartStorage:
    """Keeps a guest cart in the Django session between requests."""

    def __init__(self, session: Optional[MutableMapping[str, Any]], mapper=None):
        self.session = session if session is not None else {}
        self.mapper = mapper or SessionCartMapper()

    def load(self) -> CartSnapshot:
        return self.mapper.from_payload(self.session.get(SESSION_KEY))

    def save(self, snapshot: CartSnapshot) -> None:
        self.session[SESSION_KEY] = self.mapper.to_payload(snapshot)
        self._touch()

    def clear(self) -> None:
        if SESSION_KEY in self.session:
            del self.session[SESSION_KEY]
            self._touch()

    def _touch(self) -> None:
        if hasattr(self.session, "modified"):
            self.session.modified = True
