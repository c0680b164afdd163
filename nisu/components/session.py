"""
Identity session: the student's token and profile.

One SessionManager owns the session and is handed to every component that
needs identity; it loads from and saves to the local cache explicitly.
"""
import logging
from dataclasses import dataclass
from getpass import getpass
from typing import Any, Mapping, Optional

from nisu.components.errors import NotAuthenticatedError
from nisu.components.store import AUTH_TOKEN, USER_DATA, LocalCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserData:
    email: str
    name: str = ""
    picture: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserData":
        return cls(
            email=str(data.get("email", "")),
            name=str(data.get("name") or ""),
            picture=str(data.get("picture") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {"email": self.email, "name": self.name, "picture": self.picture}


@dataclass(frozen=True)
class Session:
    token: str
    user: UserData


class SessionManager:
    """Owns the current session and its load/save lifecycle."""

    def __init__(self, cache: LocalCache):
        self.cache = cache
        self._session: Optional[Session] = None

    @property
    def current(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def load(self) -> Optional[Session]:
        """Restore the session stored in the cache, if any."""
        token = self.cache.get(AUTH_TOKEN)
        user = self.cache.get(USER_DATA)
        if token and isinstance(user, Mapping):
            self._session = Session(token=token, user=UserData.from_dict(user))
            logger.info("Restored session for %s", self._session.user.email)
        else:
            self._session = None
        return self._session

    def login(self, token: str, user: UserData) -> Session:
        token = token.strip()
        if not token:
            raise NotAuthenticatedError("Empty identity token")
        self._session = Session(token=token, user=user)
        self.cache.set(**{AUTH_TOKEN: token, USER_DATA: user.to_dict()})
        logger.info("Signed in as %s", user.email)
        return self._session

    def logout(self) -> None:
        """Forget the session and everything cached for it."""
        self._session = None
        self.cache.clear()
        logger.info("Signed out, local cache cleared")

    def require(self) -> Session:
        if self._session is None:
            raise NotAuthenticatedError("Not signed in")
        return self._session


def prompt_login(sessions: SessionManager) -> Session:
    """Interactive sign-in: ask for the identity token issued by the backend."""
    email = input("Email: ").strip()
    token = getpass("Identity token: ")
    return sessions.login(token, UserData(email=email))
