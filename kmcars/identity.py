"""Identity collaborator: sign-in/up/out and session refresh."""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from .backend import Backend, eq
from .errors import AuthError, BackendError

logger = logging.getLogger(__name__)

# Refresh this many seconds before the access token expires
REFRESH_MARGIN_SECONDS = 60


@dataclass
class Session:
    """The signed-in user."""

    user_id: str
    email: str
    full_name: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None

    def expired(self, now: Optional[float] = None) -> bool:
        """True when the access token is expired or about to expire."""
        if self.expires_at is None:
            return False
        now = time.time() if now is None else now
        return now >= self.expires_at - REFRESH_MARGIN_SECONDS

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Session"]:
        if not data:
            return None
        return cls(**data)


@dataclass
class SignUp:
    """Outcome of creating an account."""

    session: Session
    confirmation_pending: bool = False


class Identity:
    """
    Interface of the identity provider.

    Implementations hold no per-user state: every call receives or returns
    the session it concerns, so one instance can serve concurrent users.
    """

    def sign_in(self, email: str, password: str) -> Session:
        raise NotImplementedError

    def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> SignUp:
        raise NotImplementedError

    def sign_out(self, session: Session) -> None:
        raise NotImplementedError

    def refresh(self, session: Session) -> Session:
        """Exchange an expired session for a fresh one."""
        return session


class LocalIdentity(Identity):
    """Accounts kept in the backend's users table with hashed passwords."""

    def __init__(self, backend: Backend):
        self.backend = backend

    def _find_user(self, email: str) -> Optional[Dict[str, Any]]:
        rows, error = self.backend.select("users", [eq("email", email.strip().lower())])
        if error:
            raise BackendError(error)
        return rows[0] if rows else None

    def sign_in(self, email: str, password: str) -> Session:
        user = self._find_user(email)
        if user is None or not check_password_hash(user["password_hash"], password):
            logger.warning(f"Failed sign-in for {email}")
            raise AuthError("Invalid login credentials")
        session = Session(user["id"], user["email"], user.get("full_name"))
        logger.info(f"Signed in {session.email}")
        return session

    def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> SignUp:
        email = email.strip().lower()
        if not email or not password:
            raise AuthError("Email and password are required")
        if self._find_user(email) is not None:
            raise AuthError("User already registered")
        rows, error = self.backend.insert(
            "users",
            [
                {
                    "email": email,
                    "full_name": full_name,
                    "password_hash": generate_password_hash(password),
                }
            ],
        )
        if error:
            raise BackendError(error)
        user = rows[0]
        logger.info(f"Created account {email}")
        return SignUp(Session(user["id"], user["email"], user.get("full_name")))

    def sign_out(self, session: Session) -> None:
        logger.info(f"Signed out {session.email}")
