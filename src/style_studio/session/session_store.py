"""
Session store.

Single slot holding the signed-in user's session. Expiry is checked on every
read, so an expired session is never handed to a caller.
"""
import logging
from datetime import timedelta
from enum import Enum
from typing import Callable, List, Optional

from ..models import SessionState
from ..utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)


DEFAULT_SESSION_TTL = timedelta(hours=6)


class SignOutReason(str, Enum):
    LOGOUT = "logout"
    EXPIRED = "expired"
    REVOKED = "revoked"


SignOutListener = Callable[[SignOutReason], None]


class SessionStore:
    """
    Holds the current SessionState, or nothing.

    Key traits:
    - Local expiry is checked synchronously on every ``current()`` read
    - Sessions are never refreshed; a new one must be opened
    - Closing notifies sign-out listeners in the same call, so dependent
      state is cleared before control returns to the event loop
    """

    def __init__(self, ttl: timedelta = DEFAULT_SESSION_TTL, clock: Clock = utc_now):
        """
        :param ttl: Lifetime of a newly opened session
        :param clock: Time source used for issuing and expiry checks
        """
        self._ttl = ttl
        self._clock = clock
        self._session: Optional[SessionState] = None
        self._listeners: List[SignOutListener] = []

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def add_sign_out_listener(self, listener: SignOutListener) -> None:
        self._listeners.append(listener)

    def remove_sign_out_listener(self, listener: SignOutListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def open(
        self,
        token: str,
        user_id: str,
        display_name: str,
        avatar_ref: Optional[str] = None,
    ) -> SessionState:
        """
        Start a session after a successful login.

        :param token: Access token issued by the auth service
        :param user_id: Account identifier
        :param display_name: Name shown in the header
        :param avatar_ref: Profile image reference
        :return: The new SessionState
        """
        if not token:
            raise ValueError("Cannot open a session without a token")

        session = SessionState.issue(
            token=token,
            user_id=user_id,
            display_name=display_name,
            avatar_ref=avatar_ref,
            issued_at=self._clock(),
            ttl=self._ttl,
        )
        self._session = session
        logger.info(f"Session opened for user {user_id} (expires {session.expires_at.isoformat()})")
        return session

    def restore(self, session: SessionState) -> Optional[SessionState]:
        """
        Adopt a session persisted by the authentication collaborator.

        An already-expired session is not adopted.

        :param session: Previously issued session
        :return: The session, or None if it has expired
        """
        if session.is_expired(self._clock()):
            logger.info(f"Discarding expired session for user {session.user_id}")
            return None
        self._session = session
        return session

    def peek(self) -> Optional[SessionState]:
        """Raw slot content, without an expiry check."""
        return self._session

    def current(self) -> Optional[SessionState]:
        """
        Current session, enforcing local expiry.

        An expired session is closed (listeners run) and None is returned.
        """
        session = self._session
        if session is None:
            return None
        if session.is_expired(self._clock()):
            logger.info(f"Session for user {session.user_id} expired at {session.expires_at.isoformat()}")
            self.close(SignOutReason.EXPIRED)
            return None
        return session

    def close(self, reason: SignOutReason) -> bool:
        """
        Destroy the session and notify listeners.

        :param reason: Why the session ended
        :return: True if a session was closed
        """
        if self._session is None:
            return False

        user_id = self._session.user_id
        self._session = None
        logger.info(f"Session closed for user {user_id}: {reason.value}")

        for listener in list(self._listeners):
            try:
                listener(reason)
            except Exception:
                # One failing listener must not leave the others with stale state
                logger.exception("Sign-out listener failed")
        return True
