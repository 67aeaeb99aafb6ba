"""
Session guard.

Gate for every authenticated action. Local expiry is authoritative and checked
without suspension; remote validation is advisory and fails open.
"""
import logging
from typing import Optional

from ..backends.auth_backend import AuthBackend, SessionCheck
from ..exceptions import NotSignedInError, SessionExpiredError
from ..interaction.notifications import NoticeLevel, Notifier
from ..models import SessionState
from .session_store import SessionStore, SignOutReason

logger = logging.getLogger(__name__)


class SessionGuard:
    """
    Enforces session validity for authenticated actions.

    Purpose:
    - ``require()`` before dispatching any authenticated backend call
    - ``verify()`` for the best-effort remote check
    - ``logout()`` as the only explicit destroy path besides expiry
    """

    def __init__(
        self,
        store: SessionStore,
        auth_backend: AuthBackend,
        notifier: Notifier,
        remote_check: bool = True,
    ):
        """
        :param store: SessionStore holding the session slot
        :param auth_backend: Remote auth service
        :param notifier: Where user-facing messages go
        :param remote_check: Disable to skip remote validation entirely
        """
        self._store = store
        self._auth_backend = auth_backend
        self._notifier = notifier
        self._remote_check = remote_check

    def require(self) -> SessionState:
        """
        Return the live session or raise.

        Never suspends: an expired session is torn down before any backend
        call could be issued with its token.

        :return: Current SessionState
        :raises SessionExpiredError: If the session existed but has expired
        :raises NotSignedInError: If nobody is signed in
        """
        had_session = self._store.peek() is not None
        session = self._store.current()
        if session is not None:
            return session
        if had_session:
            raise SessionExpiredError("Your session has expired. Please sign in again.")
        raise NotSignedInError("Sign in to continue.")

    def current_token(self) -> Optional[str]:
        session = self._store.current()
        return session.token if session else None

    async def verify(self) -> bool:
        """
        Validate the session against the backend.

        Only an explicit UNAUTHORIZED answer closes the session. Connectivity
        errors leave it untouched.

        :return: False if the session is absent, expired or revoked
        """
        try:
            session = self.require()
        except (NotSignedInError, SessionExpiredError):
            return False

        if not self._remote_check:
            return True

        token = session.token
        try:
            check = await self._auth_backend.validate_session(token)
        except Exception as e:
            logger.warning(f"Remote session validation failed, keeping session: {e}")
            return True

        if check != SessionCheck.UNAUTHORIZED:
            return True

        current = self._store.peek()
        if current is not None and current.token == token:
            logger.warning(f"Backend rejected session for user {session.user_id}")
            self._store.close(SignOutReason.REVOKED)
        return False

    async def logout(self) -> bool:
        """
        Sign the user out.

        Local state is only cleared once the auth service confirms.

        :return: True if the user is signed out afterwards
        """
        session = self._store.current()
        if session is None:
            return True

        try:
            confirmed = await self._auth_backend.logout(session)
        except Exception as e:
            logger.warning(f"Logout call failed: {e}")
            confirmed = False

        if not confirmed:
            self._notifier.notify(NoticeLevel.ERROR, "Logout failed. Please try again.")
            return False

        if self._store.peek() is session:
            self._store.close(SignOutReason.LOGOUT)
        self._notifier.notify(NoticeLevel.INFO, "You have been signed out.")
        return True
