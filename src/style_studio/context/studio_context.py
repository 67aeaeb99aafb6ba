"""
Studio context.

Owns the process-wide stores (session, bookmarks, history) and their
lifecycle. Workflows receive their collaborators from here instead of
reaching for module globals.
"""
import logging
from datetime import timedelta
from typing import List, Optional

from ..backends.analysis_backend import AnalysisBackend
from ..backends.auth_backend import AuthBackend
from ..backends.bookmark_backend import BookmarkBackend
from ..bookmarks.bookmark_set import BookmarkSet
from ..config import StudioConfig
from ..exceptions import StudioNotInitializedError
from ..history.history_cache import HistoryCache
from ..history.storage import InMemorySessionStorage, JsonFileSessionStorage, SessionStorage
from ..interaction.notifications import NoticeBoard, NoticeLevel, Notifier
from ..orchestration.navigation import NavigationHistory
from ..orchestration.studio import StudioOrchestrator
from ..session.session_guard import SessionGuard
from ..session.session_store import SessionStore, SignOutReason
from ..utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)


def create_storage(config: StudioConfig) -> SessionStorage:
    """Pick the history storage backend for a configuration."""
    if config.history_storage_dir:
        return JsonFileSessionStorage(config.history_storage_dir)
    return InMemorySessionStorage()


class StudioContext:
    """
    Composition root for the shared stores.

    Lifecycle: ``start()`` on app start, ``close()`` on app close.
    Sign-out (logout, expiry, revocation) clears dependent stores in the
    same synchronous step as the session itself.
    """

    def __init__(
        self,
        config: StudioConfig,
        analysis_backend: AnalysisBackend,
        bookmark_backend: BookmarkBackend,
        auth_backend: AuthBackend,
        storage: Optional[SessionStorage] = None,
        notifier: Optional[Notifier] = None,
        clock: Clock = utc_now,
    ):
        self.config = config
        self.clock = clock
        self.notifier = notifier or NoticeBoard(clock=clock)
        self.storage = storage if storage is not None else create_storage(config)
        self._analysis_backend = analysis_backend

        self.session_store = SessionStore(
            ttl=timedelta(hours=config.session_ttl_hours),
            clock=clock,
        )
        self.session_guard = SessionGuard(
            self.session_store,
            auth_backend,
            self.notifier,
            remote_check=config.remote_session_check,
        )
        self.history = HistoryCache(
            self.storage,
            storage_key=config.history_storage_key,
            capacity=config.history_capacity,
        )
        self.bookmarks = BookmarkSet(bookmark_backend, self.session_guard, self.notifier, clock=clock)

        self._studios: List[StudioOrchestrator] = []
        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started

    def start(self) -> None:
        if self._started:
            return
        self.session_store.add_sign_out_listener(self._on_sign_out)
        self._started = True
        logger.info("Studio context started")

    def close(self) -> None:
        """Tear down workflows and in-memory state. Persisted history stays."""
        if not self._started:
            return
        for studio in self._studios:
            studio.close()
        self._studios.clear()
        self.session_store.remove_sign_out_listener(self._on_sign_out)
        self.bookmarks.reset()
        self.history.clear_active()
        self._started = False
        logger.info("Studio context closed")

    def create_studio(self, navigation: NavigationHistory) -> StudioOrchestrator:
        """
        Create a workflow bound to a navigation stack.

        :param navigation: Navigation history of the screen hosting the studio
        :return: StudioOrchestrator sharing this context's history cache
        """
        if not self._started:
            raise StudioNotInitializedError("Studio context not started. Call start() first.")

        studio = StudioOrchestrator(
            self._analysis_backend,
            self.history,
            navigation,
            self.notifier,
            timeout_seconds=self.config.analysis_timeout_seconds,
            marker_param=self.config.result_view_param,
            marker_value=self.config.result_view_value,
            clock=self.clock,
        )
        self._studios.append(studio)
        return studio

    def _on_sign_out(self, reason: SignOutReason) -> None:
        self.bookmarks.reset()
        if reason is SignOutReason.EXPIRED:
            # Expiry keeps the recent analyses, only the active selection goes
            self.history.clear_active()
            self.notifier.notify(NoticeLevel.WARNING, "Your session has expired. Please sign in again.")
            self.notifier.redirect_to_sign_in()
            return

        self.history.clear()
        if reason is SignOutReason.REVOKED:
            self.notifier.notify(NoticeLevel.WARNING, "Your session is no longer valid. Please sign in again.")
            self.notifier.redirect_to_sign_in()
