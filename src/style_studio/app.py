"""
Public application facade for Style Studio.

This is the single stable entry point for the UI layer.
All internal structure can change freely, but this API remains stable.
"""
import logging
from typing import Any, Callable, Iterable, Optional, Tuple

from .backends.analysis_backend import AnalysisBackend
from .backends.auth_backend import AuthBackend
from .backends.bookmark_backend import BookmarkBackend
from .bookmarks.bookmark_set import ToggleOutcome
from .config import StudioConfig
from .context.studio_context import StudioContext
from .exceptions import StudioNotInitializedError
from .history.storage import SessionStorage
from .interaction.notifications import Notifier
from .models import AnalysisRequest, BookmarkItem, HistoryEntry, SessionState, SourceKind
from .orchestration.navigation import NavigationHistory
from .orchestration.studio import StudioOrchestrator
from .schemas import WorkflowSnapshot
from .utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)


class StudioApp:
    """
    Public application facade for Style Studio.

    Usage:
        config = load_config_from_env()
        app = StudioApp(config, analysis_backend, bookmark_backend, auth_backend)
        app.initialize()
        await app.sign_in(token, user_id, name)
        app.start_analysis(SourceKind.CATALOG_ITEM, "A1", label="Linen shirt")
    """

    def __init__(
        self,
        config: StudioConfig,
        analysis_backend: AnalysisBackend,
        bookmark_backend: BookmarkBackend,
        auth_backend: AuthBackend,
        storage: Optional[SessionStorage] = None,
        notifier: Optional[Notifier] = None,
        navigation: Optional[NavigationHistory] = None,
        clock: Clock = utc_now,
    ):
        """
        Initialize the application facade.

        :param config: StudioConfig instance
        :param analysis_backend: Style analysis service
        :param bookmark_backend: Member service for bookmarks
        :param auth_backend: Authentication service
        :param storage: History storage, derived from config when omitted
        :param notifier: User notice sink, a NoticeBoard when omitted
        :param navigation: Navigation stack, a fresh one at ``config.base_url`` when omitted
        :param clock: Time source
        """
        self._config = config
        self._context = StudioContext(
            config,
            analysis_backend,
            bookmark_backend,
            auth_backend,
            storage=storage,
            notifier=notifier,
            clock=clock,
        )
        self._navigation = navigation or NavigationHistory(config.base_url)
        self._studio: Optional[StudioOrchestrator] = None

    def initialize(self) -> None:
        """
        Start the shared context and create the studio workflow.

        Call this once before using any other method.
        """
        if self._studio:
            return
        self._context.start()
        self._studio = self._context.create_studio(self._navigation)
        logger.info("Style studio initialized")

    def close(self) -> None:
        if not self._studio:
            return
        self._context.close()
        self._studio = None

    # ----------------------------
    # Read-only projections
    # ----------------------------
    @property
    def context(self) -> StudioContext:
        return self._context

    @property
    def navigation(self) -> NavigationHistory:
        return self._navigation

    @property
    def notifier(self) -> Notifier:
        return self._context.notifier

    @property
    def workflow(self) -> WorkflowSnapshot:
        return self._require_studio().state

    @property
    def history(self) -> Tuple[HistoryEntry, ...]:
        return self._context.history.entries

    @property
    def active_history(self) -> Optional[HistoryEntry]:
        return self._context.history.active

    @property
    def bookmarks(self) -> Tuple[BookmarkItem, ...]:
        return self._context.bookmarks.items

    @property
    def session(self) -> Optional[SessionState]:
        return self._context.session_store.current()

    def subscribe(self, listener: Callable[[WorkflowSnapshot], None]) -> Callable[[], None]:
        return self._require_studio().subscribe(listener)

    # ----------------------------
    # Analysis workflow
    # ----------------------------
    def start_analysis(
        self,
        source_kind: SourceKind,
        source_ref: Any,
        label: Optional[str] = None,
        source_image: Optional[str] = None,
    ) -> Optional[AnalysisRequest]:
        return self._require_studio().start_analysis(source_kind, source_ref, label, source_image)

    async def start_upload_analysis(self, source_ref: Any, label: Optional[str] = None) -> Optional[AnalysisRequest]:
        return await self._require_studio().start_upload_analysis(source_ref, label)

    def cancel_analysis(self) -> bool:
        return self._require_studio().cancel_analysis()

    def return_to_idle(self) -> None:
        self._require_studio().return_to_idle()

    def activate_history_entry(self, entry_id: str) -> bool:
        return self._require_studio().activate_history_entry(entry_id)

    async def wait_for_analysis(self) -> None:
        """Wait for outstanding analysis calls (useful for scripts and tests)."""
        await self._require_studio().wait_idle()

    def back(self) -> bool:
        return self._navigation.back()

    def forward(self) -> bool:
        return self._navigation.forward()

    # ----------------------------
    # Session
    # ----------------------------
    async def sign_in(
        self,
        token: str,
        user_id: str,
        display_name: str,
        avatar_ref: Optional[str] = None,
    ) -> SessionState:
        """
        Open a session after a successful login and sync bookmarks.

        :return: The new session
        """
        self._require_studio()
        session = self._context.session_store.open(token, user_id, display_name, avatar_ref)
        await self._context.bookmarks.sync_all()
        return session

    async def verify_session(self) -> bool:
        return await self._context.session_guard.verify()

    async def logout(self) -> bool:
        return await self._context.session_guard.logout()

    # ----------------------------
    # Bookmarks
    # ----------------------------
    def is_bookmarked(self, product_id: str) -> bool:
        return product_id in self._context.bookmarks

    def is_bookmark_pending(self, product_id: str) -> bool:
        return self._context.bookmarks.is_pending(product_id)

    async def toggle_bookmark(self, product_id: str, style_name: Optional[str] = None) -> ToggleOutcome:
        return await self._context.bookmarks.toggle(product_id, style_name)

    async def clear_bookmarks(self, product_ids: Optional[Iterable[str]] = None) -> bool:
        return await self._context.bookmarks.clear(product_ids)

    async def sync_bookmarks(self) -> bool:
        return await self._context.bookmarks.sync_all()

    def _require_studio(self) -> StudioOrchestrator:
        if not self._studio:
            raise StudioNotInitializedError("App not initialized. Call initialize() first.")
        return self._studio
