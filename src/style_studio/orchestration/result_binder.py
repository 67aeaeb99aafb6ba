"""
Navigation/result binder.

Turns "an analysis completed" into a navigation entry so back/forward replays
the result screen from the stored snapshot, never by re-running the analysis.
"""
import logging
from typing import Callable, Optional

from pydantic import ValidationError

from ..models import AnalysisResult, NavigationState
from ..schemas import NavigationStateRecord
from .navigation import NavigationEntry, NavigationHistory, with_query_param, without_query_param

logger = logging.getLogger(__name__)


class ResultBinder:
    """
    Binds result views to navigation entries.

    - ``commit`` pushes one entry per completed analysis, with the marker in the URL
    - popstate without the marker means "back to idle"
    - popstate with the marker and a snapshot restores the result view
    - ``reset`` strips the marker in place (no new back-stack entry)
    """

    def __init__(
        self,
        history: NavigationHistory,
        on_idle: Callable[[], None],
        on_restore: Callable[[NavigationState], None],
        marker_param: str = "view",
        marker_value: str = "result",
    ):
        """
        :param history: Navigation stack to bind to
        :param on_idle: Called when navigation lands on a non-result entry
        :param on_restore: Called with the snapshot when navigation lands on a result entry
        :param marker_param: Query parameter flagging result entries
        :param marker_value: Value written for the marker
        """
        self._history = history
        self._on_idle = on_idle
        self._on_restore = on_restore
        self._marker_param = marker_param
        self._marker_value = marker_value
        self._attached = False

    def attach(self) -> None:
        if not self._attached:
            self._history.add_popstate_listener(self._handle_popstate)
            self._attached = True

    def detach(self) -> None:
        if self._attached:
            self._history.remove_popstate_listener(self._handle_popstate)
            self._attached = False

    def is_result_entry(self, entry: Optional[NavigationEntry] = None) -> bool:
        entry = entry or self._history.current
        return entry.has_param(self._marker_param)

    def commit(
        self,
        result: AnalysisResult,
        source_image: Optional[str],
        source_label: Optional[str],
    ) -> NavigationEntry:
        """
        Push a result entry carrying the full navigation snapshot.

        :param result: Completed analysis
        :param source_image: Image shown next to the result
        :param source_label: Name shown next to the result
        :return: The pushed entry
        """
        snapshot = NavigationState(result=result, source_image=source_image, source_label=source_label)
        state = NavigationStateRecord.from_state(snapshot).model_dump(mode="json")
        url = with_query_param(self._history.current.url, self._marker_param, self._marker_value)
        return self._history.push_state(state, url)

    def reset(self) -> bool:
        """
        Remove the result marker from the current URL via replace.

        :return: True if the URL carried the marker
        """
        current = self._history.current
        if not current.has_param(self._marker_param):
            return False
        self._history.replace_state({}, without_query_param(current.url, self._marker_param))
        return True

    @staticmethod
    def read_state(entry: NavigationEntry) -> Optional[NavigationState]:
        """Parse the snapshot attached to an entry, None if absent or unreadable."""
        if not entry.state:
            return None
        try:
            return NavigationStateRecord.model_validate(entry.state).to_state()
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable navigation state: {e.error_count()} error(s)")
            return None

    def _handle_popstate(self, entry: NavigationEntry) -> None:
        if not entry.has_param(self._marker_param):
            self._on_idle()
            return

        snapshot = self.read_state(entry)
        if snapshot is None:
            logger.debug(f"Result entry without snapshot, leaving view unchanged: {entry.url}")
            return
        self._on_restore(snapshot)
