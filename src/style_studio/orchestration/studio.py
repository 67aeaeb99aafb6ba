"""
Studio orchestrator.

Drives one analysis workflow: idle -> analyzing -> result/failed -> idle.
Composes the request controller, the result binder and the history cache.
"""
import logging
from typing import Any, Callable, List, Optional

from pydantic_core import PydanticSerializationError

from ..backends.analysis_backend import AnalysisBackend
from ..history.history_cache import HistoryCache, make_history_entry
from ..interaction.notifications import NoticeLevel, Notifier
from ..models import AnalysisRequest, AnalysisResult, NavigationState, SourceKind, WorkflowPhase
from ..schemas import WorkflowSnapshot
from ..exceptions import InvalidInputError, InvalidUploadError
from ..security.input_validator import InputValidator
from ..utils.clock import Clock, utc_now
from ..utils.image_refs import load_upload, upload_display_image
from .navigation import NavigationHistory
from .request_controller import AnalysisOutcome, AnalysisRequestController
from .result_binder import ResultBinder

logger = logging.getLogger(__name__)


SnapshotListener = Callable[[WorkflowSnapshot], None]


class StudioOrchestrator:
    """
    Orchestrates the style analysis workflow for one studio screen.

    Only the most recently started analysis can ever reach the result view.
    Back/forward navigation restores results from navigation snapshots
    without calling the backend again.
    """

    def __init__(
        self,
        backend: AnalysisBackend,
        history: HistoryCache,
        navigation: NavigationHistory,
        notifier: Notifier,
        timeout_seconds: Optional[float] = 30.0,
        marker_param: str = "view",
        marker_value: str = "result",
        clock: Clock = utc_now,
    ):
        """
        :param backend: Analysis service
        :param history: Shared history cache
        :param navigation: Navigation stack of this screen
        :param notifier: Where failures are reported to the user
        :param timeout_seconds: Analysis timeout, None to disable
        :param marker_param: Query parameter marking result entries
        :param marker_value: Value of the result marker
        :param clock: Time source
        """
        self._history = history
        self._notifier = notifier
        self._clock = clock

        self._controller = AnalysisRequestController(
            backend,
            on_outcome=self._handle_outcome,
            timeout_seconds=timeout_seconds,
            clock=clock,
        )
        self._binder = ResultBinder(
            navigation,
            on_idle=self._handle_navigated_idle,
            on_restore=self._handle_navigated_result,
            marker_param=marker_param,
            marker_value=marker_value,
        )
        self._binder.attach()

        self._phase = WorkflowPhase.IDLE
        self._result: Optional[AnalysisResult] = None
        self._error: Optional[str] = None
        self._source_image: Optional[str] = None
        self._source_label: Optional[str] = None
        self._request: Optional[AnalysisRequest] = None
        self._subscribers: List[SnapshotListener] = []
        self._closed = False

    # ----------------------------
    # Read side
    # ----------------------------
    @property
    def state(self) -> WorkflowSnapshot:
        return WorkflowSnapshot(
            phase=self._phase,
            result=self._result,
            error=self._error,
            source_image=self._source_image,
            source_label=self._source_label,
            request_id=self._request.id if self._request else None,
        )

    @property
    def phase(self) -> WorkflowPhase:
        return self._phase

    @property
    def controller(self) -> AnalysisRequestController:
        return self._controller

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """
        Register for state changes.

        :param listener: Called with a fresh snapshot after every transition
        :return: Function that removes the subscription
        """
        self._subscribers.append(listener)

        def unsubscribe() -> None:
            if listener in self._subscribers:
                self._subscribers.remove(listener)

        return unsubscribe

    # ----------------------------
    # User actions
    # ----------------------------
    def start_analysis(
        self,
        source_kind: SourceKind,
        source_ref: Any,
        label: Optional[str] = None,
        source_image: Optional[str] = None,
    ) -> Optional[AnalysisRequest]:
        """
        Start analyzing an upload or a catalog item.

        Supersedes any analysis already running. Must be called from within
        a running event loop.

        :param source_kind: Upload or catalog item
        :param source_ref: Image (bytes, path, data URI) or catalog item id
        :param label: Name of the subject shown with the result
        :param source_image: Display image; derived from the upload when omitted.
            Uploads are validated either way. File paths are read on the
            calling thread, see start_upload_analysis.
        :return: The started request, or None if the input was rejected
        """
        self._ensure_open()
        kind = SourceKind(source_kind)

        try:
            display_label = InputValidator.sanitize_label(label)
            if kind is SourceKind.IMAGE_UPLOAD:
                derived_image = upload_display_image(source_ref)
                display_image = source_image or derived_image
            else:
                source_ref = InputValidator.validate_product_id(source_ref)
                display_image = source_image
        except (InvalidInputError, InvalidUploadError) as e:
            self._reject_input(e)
            return None

        request = self._controller.new_request(
            kind,
            source_ref,
            source_label=display_label,
            source_image=display_image,
        )
        self._request = request
        self._history.clear_active()
        self._transition(
            WorkflowPhase.ANALYZING,
            source_image=display_image,
            source_label=display_label,
        )
        self._controller.start(request)
        return request

    async def start_upload_analysis(
        self,
        source_ref: Any,
        label: Optional[str] = None,
    ) -> Optional[AnalysisRequest]:
        """
        Start analyzing an upload, reading file paths off the event loop.

        :param source_ref: Image bytes, a file path or an image URI
        :param label: Name of the subject shown with the result
        :return: The started request, or None if the upload was rejected
        """
        self._ensure_open()
        try:
            data = await load_upload(source_ref)
        except InvalidUploadError as e:
            self._reject_input(e)
            return None
        if self._closed:
            return None
        return self.start_analysis(SourceKind.IMAGE_UPLOAD, data, label)

    def cancel_analysis(self) -> bool:
        """
        Leave the analyzing state immediately.

        The running call is not aborted; its outcome is ignored when it arrives.

        :return: False if nothing was being analyzed
        """
        if self._phase is not WorkflowPhase.ANALYZING:
            return False
        self._controller.cancel()
        self._transition(WorkflowPhase.IDLE)
        return True

    def return_to_idle(self) -> None:
        """Back to discovery: drop the result and strip the result marker."""
        self._controller.cancel()
        self._history.clear_active()
        self._binder.reset()
        self._transition(WorkflowPhase.IDLE)

    def activate_history_entry(self, entry_id: str) -> bool:
        """
        Show a history entry's result without calling the backend.

        :param entry_id: Id of a cached history entry
        :return: False if the entry is not in the cache
        """
        entry = self._history.activate(entry_id)
        if entry is None:
            return False

        self._controller.cancel()
        self._transition(
            WorkflowPhase.RESULT,
            result=entry.result,
            source_image=entry.source_image,
            source_label=entry.source_label,
        )
        return True

    async def wait_idle(self) -> None:
        """Wait for every analysis call issued so far to finish."""
        await self._controller.wait_idle()

    def close(self) -> None:
        """Detach from navigation and ignore anything still in flight."""
        if self._closed:
            return
        self._controller.cancel()
        self._binder.detach()
        self._subscribers.clear()
        self._closed = True

    # ----------------------------
    # Callbacks
    # ----------------------------
    def _handle_outcome(self, outcome: AnalysisOutcome) -> None:
        if not outcome.succeeded:
            self._transition(
                WorkflowPhase.FAILED,
                error=outcome.error,
                source_image=self._source_image,
                source_label=self._source_label,
            )
            self._notifier.notify(NoticeLevel.ERROR, outcome.error or "Analysis failed.")
            return

        result = outcome.result
        self._transition(
            WorkflowPhase.RESULT,
            result=result,
            source_image=result.source_image,
            source_label=result.source_label,
            publish=False,
        )

        try:
            self._binder.commit(result, result.source_image, result.source_label)
        except PydanticSerializationError as e:
            logger.warning(f"Result cannot be attached to navigation: {e}")

        if result.has_payload():
            entry = make_history_entry(outcome.request.source_kind, result, timestamp=self._clock())
            if entry is not None:
                self._history.record(entry)
        self._publish()

    def _handle_navigated_idle(self) -> None:
        self._controller.cancel()
        self._history.clear_active()
        self._transition(WorkflowPhase.IDLE)

    def _handle_navigated_result(self, snapshot: NavigationState) -> None:
        self._controller.cancel()
        self._transition(
            WorkflowPhase.RESULT,
            result=snapshot.result,
            source_image=snapshot.source_image,
            source_label=snapshot.source_label,
        )

    # ----------------------------
    # Internals
    # ----------------------------
    def _transition(
        self,
        phase: WorkflowPhase,
        result: Optional[AnalysisResult] = None,
        error: Optional[str] = None,
        source_image: Optional[str] = None,
        source_label: Optional[str] = None,
        publish: bool = True,
    ) -> None:
        self._phase = phase
        self._result = result
        self._error = error
        self._source_image = source_image
        self._source_label = source_label
        logger.debug(f"Studio phase -> {phase.value}")
        if publish:
            self._publish()

    def _publish(self) -> None:
        snapshot = self.state
        for listener in list(self._subscribers):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Studio subscriber failed")

    def _reject_input(self, error: Exception) -> None:
        logger.warning(f"Rejected analysis input: {error}")
        self._controller.cancel()
        self._history.clear_active()
        self._transition(WorkflowPhase.FAILED, error=str(error))
        self._notifier.notify(NoticeLevel.ERROR, f"Cannot analyze this item: {error}")

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Studio has been closed")
