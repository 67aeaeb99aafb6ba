"""
Analysis request controller.

Issues analysis calls and guarantees that only the outcome of the most recently
started request is ever delivered. Earlier responses are dropped on arrival.
"""
import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..backends.analysis_backend import AnalysisBackend
from ..exceptions import AnalysisFailedError
from ..models import AnalysisRequest, AnalysisResult, SourceKind
from ..utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)


FAILED_MESSAGE = "Analysis failed. Please try again."
TIMEOUT_MESSAGE = "Analysis took too long and was stopped. Please try again."


@dataclass(frozen=True)
class AnalysisOutcome:
    """Terminal outcome of one request: a result or an error message."""
    request: AnalysisRequest
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


OutcomeListener = Callable[[AnalysisOutcome], None]


class AnalysisRequestController:
    """
    One live analysis per workflow instance.

    The controller keeps a "current id" sentinel. Starting a request makes its
    id current; cancelling advances the sentinel past every issued id. When a
    call completes, its outcome is delivered only if its id is still current.
    Cancellation is soft: the backend call keeps running, its outcome is ignored.
    """

    def __init__(
        self,
        backend: AnalysisBackend,
        on_outcome: Optional[OutcomeListener] = None,
        timeout_seconds: Optional[float] = 30.0,
        clock: Clock = utc_now,
    ):
        """
        :param backend: Analysis service
        :param on_outcome: Called with the outcome of the current request
        :param timeout_seconds: Calls running longer end as failures, None to disable
        :param clock: Time source for request and result timestamps
        """
        self._backend = backend
        self._on_outcome = on_outcome
        self._timeout_seconds = timeout_seconds
        self._clock = clock

        self._sequence = itertools.count(1)
        self._current_id: Optional[int] = None
        self._in_flight: Dict[int, asyncio.Task] = {}

    @property
    def current_id(self) -> Optional[int]:
        return self._current_id

    @property
    def is_running(self) -> bool:
        """True while the current request has not produced an outcome."""
        return self._current_id in self._in_flight

    @property
    def in_flight_count(self) -> int:
        """Calls still running, including superseded ones."""
        return len(self._in_flight)

    def set_outcome_listener(self, listener: Optional[OutcomeListener]) -> None:
        self._on_outcome = listener

    def is_current(self, request_id: int) -> bool:
        return request_id == self._current_id

    def new_request(
        self,
        source_kind: SourceKind,
        source_ref: Any,
        source_label: Optional[str] = None,
        source_image: Optional[str] = None,
    ) -> AnalysisRequest:
        """Create a request with the next id. Does not start it."""
        return AnalysisRequest(
            id=next(self._sequence),
            source_kind=SourceKind(source_kind),
            source_ref=source_ref,
            started_at=self._clock(),
            source_label=source_label,
            source_image=source_image,
        )

    def start(self, request: AnalysisRequest) -> asyncio.Task:
        """
        Make ``request`` current and run it in the background.

        Must be called from within a running event loop. Any earlier request
        becomes stale immediately.

        :param request: Request created by ``new_request``
        :return: Task resolving to the delivered outcome, or None if it went stale
        """
        loop = asyncio.get_running_loop()
        if self._current_id is not None and request.id <= self._current_id:
            raise ValueError(
                f"Request {request.id} is not newer than current request {self._current_id}"
            )

        superseded = self._current_id if self.is_running else None
        self._current_id = request.id
        if superseded is not None:
            logger.info(f"Analysis request {request.id} supersedes request {superseded}")
        else:
            logger.info(f"Analysis request {request.id} started ({request.source_kind.value})")

        task = loop.create_task(self._run(request))
        self._in_flight[request.id] = task
        task.add_done_callback(lambda _task, request_id=request.id: self._in_flight.pop(request_id, None))
        return task

    def cancel(self) -> Optional[int]:
        """
        Advance the sentinel so any in-flight outcome is ignored.

        :return: Id of the request that was cancelled, or None if nothing was running
        """
        cancelled = self._current_id if self.is_running else None
        self._current_id = next(self._sequence)
        if cancelled is not None:
            logger.info(f"Analysis request {cancelled} cancelled")
        return cancelled

    async def wait_idle(self) -> None:
        """Wait until every issued call (current or stale) has finished."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight.values()), return_exceptions=True)

    async def _run(self, request: AnalysisRequest) -> Optional[AnalysisOutcome]:
        outcome = await self._execute(request)

        if not self.is_current(request.id):
            logger.debug(f"Discarding stale outcome of request {request.id} (current: {self._current_id})")
            return None

        # Remove before notifying so is_running is already False for the listener
        self._in_flight.pop(request.id, None)
        if outcome.succeeded:
            logger.info(f"Analysis request {request.id} completed")
        else:
            logger.warning(f"Analysis request {request.id} failed: {outcome.error}")

        if self._on_outcome is not None:
            try:
                self._on_outcome(outcome)
            except Exception:
                logger.exception(f"Outcome handler failed for request {request.id}")
        return outcome

    async def _execute(self, request: AnalysisRequest) -> AnalysisOutcome:
        try:
            if self._timeout_seconds:
                payload = await asyncio.wait_for(self._invoke(request), timeout=self._timeout_seconds)
            else:
                payload = await self._invoke(request)
        except asyncio.TimeoutError:
            logger.warning(f"Analysis request {request.id} timed out after {self._timeout_seconds}s")
            return AnalysisOutcome(request=request, error=TIMEOUT_MESSAGE)
        except asyncio.CancelledError:
            raise
        except AnalysisFailedError as e:
            logger.warning(f"Analysis request {request.id} rejected by service: {e}")
            return AnalysisOutcome(request=request, error=FAILED_MESSAGE)
        except Exception as e:
            logger.warning(f"Analysis backend error for request {request.id}: {e}")
            return AnalysisOutcome(request=request, error=FAILED_MESSAGE)

        result = AnalysisResult(
            source_image=request.source_image,
            source_label=request.source_label,
            payload=payload,
            completed_at=self._clock(),
        )
        return AnalysisOutcome(request=request, result=result)

    async def _invoke(self, request: AnalysisRequest) -> Any:
        if request.source_kind is SourceKind.IMAGE_UPLOAD:
            payload = await self._backend.analyze_by_image(request.source_ref)
        else:
            payload = await self._backend.analyze_by_catalog_item(request.source_ref)

        if payload is None or payload is False:
            raise AnalysisFailedError("service returned no result")
        return payload
