"""Continuous recognition session controller.

Turns the event stream of one streaming recognition session into a single
awaited PipelineItem. Engine callbacks may fire on SDK threads; each one is
marshalled onto the caller's event loop, where an explicit SessionState
and a one-shot future decide the outcome. Only the first terminal event
(session stopped, or canceled with an error) settles the result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from bpa_speech.models import STAGE_NAME, TEXT_TYPE, PipelineItem, result_index
from bpa_speech.observability.metrics import StageMetrics, StageTimer, log_stage_metrics
from bpa_speech.streaming.interface import (
    CanceledEvent,
    CancellationReason,
    RecognitionSession,
    RecognizedEvent,
    RecognizerFactory,
    ResultReason,
)
from bpa_speech.utils.errors import (
    SessionCanceledError,
    SessionSetupError,
    SpeechStageError,
)

logger = logging.getLogger(__name__)


class SessionState(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class _SessionRun:
    """Listener for one recognize() call, settling a single future."""

    def __init__(
        self, item: PipelineItem, index: int, loop: asyncio.AbstractEventLoop
    ) -> None:
        self.item = item
        self.index = index
        self.state = SessionState.PENDING
        self.session: RecognitionSession | None = None
        self.future: asyncio.Future[PipelineItem] = loop.create_future()
        self._loop = loop
        self._fragments: list[str] = []

    @property
    def text(self) -> str:
        return "".join(self._fragments)

    @property
    def settled(self) -> bool:
        return self.future.done() or self.state in (
            SessionState.COMPLETED,
            SessionState.FAILED,
        )

    # SessionListener, callable from any thread

    def recognizing(self, text: str) -> None:
        self._dispatch(self._on_recognizing, text)

    def recognized(self, event: RecognizedEvent) -> None:
        self._dispatch(self._on_recognized, event)

    def canceled(self, event: CanceledEvent) -> None:
        self._dispatch(self._on_canceled, event)

    def session_stopped(self) -> None:
        self._dispatch(self._on_session_stopped)

    def _dispatch(self, handler: Callable[..., None], *args: Any) -> None:
        if self._loop.is_closed():
            logger.debug("Dropping %s after event loop closed", handler.__name__)
            return
        try:
            self._loop.call_soon_threadsafe(handler, *args)
        except RuntimeError:
            logger.debug("Dropping %s after event loop closed", handler.__name__)

    # Handlers, run on the event loop

    def _on_recognizing(self, text: str) -> None:
        logger.debug("Interim result: %s", text)

    def _on_recognized(self, event: RecognizedEvent) -> None:
        if self.settled:
            return
        if event.reason is ResultReason.RECOGNIZED_SPEECH:
            self._fragments.append(f"{event.text} ")
        elif event.reason is ResultReason.NO_MATCH:
            logger.info(
                "No match: speech could not be recognized",
                extra={"audio_file": self.item.filename},
            )

    def _on_canceled(self, event: CanceledEvent) -> None:
        logger.info("Session canceled: reason=%s", event.reason.value)
        if event.reason is not CancellationReason.ERROR:
            return
        if self.settled:
            logger.warning(
                "Ignoring cancellation after session already %s", self.state.value
            )
            return

        logger.error(
            "Session canceled with error code=%s: %s",
            event.error_code,
            event.error_details,
            extra={"audio_file": self.item.filename, "error": event.error_details},
        )
        self.state = SessionState.FAILED
        self._stop_session()
        self.future.set_exception(
            SessionCanceledError(
                event.error_details or "Recognition canceled with an error",
                filename=self.item.filename,
                reason=event.reason.value,
                error_code=event.error_code,
                error_details=event.error_details,
            )
        )

    def _on_session_stopped(self) -> None:
        if self.settled:
            logger.warning("Ignoring session stop after session already %s", self.state.value)
            return

        self.state = SessionState.COMPLETED
        self._stop_session()

        text = self.text
        item = self.item
        item.aggregated_results[STAGE_NAME] = text
        item.results_indexes.append(result_index(self.index, STAGE_NAME, TEXT_TYPE))
        self.future.set_result(
            PipelineItem(
                data=text,
                label=STAGE_NAME,
                type=TEXT_TYPE,
                index=self.index,
                bpa_id=item.bpa_id,
                filename=item.filename,
                pipeline=item.pipeline,
                aggregated_results=item.aggregated_results,
                results_indexes=item.results_indexes,
            )
        )

    def _stop_session(self) -> None:
        if self.session is None:
            return
        try:
            self.session.stop()
        except Exception:
            logger.warning("Failed to stop recognition session", exc_info=True)


class RecognitionSessionController:
    """Runs streaming recognition sessions for pipeline items.

    Args:
        factory: Backend that creates recognition sessions.
    """

    def __init__(self, factory: RecognizerFactory) -> None:
        self._factory = factory

    async def recognize(self, item: PipelineItem, index: int) -> PipelineItem:
        """Transcribe the item's audio payload with one streaming session.

        Args:
            item: Pipeline item whose data holds WAV-encoded audio.
            index: Position of this stage, recorded in results_indexes.

        Returns:
            New "text" item whose data is the transcript, each recognized
            fragment followed by a single space.

        Raises:
            SessionSetupError: If the session cannot be created or started.
            SessionCanceledError: If the engine cancels with an error.
        """
        logger.info(
            "Starting streaming recognition",
            extra={"bpa_id": item.bpa_id, "audio_file": item.filename, "stage": "stt-stream"},
        )
        run = _SessionRun(item, index, asyncio.get_running_loop())
        timer = StageTimer("stt-stream")

        try:
            with timer:
                self._start(run)
                try:
                    result = await run.future
                except asyncio.CancelledError:
                    run.state = SessionState.FAILED
                    run._stop_session()
                    logger.info(
                        "Recognition cancelled by caller",
                        extra={"bpa_id": item.bpa_id, "audio_file": item.filename},
                    )
                    raise
        except SpeechStageError as exc:
            self._log_metrics(item, "failed", timer, error=exc)
            raise

        self._log_metrics(item, "completed", timer, transcript=result.data)
        return result

    def _start(self, run: _SessionRun) -> None:
        item = run.item
        try:
            if not item.data:
                raise ValueError("pipeline item carries no audio payload")
            run.session = self._factory.create_session(
                item.data, item.locale_override, run
            )
            run.session.start()
        except Exception as exc:
            run.state = SessionState.FAILED
            raise SessionSetupError(
                f"Failed to start recognition session: {exc}",
                filename=item.filename,
            ) from exc
        run.state = SessionState.ACTIVE

    @staticmethod
    def _log_metrics(
        item: PipelineItem,
        status: str,
        timer: StageTimer,
        transcript: str = "",
        error: SpeechStageError | None = None,
    ) -> None:
        log_stage_metrics(
            StageMetrics(
                stage="stt-stream",
                bpa_id=item.bpa_id,
                filename=item.filename,
                status=status,
                duration_seconds=timer.duration_seconds,
                transcript_chars=len(transcript),
                error_kind=error.kind.value if error else None,
            )
        )
