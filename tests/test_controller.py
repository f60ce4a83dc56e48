"""Tests for RecognitionSessionController streaming recognition."""

import asyncio
import threading
from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

from bpa_speech.models import PipelineItem
from bpa_speech.streaming.controller import RecognitionSessionController, _SessionRun
from bpa_speech.streaming.interface import (
    CanceledEvent,
    CancellationReason,
    RecognitionSession,
    RecognizedEvent,
    RecognizerFactory,
    ResultReason,
    SessionListener,
)
from bpa_speech.utils.errors import ErrorKind, SessionCanceledError, SessionSetupError

Step = Callable[[SessionListener], None]


def speech(text: str) -> Step:
    return lambda listener: listener.recognized(
        RecognizedEvent(reason=ResultReason.RECOGNIZED_SPEECH, text=text)
    )


def no_match() -> Step:
    return lambda listener: listener.recognized(
        RecognizedEvent(reason=ResultReason.NO_MATCH)
    )


def interim(text: str) -> Step:
    return lambda listener: listener.recognizing(text)


def canceled(reason: CancellationReason, details: str | None = None) -> Step:
    return lambda listener: listener.canceled(
        CanceledEvent(reason=reason, error_code="ConnectionFailure", error_details=details)
    )


def stopped() -> Step:
    return lambda listener: listener.session_stopped()


class FakeSession(RecognitionSession):
    """Plays a scripted event sequence when started."""

    def __init__(
        self,
        listener: SessionListener,
        script: list[Step],
        threaded: bool = False,
        start_error: Exception | None = None,
    ) -> None:
        self.listener = listener
        self.script = script
        self.threaded = threaded
        self.start_error = start_error
        self.stop_calls = 0
        self.thread: threading.Thread | None = None

    def _play(self) -> None:
        for step in self.script:
            step(self.listener)

    def start(self) -> None:
        if self.start_error:
            raise self.start_error
        if self.threaded:
            self.thread = threading.Thread(target=self._play)
            self.thread.start()
        else:
            self._play()

    def stop(self) -> None:
        self.stop_calls += 1


class FakeFactory(RecognizerFactory):
    def __init__(
        self,
        script: list[Step] | None = None,
        create_error: Exception | None = None,
        **session_kwargs: object,
    ) -> None:
        self.script = script or []
        self.create_error = create_error
        self.session_kwargs = session_kwargs
        self.calls: list[tuple[object, str | None]] = []
        self.sessions: list[FakeSession] = []

    def create_session(self, audio, locale, listener) -> FakeSession:
        self.calls.append((audio, locale))
        if self.create_error:
            raise self.create_error
        session = FakeSession(listener, self.script, **self.session_kwargs)
        self.sessions.append(session)
        return session


def _item(**overrides: object) -> PipelineItem:
    fields: dict = {
        "filename": "documents/call.wav",
        "label": "wav",
        "bpa_id": "bpa-9",
        "pipeline": "audio-pipeline",
        "data": b"RIFF....WAVEfmt ",
    }
    fields.update(overrides)
    return PipelineItem(**fields)


class TestRecognizeSuccess:
    """Tests for sessions that end with a stop event."""

    async def test_fragments_joined_with_trailing_space(self) -> None:
        factory = FakeFactory([speech("hello"), speech("world"), stopped()])
        item = _item()

        result = await RecognitionSessionController(factory).recognize(item, 2)

        assert result.data == "hello world "
        assert result.label == "speechToText"
        assert result.type == "text"
        assert result.index == 2
        assert result.bpa_id == "bpa-9"
        assert result.filename == "documents/call.wav"
        assert result.pipeline == "audio-pipeline"
        assert item.aggregated_results["speechToText"] == "hello world "
        assert item.results_indexes == [{"index": 2, "name": "speechToText", "type": "text"}]
        assert result.aggregated_results is item.aggregated_results
        assert result.results_indexes is item.results_indexes
        assert factory.sessions[0].stop_calls == 1

    async def test_no_match_contributes_nothing(self) -> None:
        factory = FakeFactory([no_match(), stopped()])

        result = await RecognitionSessionController(factory).recognize(_item(), 0)

        assert result.data == ""

    async def test_interim_results_ignored(self) -> None:
        factory = FakeFactory([interim("hel"), interim("hello"), speech("hello"), stopped()])

        result = await RecognitionSessionController(factory).recognize(_item(), 0)

        assert result.data == "hello "

    async def test_existing_results_preserved(self) -> None:
        item = _item(aggregated_results={"ocr": {"text": "page"}})
        factory = FakeFactory([speech("hi"), stopped()])

        await RecognitionSessionController(factory).recognize(item, 1)

        assert item.aggregated_results == {"ocr": {"text": "page"}, "speechToText": "hi "}

    async def test_non_error_cancellation_keeps_session_alive(self) -> None:
        factory = FakeFactory(
            [speech("one"), canceled(CancellationReason.END_OF_STREAM), stopped()]
        )

        result = await RecognitionSessionController(factory).recognize(_item(), 0)

        assert result.data == "one "

    async def test_events_from_engine_thread(self) -> None:
        factory = FakeFactory([speech("from"), speech("thread"), stopped()], threaded=True)

        result = await RecognitionSessionController(factory).recognize(_item(), 0)

        assert result.data == "from thread "
        factory.sessions[0].thread.join(timeout=1)
        assert not factory.sessions[0].thread.is_alive()

    async def test_locale_override_passed_to_factory(self) -> None:
        factory = FakeFactory([stopped()])
        item = _item(service_specific_config={"to": "fr-FR"})

        await RecognitionSessionController(factory).recognize(item, 0)

        assert factory.calls == [(item.data, "fr-FR")]

    async def test_engine_default_locale_when_absent(self) -> None:
        factory = FakeFactory([stopped()])

        await RecognitionSessionController(factory).recognize(_item(), 0)

        assert factory.calls[0][1] is None


class TestRecognizeCancellation:
    """Tests for sessions canceled with an error."""

    async def test_error_cancellation_rejects_with_details(self) -> None:
        factory = FakeFactory([speech("partial"), canceled(CancellationReason.ERROR, "boom")])
        item = _item()

        with pytest.raises(SessionCanceledError, match="boom") as exc_info:
            await RecognitionSessionController(factory).recognize(item, 0)

        error = exc_info.value
        assert error.kind is ErrorKind.SESSION_CANCELED
        assert error.error_code == "ConnectionFailure"
        assert error.reason == "error"
        assert "speechToText" not in item.aggregated_results
        assert item.results_indexes == []
        assert factory.sessions[0].stop_calls == 1

    async def test_stop_after_error_cancellation_is_ignored(self) -> None:
        factory = FakeFactory([canceled(CancellationReason.ERROR, "boom"), stopped()])
        item = _item()

        with pytest.raises(SessionCanceledError):
            await RecognitionSessionController(factory).recognize(item, 0)

        assert "speechToText" not in item.aggregated_results
        assert item.results_indexes == []

    async def test_error_cancellation_after_stop_is_ignored(self) -> None:
        factory = FakeFactory([speech("done"), stopped(), canceled(CancellationReason.ERROR, "late")])

        result = await RecognitionSessionController(factory).recognize(_item(), 0)

        assert result.data == "done "


class TestRecognizeSetup:
    """Tests for failures before any event fires."""

    async def test_create_failure_raises_setup_error(self) -> None:
        factory = FakeFactory(create_error=ValueError("bad wav"))
        item = _item()

        with pytest.raises(SessionSetupError, match="bad wav") as exc_info:
            await RecognitionSessionController(factory).recognize(item, 0)

        assert exc_info.value.kind is ErrorKind.SESSION_SETUP
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert item.aggregated_results == {}

    async def test_start_failure_raises_setup_error(self) -> None:
        factory = FakeFactory([stopped()], start_error=RuntimeError("no network"))

        with pytest.raises(SessionSetupError, match="no network"):
            await RecognitionSessionController(factory).recognize(_item(), 0)

    async def test_missing_audio_raises_setup_error(self) -> None:
        factory = FakeFactory([stopped()])

        with pytest.raises(SessionSetupError, match="no audio payload"):
            await RecognitionSessionController(factory).recognize(_item(data=None), 0)

        assert factory.calls == []


class TestRecognizeCallerCancellation:
    """Tests for recognize() tasks cancelled by the caller."""

    async def test_cancel_stops_session_and_ignores_late_stop(self) -> None:
        factory = FakeFactory([])
        item = _item()

        task = asyncio.create_task(RecognitionSessionController(factory).recognize(item, 0))
        await asyncio.sleep(0)
        session = factory.sessions[0]

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.stop_calls == 1

        session.listener.session_stopped()
        await asyncio.sleep(0)

        assert "speechToText" not in item.aggregated_results
        assert item.results_indexes == []
        assert session.stop_calls == 1

    async def test_late_error_cancellation_after_cancel_is_ignored(self) -> None:
        factory = FakeFactory([])

        task = asyncio.create_task(RecognitionSessionController(factory).recognize(_item(), 0))
        await asyncio.sleep(0)
        session = factory.sessions[0]
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        session.listener.canceled(
            CanceledEvent(reason=CancellationReason.ERROR, error_details="late")
        )
        await asyncio.sleep(0)

        assert session.stop_calls == 1


class TestEventDispatch:
    """Tests for marshalling engine callbacks onto the event loop."""

    def test_event_dropped_when_loop_shuts_down_mid_dispatch(self) -> None:
        loop = MagicMock()
        loop.is_closed.return_value = False
        loop.call_soon_threadsafe.side_effect = RuntimeError("Event loop is closed")
        run = _SessionRun(_item(), 0, loop)

        run.session_stopped()
        run.recognized(RecognizedEvent(reason=ResultReason.RECOGNIZED_SPEECH, text="x"))

        assert loop.call_soon_threadsafe.call_count == 2

    def test_event_dropped_when_loop_already_closed(self) -> None:
        loop = asyncio.new_event_loop()
        run = _SessionRun(_item(), 0, loop)
        loop.close()

        run.session_stopped()

        assert run.text == ""
