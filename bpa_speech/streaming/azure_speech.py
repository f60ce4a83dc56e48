"""Azure Speech recognition backend.

Wraps the Azure Speech SDK continuous recognizer and translates its four
event signals into SessionListener calls. The WAV payload is pushed into
an in-memory audio stream whose format is read from the WAV header.
"""

from __future__ import annotations

import logging
from typing import Any

import azure.cognitiveservices.speech as speechsdk

from bpa_speech.audio.wav_utils import read_wav_pcm
from bpa_speech.streaming.interface import (
    CanceledEvent,
    CancellationReason,
    RecognitionSession,
    RecognizedEvent,
    RecognizerFactory,
    ResultReason,
    SessionListener,
)

logger = logging.getLogger(__name__)

PROFANITY_OPTIONS = {
    "raw": speechsdk.ProfanityOption.Raw,
    "masked": speechsdk.ProfanityOption.Masked,
    "removed": speechsdk.ProfanityOption.Removed,
}

_RESULT_REASONS = {
    speechsdk.ResultReason.RecognizedSpeech: ResultReason.RECOGNIZED_SPEECH,
    speechsdk.ResultReason.NoMatch: ResultReason.NO_MATCH,
}

_CANCELLATION_REASONS = {
    speechsdk.CancellationReason.Error: CancellationReason.ERROR,
    speechsdk.CancellationReason.EndOfStream: CancellationReason.END_OF_STREAM,
    speechsdk.CancellationReason.CancelledByUser: CancellationReason.CANCELLED_BY_USER,
}


def translate_recognized(evt: Any) -> RecognizedEvent | None:
    """Map an SDK recognized event; None for reasons the stage ignores."""
    reason = _RESULT_REASONS.get(evt.result.reason)
    if reason is None:
        return None
    return RecognizedEvent(reason=reason, text=evt.result.text or "")


def translate_canceled(evt: Any) -> CanceledEvent:
    details = evt.cancellation_details
    code = getattr(details, "code", None)
    return CanceledEvent(
        reason=_CANCELLATION_REASONS.get(details.reason, CancellationReason.ERROR),
        error_code=getattr(code, "name", None) if code is not None else None,
        error_details=details.error_details or None,
    )


class AzureRecognitionSession(RecognitionSession):
    """Continuous recognition over one SpeechRecognizer."""

    def __init__(self, recognizer: Any, listener: SessionListener) -> None:
        self._recognizer = recognizer
        self._listener = listener
        recognizer.recognizing.connect(self._handle_recognizing)
        recognizer.recognized.connect(self._handle_recognized)
        recognizer.canceled.connect(self._handle_canceled)
        recognizer.session_stopped.connect(self._handle_session_stopped)

    def start(self) -> None:
        self._recognizer.start_continuous_recognition_async()

    def stop(self) -> None:
        self._recognizer.stop_continuous_recognition_async()

    def _handle_recognizing(self, evt: Any) -> None:
        self._listener.recognizing(evt.result.text)

    def _handle_recognized(self, evt: Any) -> None:
        event = translate_recognized(evt)
        if event is not None:
            self._listener.recognized(event)

    def _handle_canceled(self, evt: Any) -> None:
        self._listener.canceled(translate_canceled(evt))

    def _handle_session_stopped(self, evt: Any) -> None:
        self._listener.session_stopped()


class AzureRecognizerFactory(RecognizerFactory):
    """Creates Azure Speech continuous recognition sessions.

    Args:
        subscription_key: Speech resource key.
        region: Speech resource region (e.g., "westus2").
        profanity: One of "raw", "masked", "removed" (default "raw").
    """

    def __init__(self, subscription_key: str, region: str, profanity: str = "raw") -> None:
        if not subscription_key:
            raise ValueError("subscription_key is required")
        if not region:
            raise ValueError("region is required")
        if profanity not in PROFANITY_OPTIONS:
            raise ValueError(f"Unknown profanity option: '{profanity}'")
        self._subscription_key = subscription_key
        self._region = region
        self._profanity = profanity

    def _speech_config(self, locale: str | None) -> speechsdk.SpeechConfig:
        config = speechsdk.SpeechConfig(
            subscription=self._subscription_key, region=self._region
        )
        config.set_profanity(PROFANITY_OPTIONS[self._profanity])
        if locale:
            config.speech_recognition_language = locale
        return config

    def create_session(
        self, audio: Any, locale: str | None, listener: SessionListener
    ) -> AzureRecognitionSession:
        fmt, frames = read_wav_pcm(audio)
        stream = speechsdk.audio.PushAudioInputStream(
            stream_format=speechsdk.audio.AudioStreamFormat(
                samples_per_second=fmt.sample_rate,
                bits_per_sample=fmt.bits_per_sample,
                channels=fmt.channels,
            )
        )
        stream.write(frames)
        stream.close()

        recognizer = speechsdk.SpeechRecognizer(
            speech_config=self._speech_config(locale),
            audio_config=speechsdk.audio.AudioConfig(stream=stream),
        )
        logger.debug(
            "Created recognizer (%d Hz, %d-bit, %d ch, locale=%s)",
            fmt.sample_rate,
            fmt.bits_per_sample,
            fmt.channels,
            locale or "default",
        )
        return AzureRecognitionSession(recognizer, listener)
