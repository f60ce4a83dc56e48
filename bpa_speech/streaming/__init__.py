"""Streaming speech recognition."""

from bpa_speech.streaming.controller import RecognitionSessionController, SessionState
from bpa_speech.streaming.registry import factory_from_settings, get_recognizer_factory

__all__ = [
    "RecognitionSessionController",
    "SessionState",
    "factory_from_settings",
    "get_recognizer_factory",
]
