"""Abstract streaming recognition interface.

Defines engine-neutral session events and the RecognizerFactory ABC.
Concrete backends (e.g., Azure Speech) translate their SDK callbacks into
calls on a SessionListener.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class ResultReason(Enum):
    """Outcome of a final recognition fragment."""

    RECOGNIZED_SPEECH = "recognized_speech"
    NO_MATCH = "no_match"


class CancellationReason(Enum):
    """Why the engine canceled a session."""

    ERROR = "error"
    END_OF_STREAM = "end_of_stream"
    CANCELLED_BY_USER = "cancelled_by_user"


@dataclass
class RecognizedEvent:
    """A final fragment produced by the engine."""

    reason: ResultReason
    text: str = ""


@dataclass
class CanceledEvent:
    """A session cancellation notice."""

    reason: CancellationReason
    error_code: str | None = None
    error_details: str | None = None


class SessionListener(Protocol):
    """Receiver for the four event channels of a session.

    Backends may invoke these from any thread.
    """

    def recognizing(self, text: str) -> None: ...

    def recognized(self, event: RecognizedEvent) -> None: ...

    def canceled(self, event: CanceledEvent) -> None: ...

    def session_stopped(self) -> None: ...


class RecognitionSession(ABC):
    """One continuous recognition session over a single audio payload."""

    @abstractmethod
    def start(self) -> None:
        """Begin continuous recognition without blocking."""

    @abstractmethod
    def stop(self) -> None:
        """Stop recognition and release engine resources without blocking."""


class RecognizerFactory(ABC):
    """Creates recognition sessions bound to a listener.

    Subclasses must implement create_session().
    """

    @abstractmethod
    def create_session(
        self, audio: Any, locale: str | None, listener: SessionListener
    ) -> RecognitionSession:
        """Build a session over a WAV payload.

        Args:
            audio: WAV-encoded audio bytes.
            locale: Recognition locale, or None for the engine default.
            listener: Receiver for the session's events.

        Returns:
            A session that has not been started yet.
        """
