"""Custom exception hierarchy for the speech-to-text stage.

All exceptions inherit from SpeechStageError and carry an ErrorKind, so
callers can branch on the failure category without string matching while
the original status codes and engine details stay attached.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories surfaced by the speech stage."""

    RATE_LIMITED = "rate_limited"
    TRANSPORT = "transport"
    AUTHENTICATION = "authentication"
    HTTP_STATUS = "http_status"
    RETRIES_EXHAUSTED = "retries_exhausted"
    SESSION_SETUP = "session_setup"
    SESSION_CANCELED = "session_canceled"
    STORAGE = "storage"
    CONFIGURATION = "configuration"


class SpeechStageError(Exception):
    """Base exception for all speech stage errors."""

    kind: ErrorKind = ErrorKind.HTTP_STATUS

    def __init__(self, message: str, filename: str | None = None) -> None:
        self.filename = filename
        super().__init__(message)

    def __str__(self) -> str:
        if self.filename:
            return f"[file={self.filename}] {super().__str__()}"
        return super().__str__()


class SubmissionError(SpeechStageError):
    """Raised when the batch transcription endpoint rejects a job."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(message, filename)


class RateLimitedError(SubmissionError):
    """Raised on HTTP 429; retried locally, never surfaced on its own."""

    kind = ErrorKind.RATE_LIMITED


class AuthenticationError(SubmissionError):
    """Raised when the subscription key is refused (401/403)."""

    kind = ErrorKind.AUTHENTICATION


class TransportError(SubmissionError):
    """Raised when the request never produced an HTTP response."""

    kind = ErrorKind.TRANSPORT


class RetriesExhaustedError(SubmissionError):
    """Raised when the retry policy gives up on a rate-limited submission."""

    kind = ErrorKind.RETRIES_EXHAUSTED

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        status_code: int | None = None,
        attempts: int = 0,
    ) -> None:
        self.attempts = attempts
        super().__init__(message, filename, status_code=status_code)


class SessionSetupError(SpeechStageError):
    """Raised when a streaming recognition session cannot be started."""

    kind = ErrorKind.SESSION_SETUP


class SessionCanceledError(SpeechStageError):
    """Raised when the engine cancels a session with an error reason."""

    kind = ErrorKind.SESSION_CANCELED

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        reason: str | None = None,
        error_code: str | None = None,
        error_details: str | None = None,
    ) -> None:
        self.reason = reason
        self.error_code = error_code
        self.error_details = error_details
        super().__init__(message, filename)


class StorageError(SpeechStageError):
    """Raised when object store operations fail."""

    kind = ErrorKind.STORAGE

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        operation: str | None = None,
        key: str | None = None,
    ) -> None:
        self.operation = operation
        self.key = key
        super().__init__(message, filename)


class ConfigurationError(SpeechStageError):
    """Raised when required settings are missing or invalid."""

    kind = ErrorKind.CONFIGURATION
