"""Configuration for both speech entry points.

One SpeechSettings object carries the subscription credentials, the batch
endpoint, the object store location and the retry budget. It is built
explicitly or from environment variables via SpeechSettings.from_env():

    SPEECH_SUB_KEY, SPEECH_REGION, SPEECH_SUB_ENDPOINT,
    SPEECH_DEFAULT_LOCALE, SPEECH_PROFANITY,
    STT_MAX_ATTEMPTS, STT_RETRY_DELAY, STT_RETRY_MAX_ELAPSED,
    STORAGE_ENDPOINT, STORAGE_BUCKET, STORAGE_ACCESS_KEY_ID,
    STORAGE_SECRET_ACCESS_KEY, STORAGE_REGION
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from bpa_speech.utils.errors import ConfigurationError
from bpa_speech.utils.retry import RetryPolicy

DEFAULT_LOCALE = "en-US"
DEFAULT_DISPLAY_NAME = "Transcription of file using default model for en-US"
DEFAULT_PATH_PREFIX = "documents/"
URL_EXPIRY_SECONDS = 60 * 60 * 24
TRANSCRIPTIONS_PATH = "speechtotext/v3.0/transcriptions"


@dataclass(frozen=True)
class StorageSettings:
    """S3-compatible object store holding the source audio."""

    bucket: str
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    region_name: str | None = None


@dataclass(frozen=True)
class SpeechSettings:
    """Settings shared by the batch submitter and the streaming controller."""

    subscription_key: str
    region: str
    endpoint: str | None = None
    default_locale: str = DEFAULT_LOCALE
    display_name: str = DEFAULT_DISPLAY_NAME
    profanity: str = "raw"
    path_prefix: str = DEFAULT_PATH_PREFIX
    url_expiry_seconds: int = URL_EXPIRY_SECONDS
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    storage: StorageSettings | None = None

    def __post_init__(self) -> None:
        if not self.subscription_key:
            raise ConfigurationError("SPEECH_SUB_KEY is required")
        if not self.region:
            raise ConfigurationError("SPEECH_REGION is required")

    @property
    def base_url(self) -> str:
        endpoint = self.endpoint or f"https://{self.region}.api.cognitive.microsoft.com/"
        if not endpoint.endswith("/"):
            endpoint += "/"
        return endpoint

    @property
    def transcriptions_url(self) -> str:
        return self.base_url + TRANSCRIPTIONS_PATH

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SpeechSettings:
        """Build settings from environment variables.

        Raises:
            ConfigurationError: If a required variable is missing or a
                numeric variable cannot be parsed.
        """
        env = os.environ if environ is None else environ

        storage = None
        if env.get("STORAGE_BUCKET"):
            storage = StorageSettings(
                bucket=env["STORAGE_BUCKET"],
                endpoint_url=env.get("STORAGE_ENDPOINT") or None,
                access_key_id=env.get("STORAGE_ACCESS_KEY_ID") or None,
                secret_access_key=env.get("STORAGE_SECRET_ACCESS_KEY") or None,
                region_name=env.get("STORAGE_REGION") or None,
            )

        try:
            max_attempts_raw = env.get("STT_MAX_ATTEMPTS", "120")
            max_attempts = int(max_attempts_raw) if max_attempts_raw else None
            if max_attempts is not None and max_attempts <= 0:
                max_attempts = None
            max_elapsed_raw = env.get("STT_RETRY_MAX_ELAPSED")
            retry = RetryPolicy(
                max_attempts=max_attempts,
                base_delay=float(env.get("STT_RETRY_DELAY", "5.0")),
                max_elapsed=float(max_elapsed_raw) if max_elapsed_raw else None,
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid retry settings: {exc}") from exc

        return cls(
            subscription_key=env.get("SPEECH_SUB_KEY", ""),
            region=env.get("SPEECH_REGION", ""),
            endpoint=env.get("SPEECH_SUB_ENDPOINT") or None,
            default_locale=env.get("SPEECH_DEFAULT_LOCALE", DEFAULT_LOCALE),
            profanity=env.get("SPEECH_PROFANITY", "raw"),
            retry=retry,
            storage=storage,
        )
