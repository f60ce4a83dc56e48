"""Batch transcription job submission.

TranscriptionJobSubmitter hands a stored audio object to the batch
transcription REST API and records the job's status URL on the pipeline
item. Rate-limited submissions (HTTP 429) are retried under the configured
RetryPolicy, signing a fresh read URL on every attempt. Polling the job
and fetching its result happen elsewhere.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from bpa_speech.config import SpeechSettings
from bpa_speech.models import (
    ASYNC_TRANSACTION_TYPE,
    BATCH_STAGE_TAG,
    STAGE_NAME,
    PipelineItem,
)
from bpa_speech.observability.metrics import StageMetrics, StageTimer, log_stage_metrics
from bpa_speech.storage.blob_store import BlobStore
from bpa_speech.utils.errors import (
    AuthenticationError,
    RateLimitedError,
    SpeechStageError,
    SubmissionError,
    TransportError,
)
from bpa_speech.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

RATE_LIMITED_STATUS = 429
AUTH_STATUS_CODES = {401, 403}
REQUEST_TIMEOUT_SECONDS = 30.0


class TranscriptionJobSubmitter:
    """Submits audio objects as batch transcription jobs.

    Args:
        settings: Credentials, endpoint, locale defaults and retry policy.
        blob_store: Object store used to sign read URLs for the audio.
        client: Optional shared httpx.AsyncClient. When omitted a client
            is opened for each submission.
    """

    def __init__(
        self,
        settings: SpeechSettings,
        blob_store: BlobStore,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._blob_store = blob_store
        self._client = client

    def object_key(self, filename: str) -> str:
        """Strip the storage path prefix from a pipeline filename."""
        return filename.replace(self._settings.path_prefix, "", 1)

    def build_payload(self, item: PipelineItem, content_url: str) -> dict[str, Any]:
        return {
            "contentUrls": [content_url],
            "properties": {"wordLevelTimestampsEnabled": True},
            "locale": item.locale_override or self._settings.default_locale,
            "displayName": self._settings.display_name,
        }

    async def submit_batch(self, item: PipelineItem, index: int) -> PipelineItem:
        """Submit the item's audio for batch transcription.

        Args:
            item: Pipeline item whose filename names the stored audio.
            index: Position of this stage, echoed on the returned item.

        Returns:
            New item of type "async transaction" sharing the input's
            aggregated_results, which now holds the job location under
            "speechToText".

        Raises:
            SubmissionError: On any non-retryable response, transport
                failure, or when the retry policy is exhausted.
            StorageError: If the read URL cannot be signed.
        """
        logger.info(
            "Submitting batch transcription",
            extra={"bpa_id": item.bpa_id, "audio_file": item.filename, "stage": "stt-batch"},
        )
        key = self.object_key(item.filename)
        attempts = 0

        async def submit_once(client: httpx.AsyncClient) -> str:
            nonlocal attempts
            attempts += 1
            content_url = self._blob_store.generate_read_url(
                key, expires_in=self._settings.url_expiry_seconds
            )
            return await self._post_job(client, item, content_url)

        submit = retry_with_backoff(
            self._settings.retry, retryable_exceptions=(RateLimitedError,)
        )(submit_once)

        timer = StageTimer("stt-batch")
        try:
            with timer:
                if self._client is not None:
                    location = await submit(self._client)
                else:
                    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
                        location = await submit(client)
        except SpeechStageError as exc:
            if exc.filename is None:
                exc.filename = item.filename
            log_stage_metrics(
                StageMetrics(
                    stage="stt-batch",
                    bpa_id=item.bpa_id,
                    filename=item.filename,
                    status="failed",
                    duration_seconds=timer.duration_seconds,
                    attempts=attempts,
                    error_kind=exc.kind.value,
                )
            )
            raise

        item.aggregated_results[STAGE_NAME] = {
            "location": location,
            "stage": BATCH_STAGE_TAG,
            "filename": item.filename,
        }
        log_stage_metrics(
            StageMetrics(
                stage="stt-batch",
                bpa_id=item.bpa_id,
                filename=item.filename,
                status="submitted",
                duration_seconds=timer.duration_seconds,
                attempts=attempts,
            )
        )

        return PipelineItem(
            index=index,
            type=ASYNC_TRANSACTION_TYPE,
            label=item.label,
            filename=item.filename,
            pipeline=item.pipeline,
            bpa_id=item.bpa_id,
            aggregated_results=item.aggregated_results,
            results_indexes=item.results_indexes,
        )

    async def _post_job(
        self, client: httpx.AsyncClient, item: PipelineItem, content_url: str
    ) -> str:
        """POST one job submission and return its status location.

        Raises:
            RateLimitedError: On HTTP 429.
            AuthenticationError: On HTTP 401/403.
            TransportError: If no response was received.
            SubmissionError: On any other non-2xx status or a missing
                location header.
        """
        headers = {
            "Content-Type": "application/json",
            "Ocp-Apim-Subscription-Key": self._settings.subscription_key,
        }
        payload = self.build_payload(item, content_url)

        try:
            response = await client.post(
                self._settings.transcriptions_url, json=payload, headers=headers
            )
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Failed to submit transcription job: {exc}",
                filename=item.filename,
                detail=str(exc),
            ) from exc

        status = response.status_code
        if status == RATE_LIMITED_STATUS:
            raise RateLimitedError(
                "Transcription endpoint is rate limiting",
                filename=item.filename,
                status_code=status,
                detail=response.headers.get("retry-after"),
            )
        if status in AUTH_STATUS_CODES:
            raise AuthenticationError(
                f"Subscription key rejected with status {status}",
                filename=item.filename,
                status_code=status,
                detail=response.text,
            )
        if not response.is_success:
            raise SubmissionError(
                f"Job submission failed with status {status}: {response.text}",
                filename=item.filename,
                status_code=status,
                detail=response.text,
            )

        location = response.headers.get("location")
        if not location:
            raise SubmissionError(
                "No location header in submission response",
                filename=item.filename,
                status_code=status,
            )

        logger.info(
            "Submitted transcription job %s",
            location,
            extra={"bpa_id": item.bpa_id, "audio_file": item.filename, "status_code": status},
        )
        return location
