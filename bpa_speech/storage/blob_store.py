"""Object store client for the source audio (S3-compatible).

Provides read-only presigned URLs so the batch transcription service can
download the audio directly. Uses boto3 against any S3-compatible endpoint.
"""

from __future__ import annotations

import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from bpa_speech.config import URL_EXPIRY_SECONDS, SpeechSettings, StorageSettings
from bpa_speech.utils.errors import ConfigurationError, StorageError

logger = logging.getLogger(__name__)


class BlobStore:
    """S3-compatible client scoped to a single bucket."""

    def __init__(self, settings: StorageSettings, client: object | None = None) -> None:
        if not settings.bucket:
            raise StorageError("STORAGE_BUCKET is required", operation="init")
        self.bucket = settings.bucket

        if client is None:
            client = boto3.client(
                "s3",
                endpoint_url=settings.endpoint_url,
                aws_access_key_id=settings.access_key_id,
                aws_secret_access_key=settings.secret_access_key,
                region_name=settings.region_name,
            )
        self._client = client

    @classmethod
    def from_settings(cls, settings: SpeechSettings) -> BlobStore:
        """Build the store described by the stage configuration.

        Raises:
            ConfigurationError: If no storage section is configured.
        """
        if settings.storage is None:
            raise ConfigurationError("STORAGE_BUCKET is required")
        return cls(settings.storage)

    def generate_read_url(self, key: str, expires_in: int = URL_EXPIRY_SECONDS) -> str:
        """Create a presigned GET URL for an object.

        Args:
            key: Object key inside the bucket.
            expires_in: URL lifetime in seconds (default 24 hours).

        Returns:
            A URL granting read access until it expires.

        Raises:
            StorageError: If the URL cannot be generated.
        """
        try:
            url = self._client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except ClientError as exc:
            error_code = exc.response.get("Error", {}).get("Code", "Unknown")
            raise StorageError(
                f"Failed to sign URL for '{key}': {error_code}",
                operation="generate_read_url",
                key=key,
            ) from exc
        except BotoCoreError as exc:
            raise StorageError(
                f"Failed to sign URL for '{key}': {exc}",
                operation="generate_read_url",
                key=key,
            ) from exc

        logger.debug("Signed read URL for %s (expires in %ds)", key, expires_in)
        return url
