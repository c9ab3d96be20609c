"""Google Cloud Storage blob backend for uploaded documents."""
from __future__ import annotations

import logging

from google.api_core import exceptions as gexc
from google.cloud import storage
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

logger = logging.getLogger(__name__)

# Blob names are unique per upload, so re-sending the same bytes is safe.
_TRANSIENT = (
    gexc.ServiceUnavailable,
    gexc.TooManyRequests,
    gexc.InternalServerError,
    gexc.GatewayTimeout,
    ConnectionError,
)


class GCSService:
    """Wrapper around google-cloud-storage for simple operations."""

    def __init__(self, bucket_name: str, prefix: str = "uploads") -> None:
        self.bucket_name = bucket_name
        self.prefix = prefix.strip("/")
        self._client = storage.Client()
        self._bucket = self._client.bucket(bucket_name)

    def _blob_path(self, name: str) -> str:
        return f"{self.prefix}/{name}" if self.prefix else name

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_random_exponential(multiplier=0.2, max=5),
        retry=retry_if_exception_type(_TRANSIENT),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    def upload_bytes(self, name: str, data: bytes, content_type: str) -> str:
        blob = self._bucket.blob(self._blob_path(name))
        blob.upload_from_string(data, content_type=content_type)
        return f"gs://{self.bucket_name}/{self._blob_path(name)}"

    def delete_blob(self, name: str) -> None:
        blob = self._bucket.blob(self._blob_path(name))
        blob.delete(if_generation_match=None)  # ignore preconditions

    def blob_exists(self, name: str) -> bool:
        blob = self._bucket.blob(self._blob_path(name))
        return blob.exists()
