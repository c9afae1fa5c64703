"""Upload of a single part to a presigned URL.

This module provides:
- PartUploader: PUTs one chunk and extracts its ETag, with bounded retry
- normalize_etag: strips quotes and whitespace from an ETag header value
"""

from __future__ import annotations

import logging

import httpx

from uploadagent.client.api import PartDestination, UploadedPart
from uploadagent.client.upload.retry import DEFAULT_MAX_RETRIES, retry_with_backoff
from uploadagent.client.upload.types import ChunkUploadError, MissingIntegrityTokenError

logger = logging.getLogger(__name__)

# Characters of the destination URL included in log messages
URL_LOG_PREFIX = 100

QUOTE_CHARS = "\"'"


def normalize_etag(value: str | None) -> str:
    """Strip one pair of surrounding quotes and whitespace from an ETag.

    Args:
        value: Raw header value, possibly None.

    Returns:
        The bare token, or "" if nothing is left.
    """
    if not value:
        return ""
    token = value.strip()
    if token[:1] in QUOTE_CHARS:
        token = token[1:]
    if token[-1:] in QUOTE_CHARS:
        token = token[:-1]
    return token.strip()


class PartUploader:
    """Uploads chunks to presigned object-store URLs.

    Presigned URLs carry their own credentials, so this uses an httpx
    client separate from the backend's and sends no Content-Type: many
    S3-compatible stores reject a type that was not part of the signature.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff: float = 0.0,
        timeout: float = 120.0,
    ) -> None:
        """Initialize the uploader.

        Args:
            client: Optional httpx client (one is created if omitted).
            max_retries: Extra attempts per part after the first failure.
            retry_backoff: Initial delay between attempts (0 = immediate).
            timeout: Request timeout in seconds for the created client.
        """
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff

    def close(self) -> None:
        """Close the HTTP client if this uploader created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> PartUploader:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def upload_part(self, data: bytes, destination: PartDestination) -> UploadedPart:
        """Upload one chunk, retrying up to max_retries extra times.

        Args:
            data: Raw bytes of the chunk.
            destination: Presigned URL for the part.

        Returns:
            The uploaded part with its ETag.

        Raises:
            ChunkUploadError: If every attempt failed.
            MissingIntegrityTokenError: If the last attempt returned no ETag.
        """
        return retry_with_backoff(
            lambda: self._put(data, destination),
            max_retries=self._max_retries,
            initial_backoff=self._retry_backoff,
            retryable_exceptions=(ChunkUploadError,),
            description=f"Chunk {destination.part_number}",
        )

    def _put(self, data: bytes, destination: PartDestination) -> UploadedPart:
        """Make a single upload attempt."""
        part_number = destination.part_number
        url_prefix = destination.url[:URL_LOG_PREFIX]
        logger.debug(f"Uploading chunk {part_number} ({len(data)} bytes) to: {url_prefix}...")

        try:
            response = self._client.put(destination.url, content=data)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Chunk {part_number} request error: {e!r}")
            raise ChunkUploadError(part_number, f"request error: {e}") from e

        headers = dict(response.headers)
        logger.debug(
            f"Chunk {part_number} response: status={response.status_code} "
            f"url={url_prefix} headers={headers}"
        )

        if not response.is_success:
            body = response.text
            logger.error(
                f"Chunk {part_number} upload failed: {response.status_code} "
                f"{response.reason_phrase} - {body}"
            )
            message = f"{response.status_code} {response.reason_phrase}"
            if body:
                message += f" - {body}"
            raise ChunkUploadError(
                part_number, message, status_code=response.status_code, body=body
            )

        etag = normalize_etag(response.headers.get("etag"))
        if not etag:
            logger.error(
                f"Failed to extract ETag from chunk {part_number}: "
                f"status={response.status_code} headers={headers}"
            )
            raise MissingIntegrityTokenError(part_number, response.status_code, headers)

        logger.debug(f"Chunk {part_number} uploaded, ETag: {etag}")
        return UploadedPart(part_number=part_number, etag=etag)
