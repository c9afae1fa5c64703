"""Configuration classes for uploadagent.

This module defines the backend connection settings and the tunables of
an upload session.
"""

from __future__ import annotations

from dataclasses import dataclass

from uploadagent.core.chunking import CHUNK_SIZE

DEFAULT_API_PREFIX = "/api/v2/my/projects/upload"


@dataclass
class BackendConfig:
    """Configuration for connecting to the upload backend.

    Attributes:
        backend_url: Base URL of the backend (e.g., "https://api.example.com").
        token: Optional bearer token sent with every backend request.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
        api_prefix: Path under which the upload endpoints live.
    """

    backend_url: str
    token: str | None = None
    timeout: float = 30.0
    verify_ssl: bool = True
    api_prefix: str = DEFAULT_API_PREFIX

    def __post_init__(self) -> None:
        """Normalize URL and prefix."""
        self.backend_url = self.backend_url.rstrip("/")
        self.api_prefix = "/" + self.api_prefix.strip("/")

    def endpoint(self, *segments: str) -> str:
        """Build an endpoint path below the API prefix.

        Returns:
            Path with a trailing slash, e.g. "/api/v2/my/projects/upload/start/".
        """
        path = "/".join([self.api_prefix.rstrip("/"), *segments])
        return path + "/"


@dataclass
class UploadConfig:
    """Tunables of an upload session.

    Attributes:
        chunk_size: Size of each part in bytes (last part may be smaller).
        max_retries: Extra attempts per part after the first failure.
        retry_backoff: Initial delay between part attempts (0 = immediate).
        max_workers: Parts uploaded concurrently (1 = strictly sequential).
        poll_initial_delay: Seconds to wait after completion before polling.
        poll_interval: Seconds between status polls.
        max_poll_attempts: Optional ceiling on status polls (None = unbounded).
    """

    chunk_size: int = CHUNK_SIZE
    max_retries: int = 2
    retry_backoff: float = 0.0
    max_workers: int = 1
    poll_initial_delay: float = 3.0
    poll_interval: float = 5.0
    max_poll_attempts: int | None = None

    def __post_init__(self) -> None:
        """Validate values."""
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1 byte")
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.retry_backoff < 0:
            raise ValueError("retry_backoff must not be negative")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.poll_initial_delay < 0 or self.poll_interval < 0:
            raise ValueError("poll delays must not be negative")
        if self.max_poll_attempts is not None and self.max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be at least 1")
