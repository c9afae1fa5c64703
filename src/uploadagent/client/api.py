"""HTTP client for the upload backend API.

This module provides:
- UploadBackend: the four backend operations the coordinator depends on
- HTTPClient: httpx implementation of UploadBackend
- Response dataclasses (StartUploadResponse, UploadStatus, ...)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from uploadagent.core.config import BackendConfig

logger = logging.getLogger(__name__)

# Terminal value reported by the status endpoint
STATUS_COMPLETED = "completed"


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed."""


class NotFoundError(APIError):
    """Resource not found."""


@dataclass(frozen=True)
class PartDestination:
    """Presigned URL for one part."""

    part_number: int
    url: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PartDestination:
        """Create from API response dictionary."""
        return cls(part_number=int(data["part_number"]), url=data["url"])


@dataclass(frozen=True)
class UploadedPart:
    """A part accepted by the object store.

    Attributes:
        part_number: 1-based part number.
        etag: Integrity token returned by the object store (never empty).
    """

    part_number: int
    etag: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the completion request shape."""
        return {"ETag": self.etag, "PartNumber": self.part_number}


@dataclass
class StartUploadResponse:
    """Result of the start call."""

    object_id: str
    parts: list[PartDestination]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StartUploadResponse:
        """Create from API response dictionary."""
        return cls(
            object_id=str(data["video"]),
            parts=[PartDestination.from_dict(p) for p in data["parts"]],
        )


@dataclass
class UploadStatus:
    """Processing status of an uploaded object."""

    status: str
    object_id: str

    @property
    def is_completed(self) -> bool:
        """Check if the backend finished processing."""
        return self.status == STATUS_COMPLETED

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UploadStatus:
        """Create from API response dictionary."""
        return cls(status=str(data["status"]), object_id=str(data.get("video", "")))


class UploadBackend(Protocol):
    """Backend operations consumed by the upload coordinator."""

    def start_upload(
        self,
        upload_id: str,
        file_name: str,
        total_parts: int,
        content_type: str | None = None,
    ) -> StartUploadResponse: ...

    def complete_upload(self, object_id: str, parts: list[UploadedPart]) -> None: ...

    def cancel_upload(self, object_id: str) -> None: ...

    def get_status(self, object_id: str) -> UploadStatus: ...


class HTTPClient:
    """HTTP client for the upload backend API."""

    def __init__(self, config: BackendConfig) -> None:
        """Initialize the client.

        Args:
            config: Backend connection configuration.
        """
        self._config = config
        headers = {}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = httpx.Client(
            base_url=config.backend_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers=headers,
        )

    @property
    def config(self) -> BackendConfig:
        """Get the backend configuration."""
        return self._config

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError("Invalid or expired token", 401)
        if response.status_code == 404:
            raise NotFoundError("Resource not found", 404)
        if response.status_code >= 400:
            detail = response.text or response.reason_phrase
            raise APIError(
                f"{response.status_code} {response.reason_phrase} - {detail}",
                response.status_code,
            )
        return response

    def start_upload(
        self,
        upload_id: str,
        file_name: str,
        total_parts: int,
        content_type: str | None = None,
    ) -> StartUploadResponse:
        """Open a multipart upload and get presigned part URLs.

        Args:
            upload_id: Locally generated session token.
            file_name: Name of the uploaded file.
            total_parts: Number of parts that will be uploaded.
            content_type: Optional MIME type of the file.

        Returns:
            Object id and one destination per part.
        """
        payload: dict[str, str] = {
            "upload_id": upload_id,
            "file_name": file_name,
            "total_parts": str(total_parts),
        }
        if content_type:
            payload["content_type"] = content_type
        response = self._handle_response(
            self._client.post(self._config.endpoint("start"), json=payload)
        )
        return StartUploadResponse.from_dict(response.json())

    def complete_upload(self, object_id: str, parts: list[UploadedPart]) -> None:
        """Stitch uploaded parts into the final object.

        Args:
            object_id: Backend object id from start_upload.
            parts: Uploaded parts, ascending by part number.
        """
        self._handle_response(
            self._client.post(
                self._config.endpoint(object_id, "complete"),
                json={"parts": [p.to_dict() for p in parts]},
            )
        )

    def cancel_upload(self, object_id: str) -> None:
        """Ask the backend to abort a multipart upload.

        Args:
            object_id: Backend object id from start_upload.
        """
        self._handle_response(
            self._client.post(self._config.endpoint(object_id, "cancel"))
        )

    def get_status(self, object_id: str) -> UploadStatus:
        """Get the processing status of an object.

        Args:
            object_id: Backend object id from start_upload.

        Returns:
            Current status.
        """
        response = self._handle_response(
            self._client.get(self._config.endpoint(object_id, "status"))
        )
        return UploadStatus.from_dict(response.json())
