"""Shared types and dataclasses for upload sessions.

This module provides:
- UploadError and its subclasses, one per failing phase
- UploadProgress: progress snapshot passed to callbacks
- UploadResult: outcome of a finished session
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from uploadagent.client.api import PartDestination, UploadedPart
from uploadagent.core.types import UploadState


class UploadError(Exception):
    """Base exception for upload errors."""


class InputError(UploadError):
    """Nothing to upload (no source, or an empty one)."""


class StartError(UploadError):
    """The backend could not open the multipart upload."""


class ChunkUploadError(UploadError):
    """A part could not be stored by the object store.

    Attributes:
        part_number: Part that failed.
        status_code: HTTP status of the last attempt (None for network errors).
        body: Response body of the last attempt, for diagnostics.
    """

    def __init__(
        self,
        part_number: int,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        self.part_number = part_number
        self.status_code = status_code
        self.body = body
        super().__init__(f"Failed to upload chunk {part_number}: {message}")


class MissingIntegrityTokenError(ChunkUploadError):
    """The object store accepted a part without returning an ETag."""

    def __init__(self, part_number: int, status_code: int, headers: dict[str, str]) -> None:
        self.headers = headers
        super().__init__(
            part_number,
            f"no ETag in response (status {status_code}, headers {headers})",
            status_code=status_code,
        )


class CompletionError(UploadError):
    """The backend rejected the completion call.

    Parts are uploaded but the object is not finalized; this needs to be
    reconciled out of band.
    """


class PollError(UploadError):
    """Status polling failed before a terminal status was seen."""


class CancelNotificationError(UploadError):
    """The backend could not be told about a cancellation. Logged only."""


@dataclass
class UploadProgress:
    """Progress information for an upload session."""

    state: UploadState
    percent: float
    message: str
    parts_uploaded: int = 0
    total_parts: int = 0


# Type alias for progress callback
ProgressCallback = Callable[[UploadProgress], None]


@dataclass
class UploadResult:
    """Result of an upload session that did not fail.

    Attributes:
        state: SUCCEEDED or CANCELLED.
        session_id: Locally generated session token.
        object_id: Backend object id (None if cancelled before start returned).
        parts: Uploaded parts, ascending by part number.
        total_parts: Number of parts the file was split into.
        size: Size of the source in bytes.
    """

    state: UploadState
    session_id: str
    object_id: str | None
    parts: list[UploadedPart] = field(default_factory=list)
    total_parts: int = 0
    size: int = 0

    @property
    def succeeded(self) -> bool:
        """Check if the object was stored and processed."""
        return self.state == UploadState.SUCCEEDED

    @property
    def cancelled(self) -> bool:
        """Check if the session was cancelled."""
        return self.state == UploadState.CANCELLED


class PartUploaderProtocol(Protocol):
    """Uploads one chunk to one destination and returns its ETag."""

    def upload_part(self, data: bytes, destination: PartDestination) -> UploadedPart: ...
