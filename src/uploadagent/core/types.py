"""Shared types for uploadagent."""

from __future__ import annotations

from enum import Enum


class UploadState(str, Enum):
    """State of an upload session.

    SUCCEEDED, FAILED and CANCELLED are terminal.
    """

    IDLE = "idle"
    CHUNKING = "chunking"
    AWAITING_DESTINATIONS = "awaiting_destinations"
    UPLOADING_PARTS = "uploading_parts"
    COMPLETING = "completing"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transitions can occur."""
        return self in (UploadState.SUCCEEDED, UploadState.FAILED, UploadState.CANCELLED)
