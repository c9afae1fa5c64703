"""Multipart upload package.

This package provides the client side of a presigned multipart upload:
- UploadCoordinator: state machine driving a session end to end
- PartUploader: PUT of a single part with bounded retry
- PartAggregator / PartUploadPool: result collection and concurrent upload
- StatusPoller: waits for server-side processing
- CancellationToken: cooperative cancellation flag

Usage:
    from uploadagent.client.upload import UploadCoordinator

    with HTTPClient(config) as backend, UploadCoordinator(backend) as coordinator:
        result = coordinator.run(Path("video.mp4"))
"""

from uploadagent.client.upload.cancellation import CancellationToken
from uploadagent.client.upload.coordinator import (
    UploadCoordinator,
    UploadSession,
    generate_session_id,
)
from uploadagent.client.upload.part_uploader import PartUploader, normalize_etag
from uploadagent.client.upload.poller import PollOutcome, StatusPoller
from uploadagent.client.upload.pool import PartAggregator, PartTask, PartUploadPool
from uploadagent.client.upload.retry import DEFAULT_MAX_RETRIES, retry_with_backoff
from uploadagent.client.upload.types import (
    CancelNotificationError,
    ChunkUploadError,
    CompletionError,
    InputError,
    MissingIntegrityTokenError,
    PartUploaderProtocol,
    PollError,
    ProgressCallback,
    StartError,
    UploadError,
    UploadProgress,
    UploadResult,
)

__all__ = [
    # Coordinator
    "UploadCoordinator",
    "UploadSession",
    "generate_session_id",
    # Parts
    "PartAggregator",
    "PartTask",
    "PartUploadPool",
    "PartUploader",
    "PartUploaderProtocol",
    "normalize_etag",
    # Cancellation and polling
    "CancellationToken",
    "PollOutcome",
    "StatusPoller",
    # Retry
    "DEFAULT_MAX_RETRIES",
    "retry_with_backoff",
    # Types
    "CancelNotificationError",
    "ChunkUploadError",
    "CompletionError",
    "InputError",
    "MissingIntegrityTokenError",
    "PollError",
    "ProgressCallback",
    "StartError",
    "UploadError",
    "UploadProgress",
    "UploadResult",
]
