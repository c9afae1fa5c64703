"""Upload coordinator driving a multipart upload session.

This module provides:
- UploadSession: per-run state, discarded when the run ends
- UploadCoordinator: the state machine of a session

The coordinator is the "brain" of an upload:
1. Splits the source into fixed-size chunks
2. Asks the backend for one presigned URL per chunk
3. Uploads the chunks (sequentially, or through a bounded pool)
4. Completes the upload with the parts sorted by part number
5. Polls the backend until processing finished

States:
    IDLE -> CHUNKING -> AWAITING_DESTINATIONS -> UPLOADING_PARTS
         -> COMPLETING -> POLLING -> SUCCEEDED | FAILED | CANCELLED

Cancellation is cooperative: it is checked before each chunk, before
completion and between polls. A chunk already being uploaded always
finishes, so no part is left half-sent.
"""

from __future__ import annotations

import logging
import mimetypes
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from uploadagent.client.api import APIError, PartDestination
from uploadagent.client.upload.cancellation import CancellationToken
from uploadagent.client.upload.part_uploader import PartUploader
from uploadagent.client.upload.poller import PollOutcome, StatusPoller
from uploadagent.client.upload.pool import PartAggregator, PartTask, PartUploadPool
from uploadagent.client.upload.types import (
    CancelNotificationError,
    CompletionError,
    InputError,
    ProgressCallback,
    StartError,
    UploadError,
    UploadProgress,
    UploadResult,
)
from uploadagent.core.chunking import ByteSource, ChunkPlan, open_source, plan_chunks
from uploadagent.core.config import UploadConfig
from uploadagent.core.types import UploadState

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from uploadagent.client.api import UploadBackend, UploadedPart, UploadStatus
    from uploadagent.client.upload.types import PartUploaderProtocol

logger = logging.getLogger(__name__)

# Errors a backend call can raise besides the APIError hierarchy
BACKEND_ERRORS: tuple[type[Exception], ...] = (
    APIError,
    httpx.HTTPError,
    KeyError,
    TypeError,
    ValueError,
)

# Progress milestones (percent)
PROGRESS_CHUNKED = 5.0
PROGRESS_STARTED = 10.0
PROGRESS_PARTS_SPAN = 80.0
PROGRESS_COMPLETING = 90.0
PROGRESS_POLLING = 99.0
PROGRESS_DONE = 100.0


def generate_session_id() -> str:
    """Generate a locally unique session token."""
    return f"upload-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


@dataclass
class UploadSession:
    """State of one upload run.

    Attributes:
        session_id: Locally generated token sent with the start call.
        source: Bytes being uploaded.
        file_name: Name sent to the backend.
        content_type: Optional MIME type sent to the backend.
        plan: Chunks of the source.
        cancellation: Flag shared with whoever may cancel the run.
        aggregator: Uploaded parts by part number.
        object_id: Backend handle, set once the start call returned.
        destinations: Presigned URL per part number.
    """

    session_id: str
    source: ByteSource
    file_name: str
    content_type: str | None
    plan: ChunkPlan
    cancellation: CancellationToken
    aggregator: PartAggregator
    object_id: str | None = None
    destinations: dict[int, PartDestination] = field(default_factory=dict)

    @property
    def total_parts(self) -> int:
        """Get the number of parts."""
        return len(self.plan)

    def tasks(self) -> Iterator[PartTask]:
        """Pair each chunk with its destination, in index order."""
        for chunk in self.plan:
            yield PartTask(chunk=chunk, destination=self.destinations[chunk.index])


class UploadCoordinator:
    """Drives one multipart upload session at a time.

    Usage:
        with HTTPClient(BackendConfig("https://api.example.com")) as backend:
            coordinator = UploadCoordinator(backend)
            result = coordinator.run(Path("video.mp4"))

        # From another thread (e.g. a signal handler):
        coordinator.cancel()
    """

    def __init__(
        self,
        backend: UploadBackend,
        part_uploader: PartUploaderProtocol | None = None,
        config: UploadConfig | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            backend: Backend issuing part URLs and finalizing uploads.
            part_uploader: Uploader for single parts (created from config if omitted).
            config: Session tunables.
            progress_callback: Optional callback for progress updates.
        """
        self._backend = backend
        self._config = config or UploadConfig()
        self._owns_uploader = part_uploader is None
        self._uploader: PartUploaderProtocol = part_uploader or PartUploader(
            max_retries=self._config.max_retries,
            retry_backoff=self._config.retry_backoff,
        )
        self._progress_callback = progress_callback

        self._state = UploadState.IDLE
        self._lock = threading.Lock()
        self._cancellation: CancellationToken | None = None
        self._cancel_thread: threading.Thread | None = None

    @property
    def state(self) -> UploadState:
        """Get current session state."""
        return self._state

    def close(self) -> None:
        """Close the part uploader if this coordinator created it."""
        if self._owns_uploader and isinstance(self._uploader, PartUploader):
            self._uploader.close()

    def __enter__(self) -> UploadCoordinator:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def cancel(self) -> bool:
        """Request cancellation of the running session.

        Returns:
            True if cancellation was requested, False if nothing is running
            or it was already requested.
        """
        with self._lock:
            token = self._cancellation
        if token is None or self._state.is_terminal:
            return False
        return token.signal()

    def join_cancel_notification(self, timeout: float | None = None) -> bool:
        """Wait for the background cancel notification to the backend.

        Returns:
            True if no notification is pending.
        """
        thread = self._cancel_thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def run(
        self,
        source: ByteSource | bytes | Path | str | None,
        file_name: str | None = None,
        content_type: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> UploadResult:
        """Upload a source and wait for the backend to process it.

        Args:
            source: Bytes, a file path, or a ByteSource.
            file_name: Name sent to the backend (defaults to the file name).
            content_type: MIME type (guessed from the name if omitted).
            cancellation: Flag to observe (a fresh one if omitted).

        Returns:
            UploadResult in state SUCCEEDED or CANCELLED.

        Raises:
            InputError: If there is nothing to upload.
            StartError: If the backend refused to start the upload.
            ChunkUploadError: If a part failed after all retries.
            CompletionError: If the backend refused to complete the upload.
            PollError: If status polling failed.
        """
        token = cancellation if cancellation is not None else CancellationToken()
        with self._lock:
            if self._state != UploadState.IDLE and not self._state.is_terminal:
                raise RuntimeError(f"Upload already running ({self._state.value})")
            self._state = UploadState.CHUNKING
            self._cancellation = token
            self._cancel_thread = None

        session: UploadSession | None = None
        try:
            session = self._prepare(source, file_name, content_type, token)
            return self._drive(session)
        except Exception as e:
            if session is not None and token.is_signaled() and isinstance(e, UploadError):
                logger.info(f"Ignoring error after cancellation: {e}")
                return self._finish_cancelled(session)
            self._set_state(UploadState.FAILED, 0.0, "Upload failed", session)
            logger.error(f"Upload failed: {e}")
            raise

    def _prepare(
        self,
        source: ByteSource | bytes | Path | str | None,
        file_name: str | None,
        content_type: str | None,
        token: CancellationToken,
    ) -> UploadSession:
        """Validate the input and split it into chunks (CHUNKING)."""
        self._set_state(UploadState.CHUNKING, 0.0, "Preparing upload...")
        if source is None:
            raise InputError("No input selected")
        try:
            byte_source = open_source(source)
        except (FileNotFoundError, TypeError) as e:
            raise InputError(str(e)) from e

        name = file_name or getattr(byte_source, "name", None)
        if not name:
            raise InputError("A file name is required for in-memory sources")
        if byte_source.size == 0:
            raise InputError(f"{name} is empty, nothing to upload")
        if content_type is None:
            content_type = mimetypes.guess_type(name)[0]

        plan = plan_chunks(byte_source.size, self._config.chunk_size)
        session = UploadSession(
            session_id=generate_session_id(),
            source=byte_source,
            file_name=name,
            content_type=content_type,
            plan=plan,
            cancellation=token,
            aggregator=PartAggregator(len(plan)),
        )
        logger.info(
            f"Uploading {name} ({byte_source.size} bytes) in {len(plan)} parts "
            f"as {session.session_id}"
        )
        self._set_state(
            UploadState.CHUNKING,
            PROGRESS_CHUNKED,
            f"Chunking file into {len(plan)} parts...",
            session,
        )
        return session

    def _drive(self, session: UploadSession) -> UploadResult:
        """Run the session from the start call to a terminal state."""
        token = session.cancellation

        self._set_state(
            UploadState.AWAITING_DESTINATIONS, PROGRESS_CHUNKED, "Requesting part URLs...", session
        )
        self._start_session(session)
        self._set_state(
            UploadState.AWAITING_DESTINATIONS,
            PROGRESS_STARTED,
            f"Received {len(session.destinations)} presigned URLs",
            session,
        )

        if token.is_signaled():
            return self._finish_cancelled(session)

        self._set_state(UploadState.UPLOADING_PARTS, PROGRESS_STARTED, "Uploading parts...", session)
        if self._config.max_workers > 1:
            finished = self._upload_concurrent(session)
        else:
            finished = self._upload_sequential(session)

        if not finished or token.is_signaled():
            return self._finish_cancelled(session)

        parts = session.aggregator.ordered()
        self._complete(session, parts)

        self._set_state(UploadState.POLLING, PROGRESS_POLLING, "Waiting for processing...", session)
        assert session.object_id is not None
        poller = StatusPoller(
            self._backend,
            token,
            initial_delay=self._config.poll_initial_delay,
            interval=self._config.poll_interval,
            max_attempts=self._config.max_poll_attempts,
            on_status=lambda status: self._on_status(session, status),
        )
        if poller.poll(session.object_id) is PollOutcome.CANCELLED:
            return self._finish_cancelled(session)

        self._set_state(
            UploadState.SUCCEEDED, PROGRESS_DONE, "Upload completed successfully!", session
        )
        logger.info(f"Upload of {session.file_name} completed as {session.object_id}")
        return self._result(session, UploadState.SUCCEEDED, parts)

    def _start_session(self, session: UploadSession) -> None:
        """Open the upload on the backend and check its destinations."""
        try:
            response = self._backend.start_upload(
                upload_id=session.session_id,
                file_name=session.file_name,
                total_parts=session.total_parts,
                content_type=session.content_type,
            )
        except BACKEND_ERRORS as e:
            raise StartError(f"Failed to start upload: {e}") from e

        destinations = {p.part_number: p for p in response.parts}
        expected = set(range(1, session.total_parts + 1))
        if len(response.parts) != session.total_parts or set(destinations) != expected:
            raise StartError(
                f"Backend returned part numbers {sorted(destinations)} "
                f"for {session.total_parts} parts"
            )

        session.object_id = response.object_id
        session.destinations = destinations
        logger.info(f"Upload started: object {response.object_id}")

    def _upload_sequential(self, session: UploadSession) -> bool:
        """Upload chunks one at a time.

        Returns:
            True if every chunk was uploaded, False if cancelled.
        """
        for task in session.tasks():
            if session.cancellation.is_signaled():
                logger.info(
                    f"Upload cancelled at chunk {task.chunk.index}/{session.total_parts}"
                )
                return False

            self._set_state(
                UploadState.UPLOADING_PARTS,
                self._parts_percent(session),
                f"Uploading chunk {task.chunk.index}/{session.total_parts}...",
                session,
            )
            part = self._uploader.upload_part(task.chunk.read(session.source), task.destination)
            self._on_part_uploaded(session, part)
        return True

    def _upload_concurrent(self, session: UploadSession) -> bool:
        """Upload chunks through a bounded pool.

        Returns:
            True if every chunk was uploaded, False if cancelled.
        """
        pool = PartUploadPool(
            self._uploader,
            session.source,
            session.aggregator,
            max_workers=self._config.max_workers,
            on_part_uploaded=lambda part: self._report_part(session, part),
        )
        return pool.upload_all(session.tasks(), cancel_check=session.cancellation.is_signaled)

    def _on_part_uploaded(self, session: UploadSession, part: UploadedPart) -> None:
        """Record a part uploaded by the sequential loop."""
        session.aggregator.record(part)
        self._report_part(session, part)

    def _report_part(self, session: UploadSession, part: UploadedPart) -> None:
        """Report progress after a part was recorded."""
        logger.debug(f"Chunk {part.part_number}/{session.total_parts} uploaded")
        self._set_state(
            UploadState.UPLOADING_PARTS,
            self._parts_percent(session),
            f"Uploaded chunk {part.part_number}/{session.total_parts}",
            session,
        )

    def _complete(self, session: UploadSession, parts: list[UploadedPart]) -> None:
        """Ask the backend to stitch the parts together (COMPLETING)."""
        assert session.object_id is not None
        self._set_state(UploadState.COMPLETING, PROGRESS_COMPLETING, "Completing upload...", session)
        logger.debug(
            "Completing upload with parts: "
            + ", ".join(f"{p.part_number}:{p.etag[:20]}" for p in parts)
        )
        try:
            self._backend.complete_upload(session.object_id, parts)
        except BACKEND_ERRORS as e:
            raise CompletionError(
                f"Failed to complete upload {session.object_id}: {e}"
            ) from e

    def _on_status(self, session: UploadSession, status: UploadStatus) -> None:
        """Report each polled status."""
        if not status.is_completed:
            self._set_state(
                UploadState.POLLING, PROGRESS_POLLING, f"Status: {status.status}", session
            )

    def _finish_cancelled(self, session: UploadSession) -> UploadResult:
        """End the session as CANCELLED and notify the backend."""
        self._set_state(UploadState.CANCELLED, self._parts_percent(session), "Upload cancelled", session)
        logger.info(
            f"Upload of {session.file_name} cancelled after "
            f"{session.aggregator.completed}/{session.total_parts} parts"
        )
        if session.object_id is not None:
            self._notify_cancel(session.object_id)
        return self._result(session, UploadState.CANCELLED, session.aggregator.uploaded())

    def _notify_cancel(self, object_id: str) -> None:
        """Tell the backend about the cancellation on a background thread."""

        def notify() -> None:
            try:
                self._backend.cancel_upload(object_id)
            except Exception as e:
                error = CancelNotificationError(f"Failed to cancel upload {object_id}: {e}")
                logger.warning(str(error))
            else:
                logger.info(f"Backend notified of cancelled upload {object_id}")

        thread = threading.Thread(target=notify, name="CancelNotifier", daemon=True)
        self._cancel_thread = thread
        thread.start()

    def _result(
        self,
        session: UploadSession,
        state: UploadState,
        parts: list[UploadedPart],
    ) -> UploadResult:
        return UploadResult(
            state=state,
            session_id=session.session_id,
            object_id=session.object_id,
            parts=parts,
            total_parts=session.total_parts,
            size=session.source.size,
        )

    def _parts_percent(self, session: UploadSession | None) -> float:
        if session is None or session.total_parts == 0:
            return 0.0
        done = session.aggregator.completed
        return PROGRESS_STARTED + done * PROGRESS_PARTS_SPAN / session.total_parts

    def _set_state(
        self,
        state: UploadState,
        percent: float,
        message: str,
        session: UploadSession | None = None,
    ) -> None:
        """Move to a state and report progress."""
        if state != self._state:
            logger.debug(f"Upload state: {self._state.value} -> {state.value}")
        self._state = state
        if self._progress_callback:
            self._progress_callback(UploadProgress(
                state=state,
                percent=percent,
                message=message,
                parts_uploaded=session.aggregator.completed if session else 0,
                total_parts=session.total_parts if session else 0,
            ))
