"""Result aggregation and concurrent part upload.

This module provides:
- PartAggregator: fixed-size slot array of uploaded parts
- PartTask: a chunk paired with its destination
- PartUploadPool: bounded pool of worker threads uploading parts
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from uploadagent.client.api import PartDestination, UploadedPart
from uploadagent.core.chunking import ByteSource, Chunk

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from uploadagent.client.upload.types import PartUploaderProtocol

logger = logging.getLogger(__name__)


class PartAggregator:
    """Collects uploaded parts by part number.

    Parts may be recorded in any order and from several threads. The slot
    array is sized to the total part count so that the ordered list can
    only be produced once every slot is filled exactly once.
    """

    def __init__(self, total_parts: int) -> None:
        self._slots: list[UploadedPart | None] = [None] * total_parts
        self._completed = 0
        self._lock = threading.Lock()

    @property
    def total_parts(self) -> int:
        """Get the number of slots."""
        return len(self._slots)

    @property
    def completed(self) -> int:
        """Get the number of recorded parts."""
        with self._lock:
            return self._completed

    def record(self, part: UploadedPart) -> int:
        """Store an uploaded part in its slot.

        Args:
            part: The uploaded part.

        Returns:
            Number of parts recorded so far.

        Raises:
            ValueError: If the part number is out of range or already recorded.
        """
        if not 1 <= part.part_number <= len(self._slots):
            raise ValueError(
                f"Part number {part.part_number} outside 1..{len(self._slots)}"
            )
        with self._lock:
            if self._slots[part.part_number - 1] is not None:
                raise ValueError(f"Part {part.part_number} recorded twice")
            self._slots[part.part_number - 1] = part
            self._completed += 1
            return self._completed

    def uploaded(self) -> list[UploadedPart]:
        """Get the parts recorded so far, ascending by part number."""
        with self._lock:
            return [p for p in self._slots if p is not None]

    def ordered(self) -> list[UploadedPart]:
        """Get the complete part list for the completion call.

        Returns:
            One part per slot, strictly ascending, without gaps.

        Raises:
            ValueError: If some parts are missing.
        """
        with self._lock:
            missing = [i + 1 for i, p in enumerate(self._slots) if p is None]
            if missing:
                raise ValueError(f"Missing parts: {missing}")
            parts = [p for p in self._slots if p is not None]
        return sorted(parts, key=lambda p: p.part_number)


@dataclass(frozen=True)
class PartTask:
    """A chunk to upload to its destination."""

    chunk: Chunk
    destination: PartDestination


class PartUploadPool:
    """Bounded pool of threads uploading parts concurrently.

    At most max_workers parts are in flight at once; chunk bytes are read
    by the worker that uploads them, so memory stays bounded by
    max_workers chunks. Dispatch stops on cancellation or on the first
    failure, and parts already in flight are always allowed to finish.

    Usage:
        pool = PartUploadPool(uploader, source, aggregator, max_workers=4)
        finished = pool.upload_all(tasks, cancel_check=token.is_signaled)
    """

    def __init__(
        self,
        uploader: PartUploaderProtocol,
        source: ByteSource,
        aggregator: PartAggregator,
        max_workers: int = 4,
        on_part_uploaded: Callable[[UploadedPart], None] | None = None,
    ) -> None:
        """Initialize the pool.

        Args:
            uploader: Part uploader shared by all workers.
            source: Source the chunks are read from.
            aggregator: Where uploaded parts are recorded.
            max_workers: Maximum number of parts in flight.
            on_part_uploaded: Optional callback after each recorded part.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._uploader = uploader
        self._source = source
        self._aggregator = aggregator
        self._max_workers = max_workers
        self._on_part_uploaded = on_part_uploaded

        self._task_queue: queue.Queue[PartTask | None] = queue.Queue()
        self._slots = threading.Semaphore(max_workers)
        self._lock = threading.Lock()
        self._error: Exception | None = None
        self._workers: list[threading.Thread] = []

    @property
    def error(self) -> Exception | None:
        """Get the first failure, if any."""
        with self._lock:
            return self._error

    def upload_all(
        self,
        tasks: Iterable[PartTask],
        cancel_check: Callable[[], bool] | None = None,
    ) -> bool:
        """Upload every task, stopping early on cancellation or failure.

        Args:
            tasks: Parts to upload, in dispatch order.
            cancel_check: Returns True when no further parts should start.

        Returns:
            True if every task was dispatched, False if dispatch stopped
            because of cancellation.

        Raises:
            Exception: The first part failure, after in-flight parts drained.
        """
        self._start()
        dispatched_all = True
        try:
            for task in tasks:
                self._slots.acquire()
                if self.error is not None:
                    self._slots.release()
                    dispatched_all = False
                    break
                if cancel_check and cancel_check():
                    self._slots.release()
                    logger.info(
                        f"Cancelled before chunk {task.chunk.index}; "
                        "waiting for in-flight parts"
                    )
                    dispatched_all = False
                    break
                self._task_queue.put(task)
        finally:
            self._stop()

        error = self.error
        if error is not None:
            raise error
        return dispatched_all

    def _start(self) -> None:
        """Start the worker threads."""
        for i in range(self._max_workers):
            thread = threading.Thread(
                target=self._worker_loop,
                name=f"PartUploadPool-{i}",
                daemon=True,
            )
            thread.start()
            self._workers.append(thread)
        logger.debug(f"Part upload pool started with {self._max_workers} workers")

    def _stop(self) -> None:
        """Send poison pills and wait for in-flight parts to finish."""
        for _ in self._workers:
            self._task_queue.put(None)
        for worker in self._workers:
            worker.join()
        self._workers.clear()
        logger.debug("Part upload pool stopped")

    def _worker_loop(self) -> None:
        """Main loop for worker threads."""
        while True:
            task = self._task_queue.get()
            if task is None:
                break
            try:
                self._process_task(task)
            except Exception:
                logger.exception("Unexpected error in part upload worker")
            finally:
                self._slots.release()

    def _process_task(self, task: PartTask) -> None:
        """Upload one part and record the result or the failure."""
        try:
            data = task.chunk.read(self._source)
            part = self._uploader.upload_part(data, task.destination)
            self._aggregator.record(part)
        except Exception as e:
            with self._lock:
                if self._error is None:
                    self._error = e
            logger.error(f"Chunk {task.chunk.index} failed: {e}")
            return
        if self._on_part_uploaded:
            self._on_part_uploaded(part)
