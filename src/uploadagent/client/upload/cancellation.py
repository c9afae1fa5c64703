"""Cooperative cancellation for upload sessions."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class CancellationToken:
    """Monotonic, thread-safe cancellation flag.

    The flag is shared by reference between the coordinator and whatever
    triggers cancellation (a signal handler, a UI action). It never
    interrupts a call in progress; the coordinator only reads it between
    chunks and between polls.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()

    def signal(self) -> bool:
        """Request cancellation.

        Returns:
            True on the first call, False if already signaled.
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
        logger.info("Cancellation requested")
        return True

    def is_signaled(self) -> bool:
        """Check if cancellation was requested."""
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep for up to timeout seconds, waking early on cancellation.

        Returns:
            True if cancellation was requested.
        """
        if timeout <= 0:
            return self._event.is_set()
        return self._event.wait(timeout)
