"""Status polling after completion.

The backend processes a completed object asynchronously. StatusPoller
waits for it to report the terminal "completed" status, honouring
cancellation between polls.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

import httpx

from uploadagent.client.api import APIError
from uploadagent.client.upload.types import PollError

if TYPE_CHECKING:
    from collections.abc import Callable

    from uploadagent.client.api import UploadBackend, UploadStatus
    from uploadagent.client.upload.cancellation import CancellationToken

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_DELAY = 3.0  # seconds
DEFAULT_POLL_INTERVAL = 5.0  # seconds


class PollOutcome(Enum):
    """How polling ended without an error."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StatusPoller:
    """Polls the backend until an object is processed or cancellation."""

    def __init__(
        self,
        backend: UploadBackend,
        cancellation: CancellationToken,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int | None = None,
        on_status: Callable[[UploadStatus], None] | None = None,
    ) -> None:
        """Initialize the poller.

        Args:
            backend: Backend to query.
            cancellation: Flag checked before each poll and during waits.
            initial_delay: Seconds to wait before the first poll.
            interval: Seconds between polls.
            max_attempts: Optional ceiling on the number of polls.
            on_status: Optional callback receiving every status response.
        """
        self._backend = backend
        self._cancellation = cancellation
        self._initial_delay = initial_delay
        self._interval = interval
        self._max_attempts = max_attempts
        self._on_status = on_status

    def poll(self, object_id: str) -> PollOutcome:
        """Wait until the object is processed.

        Args:
            object_id: Backend object id.

        Returns:
            COMPLETED on the terminal status, CANCELLED if cancellation was
            requested first.

        Raises:
            PollError: If a status request failed while not cancelled, or
                max_attempts polls saw no terminal status.
        """
        logger.debug(f"Waiting {self._initial_delay}s before polling {object_id}")
        self._cancellation.wait(self._initial_delay)

        attempts = 0
        while True:
            if self._cancellation.is_signaled():
                logger.info(f"Polling of {object_id} cancelled")
                return PollOutcome.CANCELLED

            attempts += 1
            try:
                status = self._backend.get_status(object_id)
            except (APIError, httpx.HTTPError, KeyError, TypeError, ValueError) as e:
                if self._cancellation.is_signaled():
                    logger.info(f"Status check failed after cancellation: {e}")
                    return PollOutcome.CANCELLED
                raise PollError(f"Failed to check status of {object_id}: {e}") from e

            logger.info(f"Status of {object_id}: {status.status}")
            if self._on_status:
                self._on_status(status)

            if status.is_completed:
                return PollOutcome.COMPLETED

            if self._max_attempts is not None and attempts >= self._max_attempts:
                raise PollError(
                    f"{object_id} not completed after {attempts} status checks"
                )

            self._cancellation.wait(self._interval)
