"""Tests for status polling."""

from unittest.mock import MagicMock

import httpx
import pytest

from uploadagent.client.api import APIError, HTTPClient, UploadStatus
from uploadagent.client.upload.cancellation import CancellationToken
from uploadagent.client.upload.poller import PollOutcome, StatusPoller
from uploadagent.client.upload.types import PollError
from uploadagent.core.config import BackendConfig


def status(value: str) -> UploadStatus:
    """Build a status response."""
    return UploadStatus(status=value, object_id="vid-1")


def make_poller(
    backend: MagicMock,
    token: CancellationToken | None = None,
    **kwargs: object,
) -> StatusPoller:
    """Create a poller without delays."""
    return StatusPoller(
        backend,
        token or CancellationToken(),
        initial_delay=0.0,
        interval=0.0,
        **kwargs,  # type: ignore[arg-type]
    )


class TestStatusPoller:
    """Tests for StatusPoller."""

    def test_completed_immediately(self) -> None:
        """Should stop at the first completed status."""
        backend = MagicMock()
        backend.get_status.return_value = status("completed")

        assert make_poller(backend).poll("vid-1") is PollOutcome.COMPLETED
        backend.get_status.assert_called_once_with("vid-1")

    def test_polls_until_completed(self) -> None:
        """Non-terminal statuses keep polling."""
        backend = MagicMock()
        backend.get_status.side_effect = [
            status("processing"),
            status("queued"),
            status("completed"),
        ]
        seen: list[str] = []

        outcome = make_poller(backend, on_status=lambda s: seen.append(s.status)).poll("vid-1")

        assert outcome is PollOutcome.COMPLETED
        assert seen == ["processing", "queued", "completed"]

    def test_cancelled_before_first_poll(self) -> None:
        """No request is made once cancelled."""
        backend = MagicMock()
        token = CancellationToken()
        token.signal()

        assert make_poller(backend, token).poll("vid-1") is PollOutcome.CANCELLED
        backend.get_status.assert_not_called()

    def test_cancelled_between_polls(self) -> None:
        """Cancellation during processing stops further polls."""
        token = CancellationToken()
        backend = MagicMock()

        def get_status(object_id: str) -> UploadStatus:
            token.signal()
            return status("processing")

        backend.get_status.side_effect = get_status

        assert make_poller(backend, token).poll("vid-1") is PollOutcome.CANCELLED
        assert backend.get_status.call_count == 1

    def test_request_failure(self) -> None:
        """A failed request while not cancelled raises PollError."""
        backend = MagicMock()
        backend.get_status.side_effect = APIError("500 Internal Server Error", 500)

        with pytest.raises(PollError) as exc_info:
            make_poller(backend).poll("vid-1")

        assert isinstance(exc_info.value.__cause__, APIError)

    def test_network_failure(self) -> None:
        """Transport errors also raise PollError."""
        backend = MagicMock()
        backend.get_status.side_effect = httpx.ConnectError("down")

        with pytest.raises(PollError):
            make_poller(backend).poll("vid-1")

    def test_malformed_status_body(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A status body that is not a JSON object raises PollError."""
        httpx_mock.add_response(
            url="http://test/api/v2/my/projects/upload/vid-1/status/", json=[]
        )

        with HTTPClient(BackendConfig(backend_url="http://test")) as backend:
            with pytest.raises(PollError) as exc_info:
                make_poller(backend).poll("vid-1")

        assert isinstance(exc_info.value.__cause__, TypeError)

    def test_failure_after_cancellation_is_suppressed(self) -> None:
        """A failed request after cancellation ends as CANCELLED."""
        token = CancellationToken()
        backend = MagicMock()

        def get_status(object_id: str) -> UploadStatus:
            token.signal()
            raise APIError("gone", 500)

        backend.get_status.side_effect = get_status

        assert make_poller(backend, token).poll("vid-1") is PollOutcome.CANCELLED

    def test_max_attempts(self) -> None:
        """Should give up after max_attempts polls."""
        backend = MagicMock()
        backend.get_status.return_value = status("processing")

        with pytest.raises(PollError, match="2 status checks"):
            make_poller(backend, max_attempts=2).poll("vid-1")

        assert backend.get_status.call_count == 2

    def test_max_attempts_does_not_wait_after_last_check(self) -> None:
        """The attempt cap is enforced right after the last status."""
        waits: list[float] = []

        class RecordingToken(CancellationToken):
            def wait(self, timeout: float) -> bool:
                waits.append(timeout)
                return super().wait(0)

        backend = MagicMock()
        backend.get_status.return_value = status("processing")
        poller = StatusPoller(
            backend, RecordingToken(), initial_delay=3.0, interval=5.0, max_attempts=2
        )

        with pytest.raises(PollError):
            poller.poll("vid-1")

        assert waits == [3.0, 5.0]

    def test_initial_delay_interrupted_by_cancel(self) -> None:
        """A long initial delay ends early when already cancelled."""
        backend = MagicMock()
        token = CancellationToken()
        token.signal()
        poller = StatusPoller(backend, token, initial_delay=60.0, interval=60.0)

        assert poller.poll("vid-1") is PollOutcome.CANCELLED
