"""Tests for the backend HTTP client."""

import json

import httpx
import pytest

from uploadagent.client.api import (
    APIError,
    AuthenticationError,
    HTTPClient,
    NotFoundError,
    PartDestination,
    StartUploadResponse,
    UploadedPart,
    UploadStatus,
)
from uploadagent.core.config import BackendConfig

PREFIX = "http://test/api/v2/my/projects/upload"


def make_config(backend_url: str = "http://test", token: str | None = None) -> BackendConfig:
    """Create a BackendConfig for testing."""
    return BackendConfig(backend_url=backend_url, token=token)


class TestDataclasses:
    """Tests for response dataclasses."""

    def test_start_response_from_dict(self) -> None:
        """Should parse object id and destinations."""
        response = StartUploadResponse.from_dict({
            "video": "vid-1",
            "parts": [
                {"part_number": 1, "url": "https://s3/p1"},
                {"part_number": "2", "url": "https://s3/p2"},
            ],
        })

        assert response.object_id == "vid-1"
        assert response.parts == [
            PartDestination(part_number=1, url="https://s3/p1"),
            PartDestination(part_number=2, url="https://s3/p2"),
        ]

    def test_uploaded_part_to_dict(self) -> None:
        """Should serialize to the completion shape."""
        assert UploadedPart(part_number=3, etag="abc").to_dict() == {
            "ETag": "abc",
            "PartNumber": 3,
        }

    def test_status_completed(self) -> None:
        """Only "completed" is terminal."""
        assert UploadStatus.from_dict({"status": "completed", "video": "v"}).is_completed
        assert not UploadStatus.from_dict({"status": "processing", "video": "v"}).is_completed


class TestHTTPClient:
    """Tests for HTTPClient."""

    def test_start_upload(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should post the session token and part count."""
        httpx_mock.add_response(
            method="POST",
            url=f"{PREFIX}/start/",
            json={"video": "vid-1", "parts": [{"part_number": 1, "url": "https://s3/p1"}]},
        )

        with HTTPClient(make_config()) as client:
            response = client.start_upload("upload-1-abc", "movie.mp4", 1, "video/mp4")

        assert response.object_id == "vid-1"
        assert response.parts[0].url == "https://s3/p1"
        body = json.loads(httpx_mock.get_request().content)
        assert body == {
            "upload_id": "upload-1-abc",
            "file_name": "movie.mp4",
            "total_parts": "1",
            "content_type": "video/mp4",
        }

    def test_start_upload_without_content_type(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should omit content_type when unknown."""
        httpx_mock.add_response(
            method="POST",
            url=f"{PREFIX}/start/",
            json={"video": "vid-1", "parts": []},
        )

        with HTTPClient(make_config()) as client:
            client.start_upload("upload-1-abc", "blob", 0)

        body = json.loads(httpx_mock.get_request().content)
        assert "content_type" not in body

    def test_complete_upload(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should post parts in the given order."""
        httpx_mock.add_response(method="POST", url=f"{PREFIX}/vid-1/complete/")

        with HTTPClient(make_config()) as client:
            client.complete_upload(
                "vid-1",
                [UploadedPart(1, "t1"), UploadedPart(2, "t2")],
            )

        body = json.loads(httpx_mock.get_request().content)
        assert body == {
            "parts": [{"ETag": "t1", "PartNumber": 1}, {"ETag": "t2", "PartNumber": 2}]
        }

    def test_cancel_upload(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should post to the cancel endpoint."""
        httpx_mock.add_response(method="POST", url=f"{PREFIX}/vid-1/cancel/")

        with HTTPClient(make_config()) as client:
            client.cancel_upload("vid-1")

        assert httpx_mock.get_request().method == "POST"

    def test_get_status(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should parse the status response."""
        httpx_mock.add_response(
            method="GET",
            url=f"{PREFIX}/vid-1/status/",
            json={"status": "processing", "video": "vid-1"},
        )

        with HTTPClient(make_config()) as client:
            status = client.get_status("vid-1")

        assert status.status == "processing"
        assert status.object_id == "vid-1"

    def test_bearer_token(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should send the configured token."""
        httpx_mock.add_response(method="POST", url=f"{PREFIX}/vid-1/cancel/")

        with HTTPClient(make_config(token="secret")) as client:
            client.cancel_upload("vid-1")

        assert httpx_mock.get_request().headers["Authorization"] == "Bearer secret"

    def test_authentication_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise AuthenticationError on 401."""
        httpx_mock.add_response(url=f"{PREFIX}/vid-1/status/", status_code=401)

        with HTTPClient(make_config()) as client, pytest.raises(AuthenticationError):
            client.get_status("vid-1")

    def test_not_found_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise NotFoundError on 404."""
        httpx_mock.add_response(url=f"{PREFIX}/vid-1/status/", status_code=404)

        with HTTPClient(make_config()) as client, pytest.raises(NotFoundError):
            client.get_status("vid-1")

    def test_server_error_carries_body(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise APIError with the status code and response text."""
        httpx_mock.add_response(
            method="POST",
            url=f"{PREFIX}/vid-1/complete/",
            status_code=500,
            text="InvalidPartOrder",
        )

        with HTTPClient(make_config()) as client:
            with pytest.raises(APIError) as exc_info:
                client.complete_upload("vid-1", [UploadedPart(1, "t1")])

        assert exc_info.value.status_code == 500
        assert "InvalidPartOrder" in str(exc_info.value)

    def test_network_error_propagates(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Transport errors surface as httpx errors."""
        httpx_mock.add_exception(httpx.ConnectError("refused"))

        with HTTPClient(make_config()) as client, pytest.raises(httpx.ConnectError):
            client.get_status("vid-1")
