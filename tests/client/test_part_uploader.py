"""Tests for single-part upload."""

import httpx
import pytest

from uploadagent.client.api import PartDestination, UploadedPart
from uploadagent.client.upload.part_uploader import PartUploader, normalize_etag
from uploadagent.client.upload.types import ChunkUploadError, MissingIntegrityTokenError

PART_URL = "https://s3.example.com/bucket/video?partNumber=2&uploadId=abc"
DESTINATION = PartDestination(part_number=2, url=PART_URL)


class TestNormalizeEtag:
    """Tests for ETag normalization."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ('"abc123"', "abc123"),
            ("abc123", "abc123"),
            ("'abc123'", "abc123"),
            ('  "abc123"  ', "abc123"),
            ('" abc123 "', "abc123"),
            ("", ""),
            (None, ""),
            ('""', ""),
        ],
    )
    def test_normalize(self, raw: str | None, expected: str) -> None:
        """Surrounding quotes and whitespace are removed."""
        assert normalize_etag(raw) == expected


class TestPartUploader:
    """Tests for PartUploader."""

    def test_upload_returns_etag(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should PUT the bytes and return the unquoted ETag."""
        httpx_mock.add_response(method="PUT", url=PART_URL, headers={"ETag": '"abc123"'})

        with PartUploader() as uploader:
            part = uploader.upload_part(b"chunk-bytes", DESTINATION)

        assert part == UploadedPart(part_number=2, etag="abc123")
        request = httpx_mock.get_request()
        assert request.content == b"chunk-bytes"

    def test_no_content_type_sent(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Presigned URLs get no explicit Content-Type."""
        httpx_mock.add_response(method="PUT", url=PART_URL, headers={"ETag": "x"})

        with PartUploader() as uploader:
            uploader.upload_part(b"data", DESTINATION)

        assert "content-type" not in httpx_mock.get_request().headers

    def test_etag_header_case_insensitive(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should find the ETag whatever the header case."""
        httpx_mock.add_response(method="PUT", url=PART_URL, headers={"etag": '"lower"'})

        with PartUploader() as uploader:
            part = uploader.upload_part(b"data", DESTINATION)

        assert part.etag == "lower"

    def test_missing_etag(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A 200 without ETag is a failure."""
        httpx_mock.add_response(method="PUT", url=PART_URL)

        with PartUploader(max_retries=0) as uploader:
            with pytest.raises(MissingIntegrityTokenError) as exc_info:
                uploader.upload_part(b"data", DESTINATION)

        assert exc_info.value.part_number == 2
        assert exc_info.value.status_code == 200

    def test_empty_etag(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A quoted empty ETag is a failure."""
        httpx_mock.add_response(method="PUT", url=PART_URL, headers={"ETag": '""'})

        with PartUploader(max_retries=0) as uploader, pytest.raises(MissingIntegrityTokenError):
            uploader.upload_part(b"data", DESTINATION)

    def test_error_status_carries_body(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Non-2xx raises ChunkUploadError with status and body."""
        httpx_mock.add_response(
            method="PUT", url=PART_URL, status_code=403, text="SignatureDoesNotMatch"
        )

        with PartUploader(max_retries=0) as uploader:
            with pytest.raises(ChunkUploadError) as exc_info:
                uploader.upload_part(b"data", DESTINATION)

        error = exc_info.value
        assert error.part_number == 2
        assert error.status_code == 403
        assert error.body == "SignatureDoesNotMatch"
        assert "chunk 2" in str(error)
        assert "SignatureDoesNotMatch" in str(error)

    def test_succeeds_after_failures(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """N < max_retries failures then success: exactly N + 1 attempts."""
        httpx_mock.add_response(method="PUT", url=PART_URL, status_code=500)
        httpx_mock.add_response(method="PUT", url=PART_URL, status_code=503)
        httpx_mock.add_response(method="PUT", url=PART_URL, headers={"ETag": '"ok"'})

        with PartUploader(max_retries=3) as uploader:
            part = uploader.upload_part(b"data", DESTINATION)

        assert part.etag == "ok"
        requests = httpx_mock.get_requests()
        assert len(requests) == 3
        assert all(r.content == b"data" for r in requests)

    def test_retry_exhaustion(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Always failing: exactly max_retries + 1 attempts, last error raised."""
        for _ in range(3):
            httpx_mock.add_response(method="PUT", url=PART_URL, status_code=500)

        with PartUploader(max_retries=2) as uploader:
            with pytest.raises(ChunkUploadError) as exc_info:
                uploader.upload_part(b"data", DESTINATION)

        assert exc_info.value.part_number == 2
        assert exc_info.value.status_code == 500
        assert len(httpx_mock.get_requests()) == 3

    def test_missing_etag_is_retried(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A missing ETag counts as a failed attempt."""
        httpx_mock.add_response(method="PUT", url=PART_URL)
        httpx_mock.add_response(method="PUT", url=PART_URL, headers={"ETag": "t2"})

        with PartUploader(max_retries=2) as uploader:
            part = uploader.upload_part(b"data", DESTINATION)

        assert part.etag == "t2"
        assert len(httpx_mock.get_requests()) == 2

    def test_network_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Transport errors are wrapped and retried."""
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with PartUploader(max_retries=1) as uploader:
            with pytest.raises(ChunkUploadError) as exc_info:
                uploader.upload_part(b"data", DESTINATION)

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)
        assert len(httpx_mock.get_requests()) == 2

    def test_invalid_url(self) -> None:
        """A malformed presigned URL fails the part with its number."""
        attempts: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            return httpx.Response(200, headers={"ETag": "x"})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        uploader = PartUploader(client=client, max_retries=2)

        with pytest.raises(ChunkUploadError) as exc_info:
            uploader.upload_part(b"data", PartDestination(3, "http://[::1/part"))

        assert exc_info.value.part_number == 3
        assert isinstance(exc_info.value.__cause__, httpx.InvalidURL)
        assert attempts == []
        client.close()

    def test_external_client_not_closed(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A client passed in stays open after close()."""
        httpx_mock.add_response(method="PUT", url=PART_URL, headers={"ETag": "x"})
        client = httpx.Client()

        uploader = PartUploader(client=client)
        uploader.upload_part(b"data", DESTINATION)
        uploader.close()

        assert not client.is_closed
        client.close()
