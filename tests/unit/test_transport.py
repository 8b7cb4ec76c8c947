"""Unit tests for the transport bridge — local copies and httpx streaming."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from sigarchive.bridge.transport import Transport, local_source_path
from sigarchive.core.errors import TransportError


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestLocalSourcePath:
    def test_plain_path(self):
        assert local_source_path("/srv/lib.pyz") == Path("/srv/lib.pyz")

    def test_file_uri(self):
        assert local_source_path("file:///srv/my%20lib.pyz") == Path("/srv/my lib.pyz")

    def test_http_is_not_local(self):
        assert local_source_path("https://example.com/lib.pyz") is None


class TestLocalCopy:
    def test_copies_bytes(self, tmp_path: Path):
        src = tmp_path / "lib.pyz"
        src.write_bytes(b"archive" * 100)
        dest = tmp_path / "staged.pyz"
        written = Transport(chunk_size=16).copy(str(src), dest)
        assert written == 700
        assert dest.read_bytes() == src.read_bytes()

    def test_missing_source(self, tmp_path: Path):
        dest = tmp_path / "staged.pyz"
        with pytest.raises(TransportError, match="does not exist") as exc_info:
            Transport().copy(str(tmp_path / "missing.pyz"), dest)
        assert exc_info.value.identifier.endswith("missing.pyz")
        assert not dest.exists()

    def test_unwritable_destination(self, tmp_path: Path):
        src = tmp_path / "lib.pyz"
        src.write_bytes(b"x")
        with pytest.raises(TransportError) as exc_info:
            Transport().copy(str(src), tmp_path / "no-such-dir" / "staged.pyz")
        assert exc_info.value.identifier == str(src)
        assert isinstance(exc_info.value.__cause__, OSError)


class TestHttpCopy:
    """HTTP sources stream through httpx; failures become TransportError."""

    def test_streams_response_body(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/dist/lib.pyz"
            return httpx.Response(200, content=b"remote-archive")

        dest = tmp_path / "staged.pyz"
        written = Transport(client=_client(handler)).copy("https://example.com/dist/lib.pyz", dest)
        assert written == len(b"remote-archive")
        assert dest.read_bytes() == b"remote-archive"

    @pytest.mark.parametrize("status", [403, 404, 500])
    def test_error_status(self, tmp_path: Path, status):
        dest = tmp_path / "staged.pyz"
        transport = Transport(client=_client(lambda _r: httpx.Response(status)))
        with pytest.raises(TransportError, match=f"HTTP {status}"):
            transport.copy("https://example.com/lib.pyz", dest)
        assert not dest.exists()

    def test_network_error(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        dest = tmp_path / "staged.pyz"
        with pytest.raises(TransportError, match="connection refused") as exc_info:
            Transport(client=_client(handler)).copy("http://example.com/lib.pyz", dest)
        assert exc_info.value.identifier == "http://example.com/lib.pyz"
        assert not dest.exists()

    def test_invalid_url_from_client(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.InvalidURL("bad url")

        dest = tmp_path / "staged.pyz"
        with pytest.raises(TransportError, match="bad url"):
            Transport(client=_client(handler)).copy("https://example.com/lib.pyz", dest)
        assert not dest.exists()

    def test_stream_error(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.StreamClosed()

        dest = tmp_path / "staged.pyz"
        with pytest.raises(TransportError) as exc_info:
            Transport(client=_client(handler)).copy("https://example.com/lib.pyz", dest)
        assert isinstance(exc_info.value.__cause__, httpx.StreamError)
        assert not dest.exists()


class TestMalformedSource:
    def test_unparsable_url(self, tmp_path: Path):
        dest = tmp_path / "staged.pyz"
        with pytest.raises(TransportError) as exc_info:
            Transport().copy("http://[::1/lib.pyz", dest)
        assert exc_info.value.identifier == "http://[::1/lib.pyz"
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert not dest.exists()
