"""Transport bridge — copies archive bytes from a source URI to a local path.

Supported sources
-----------------
- plain local paths and ``file://`` URIs (``shutil`` streaming copy);
- ``http://`` and ``https://`` URIs (``httpx`` streaming GET).

Any failure (unreadable source, unwritable destination, HTTP error status,
network error, timeout) is raised as ``TransportError`` with the original
source identifier embedded.  The destination is removed if a partial copy
was written.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from urllib.parse import unquote, urlsplit

import httpx

from sigarchive.core.errors import TransportError

logger = logging.getLogger(__name__)

_HTTP_SCHEMES = frozenset({"http", "https"})
_DEFAULT_CHUNK_SIZE = 1024 * 1024

# httpx.InvalidURL and httpx.StreamError do not derive from httpx.HTTPError
_COPY_ERRORS = (OSError, ValueError, httpx.HTTPError, httpx.InvalidURL, httpx.StreamError)


def local_source_path(source: str) -> Path | None:
    """Return the filesystem path for a local source, ``None`` for HTTP."""
    parts = urlsplit(source)
    if parts.scheme in _HTTP_SCHEMES:
        return None
    if parts.scheme == "file":
        return Path(unquote(parts.path))
    return Path(source)


class Transport:
    """Blocking copy primitive used by the fetcher.

    Parameters
    ----------
    timeout:
        Per-request timeout in seconds for HTTP sources.
    chunk_size:
        Streaming chunk size in bytes.
    client:
        Optional pre-configured ``httpx.Client`` (e.g. with a
        ``MockTransport`` in tests).  When omitted, a client is created per
        HTTP copy and closed afterwards.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        chunk_size: int = _DEFAULT_CHUNK_SIZE,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._client = client

    def copy(self, source: str, dest: Path) -> int:
        """Copy *source* into *dest* and return the number of bytes written.

        Raises
        ------
        TransportError
            For every failure, including a source that cannot be parsed as a
            path or URL.
        """
        dest = Path(dest)
        try:
            local = local_source_path(source)
            if local is None:
                written = self._copy_http(source, dest)
            else:
                written = self._copy_local(local, dest)
        except TransportError:
            dest.unlink(missing_ok=True)
            raise
        except _COPY_ERRORS as exc:
            dest.unlink(missing_ok=True)
            raise TransportError(source, str(exc) or type(exc).__name__) from exc
        logger.debug("Copied %d bytes from '%s' to %s.", written, source, dest)
        return written

    # -- Internal helpers ---------------------------------------------------

    def _copy_local(self, source: Path, dest: Path) -> int:
        if not source.is_file():
            raise TransportError(str(source), "source file does not exist")
        with open(source, "rb") as rf, open(dest, "wb") as wf:
            shutil.copyfileobj(rf, wf, self._chunk_size)
            return wf.tell()

    def _copy_http(self, url: str, dest: Path) -> int:
        client = self._client or httpx.Client(
            timeout=self._timeout, follow_redirects=True
        )
        try:
            with client.stream("GET", url) as response:
                if response.status_code >= 400:
                    raise TransportError(url, f"HTTP {response.status_code}")
                written = 0
                with open(dest, "wb") as wf:
                    for chunk in response.iter_bytes(self._chunk_size):
                        wf.write(chunk)
                        written += len(chunk)
                return written
        finally:
            if self._client is None:
                client.close()
