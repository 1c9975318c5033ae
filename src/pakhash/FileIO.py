"""Remote HTTP-backed forward-only byte stream.

Provides RemoteStream, which downloads a remote container with a single
streaming GET request and hands its body out as byte chunks, so archives can
be scanned while they arrive instead of after a full download.

Classes:
    RemoteStream: Streaming HTTP download split into chunks.
"""

import logging
import time
from typing import Callable, Iterator

import httpx

from .Errors import FetchError, UnacceptableContentType

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024  # 64 KiB
MAX_ATTEMPTS = 5
ACCEPTED_CONTENT_TYPES = (
    "application/zip",
    "application/x-zip-compressed",
    "application/octet-stream",
)

ProgressCallback = Callable[[int, int], None]


class RemoteStream:
    """Chunked, read-once view of a remote file.

    Unlike a seekable file the body is read exactly once, front to back. Any
    redirect is followed and the final response must be a 200 with an
    archive content type.

    Attributes:
        url (str): Remote resource URL.
        chunk_size (int): Preferred size of the yielded chunks.
        accept (tuple[str, ...] | None): Accepted content types, None accepts anything.
        client (httpx.Client): HTTP client used for the request.
    """
    def __init__(self, url: str, chunk_size: int = DEFAULT_CHUNK_SIZE,
                 client: httpx.Client | None = None,
                 accept: tuple[str, ...] | None = ACCEPTED_CONTENT_TYPES):
        """Create a RemoteStream. No request is made until `iter_chunks`.

        Args:
            url (str): HTTP(S) URL of the container.
            chunk_size (int): Preferred chunk size in bytes (default 64 KiB).
            client (httpx.Client | None): Client to use. When omitted the
                stream creates one and closes it in `close()`.
            accept (tuple[str, ...] | None): Content types considered archives.
        """
        self.url = url
        self.chunk_size = chunk_size
        self.accept = accept
        self._size: int | None = None

        self._owns_client = client is None
        if client is None:
            headers = {
                "User-Agent": "pakhash/0.1.0",
                "Accept": "application/octet-stream",
                "Connection": "keep-alive"}
            client = httpx.Client(headers=headers, follow_redirects=True, timeout=httpx.Timeout(10.0, read=300.0))
        self.client = client

    @property
    def size(self) -> int:
        """Content-Length reported by the server, or 0 if unknown or not fetched yet."""
        return self._size or 0

    def iter_chunks(self, progress_callback: ProgressCallback | None = None) -> Iterator[bytes]:
        """Download the body and yield it chunk by chunk.

        Args:
            progress_callback (callable|None): Called with `(received, total)`
                bytes before the first chunk and after every chunk. `total`
                is 0 when the server does not announce a length.

        Yields:
            bytes: Consecutive pieces of the response body.

        Raises:
            FetchError: If the URL is invalid, the server cannot be reached or does not answer 200.
            UnacceptableContentType: If the response is not an archive.
            httpx.HTTPError: If the transfer breaks while the body is read.
        """
        response = self._open()
        try:
            total = int(response.headers.get("Content-Length") or 0)
            self._size = total
            received = 0
            if progress_callback:
                progress_callback(received, total)
            for chunk in response.iter_bytes(self.chunk_size):
                received += len(chunk)
                if progress_callback:
                    progress_callback(received, total)
                yield chunk
        finally:
            response.close()

    def _open(self) -> httpx.Response:
        """Send the GET request and return the streaming response.

        Transient failures are retried before any byte of the body is
        consumed: connection errors with a linear backoff, and 429 responses
        after the delay the server asks for.
        """
        try:
            request = self.client.build_request("GET", self.url)
        except httpx.InvalidURL as e:
            raise FetchError(f"Invalid URL: {self.url} ({e})", url=self.url) from e
        for attempt in range(MAX_ATTEMPTS):
            try:
                response = self.client.send(request, stream=True)
            except httpx.TransportError as e:
                if attempt == MAX_ATTEMPTS - 1:
                    raise FetchError(f"Could not fetch the file: {self.url} ({e})", url=self.url) from e
                wait_time = (attempt + 1) * 2
                logger.warning("HTTP error on attempt %d: %s. Retrying after %d seconds.", attempt + 1, e, wait_time)
                time.sleep(wait_time)
                continue

            if response.status_code == 429 and attempt < MAX_ATTEMPTS - 1:
                # Server asks us to retry later; follow Retry-After if present.
                response.close()
                wait_time = max(_retry_after(response), 1)
                logger.warning("Received 429 Too Many Requests, retrying after %d seconds.", wait_time)
                time.sleep(wait_time)
                continue

            try:
                self._check_response(response)
            except FetchError:
                response.close()
                raise
            return response

        raise FetchError(f"Could not fetch the file: {self.url}", url=self.url)

    def _check_response(self, response: httpx.Response):
        if response.status_code != 200:
            raise FetchError(f"[{response.status_code}] Could not fetch the file: {response.url}",
                             url=str(response.url), status_code=response.status_code)
        if self.accept is None:
            return
        content_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
        if content_type not in self.accept:
            raise UnacceptableContentType(f'Not acceptable type: "{content_type}"',
                                          url=str(response.url), status_code=response.status_code)

    def close(self):
        """Close the HTTP client if this stream created it."""
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def _retry_after(response: httpx.Response) -> int:
    try:
        return int(response.headers.get("Retry-After", 3))
    except ValueError:
        # HTTP-date form
        return 3
