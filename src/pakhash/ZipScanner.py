"""Incremental scanner for the local file headers of a streamed ZIP container.

The scanner is fed the raw body of a container in chunks of any size. Bytes
that do not yet form a complete record are carried over to the next chunk,
and the payload of a record that is not wanted is skipped without being
buffered. Records come out in the order they appear in the stream whatever
the chunking.
"""

import logging
from enum import Enum
from typing import Callable, Iterable, Iterator, List

from .Errors import MalformedSignatureError
from .ZipHeaders import RecordHeader, decode_header, decode_record

logger = logging.getLogger(__name__)


class ScannerState(Enum):
    SCANNING = "scanning"
    SKIPPING = "skipping"
    TERMINATED = "terminated"


class ContainerScanner:
    """Stateful reader turning byte chunks into local file header records.

    One scanner serves exactly one container; it is not reentrant and chunks
    must be fed in stream order.

    Attributes:
        state (ScannerState): Current state of the scanner.
        error (MalformedSignatureError | None): Set when the stream went out of sync.
        finished_cleanly (bool): True once a central directory or end of
            central directory record was reached.
        truncated (bool): True if `close()` dropped an incomplete trailing record.
        records_seen (int): Number of local file headers decoded so far,
            skipped ones included.
        bytes_received (int): Total bytes fed to the scanner.
    """

    def __init__(self, select: Callable[[RecordHeader], bool] | None = None):
        """Create a scanner.

        Args:
            select (callable|None): Optional predicate called with the header
                of every local record before its payload is buffered. Records
                it rejects are skipped and never returned.
        """
        self.select = select
        self.state = ScannerState.SCANNING
        self.error: MalformedSignatureError | None = None
        self.finished_cleanly = False
        self.truncated = False
        self.records_seen = 0
        self.bytes_received = 0

        self._carry = bytearray()
        # full span of the record waiting in carry, 0 while its header is incomplete
        self._needed: int = 0
        self._pending_skip: int = 0

    @property
    def terminated(self) -> bool:
        return self.state is ScannerState.TERMINATED

    @property
    def pending_skip(self) -> int:
        return self._pending_skip

    @property
    def carry(self) -> bytes:
        return bytes(self._carry)

    def feed(self, chunk: bytes) -> List[RecordHeader]:
        """Scan one chunk and return the records it completed.

        A malformed signature does not raise here: the scanner terminates,
        keeps the exception in `error`, and the records decoded before it in
        this chunk are still returned. `scan` raises it for the caller.

        Args:
            chunk (bytes): Next bytes of the container body.

        Returns:
            List[RecordHeader]: Complete local records, in stream order.
        """
        if self.terminated:
            return []
        self.bytes_received += len(chunk)

        if self._pending_skip:
            if len(chunk) <= self._pending_skip:
                self._pending_skip -= len(chunk)
                if not self._pending_skip:
                    self.state = ScannerState.SCANNING
                return []
            chunk = chunk[self._pending_skip:]
            self._pending_skip = 0
            self.state = ScannerState.SCANNING

        if self._carry:
            self._carry += chunk
            if len(self._carry) < self._needed:
                return []
            buffer = self._carry
            self._carry = bytearray()
        else:
            buffer = chunk
        owned = buffer is not chunk

        records: List[RecordHeader] = []
        offset = 0
        while True:
            try:
                header = decode_header(buffer, offset)
                if header is not None and header.is_local and not self._wanted(header):
                    self.records_seen += 1
                    logger.debug("Skipping %s (%d bytes)", header.name, header.total_size)
                    if not self._advance(buffer, offset, header.total_size):
                        break
                    offset += header.total_size
                    continue
                record = decode_record(buffer, offset) if header is not None else None
            except MalformedSignatureError as e:
                logger.debug("Malformed signature after %d records", self.records_seen)
                self._terminate()
                self.error = e
                return records

            if record is None:
                # wait for more bytes from the same boundary
                self._needed = header.total_size if header is not None else 0
                if offset == 0 and owned:
                    self._carry = buffer
                else:
                    self._carry = bytearray(buffer[offset:])
                break

            if not record.is_local:
                logger.debug("Reached %s, stopping", record.signature.name)
                self.finished_cleanly = True
                self._terminate()
                break

            self.records_seen += 1
            records.append(record)
            if not self._advance(buffer, offset, record.total_size):
                break
            offset += record.total_size

        return records

    def close(self) -> None:
        """Signal the end of the stream, dropping any incomplete record."""
        if self._carry or self._pending_skip:
            self.truncated = True
            logger.debug("Stream ended with %d unprocessed bytes", len(self._carry) + self._pending_skip)
        self._terminate()

    def scan_batches(self, chunks: Iterable[bytes]) -> Iterator[List[RecordHeader]]:
        """Scan a whole container body, one batch of records per chunk.

        Chunks are pulled one at a time, and the next chunk is only requested
        once the batch of the previous one has been consumed. Reading stops
        as soon as a terminator record is reached. Chunks completing no
        record produce no batch.

        Args:
            chunks (Iterable[bytes]): The container body.

        Yields:
            List[RecordHeader]: Complete local records, in stream order.

        Raises:
            MalformedSignatureError: After the records preceding the bad
                signature have been yielded.
        """
        try:
            for chunk in chunks:
                records = self.feed(chunk)
                if records:
                    yield records
                if self.error is not None:
                    raise self.error
                if self.terminated:
                    break
        finally:
            if not self.terminated:
                self.close()

    def scan(self, chunks: Iterable[bytes]) -> Iterator[RecordHeader]:
        """Like `scan_batches`, one record at a time."""
        for records in self.scan_batches(chunks):
            yield from records

    def _wanted(self, header: RecordHeader) -> bool:
        return self.select is None or self.select(header)

    def _advance(self, buffer: bytes, offset: int, span: int) -> bool:
        """Check that `span` bytes from `offset` are in the buffer.

        When they are not, the remainder of the record is scheduled to be
        skipped from the following chunks and False is returned.
        """
        available = len(buffer) - offset
        if span <= available:
            return True
        self._pending_skip = span - available
        self.state = ScannerState.SKIPPING
        return False

    def _terminate(self) -> None:
        self._carry = bytearray()
        self._needed = 0
        self._pending_skip = 0
        self.state = ScannerState.TERMINATED
