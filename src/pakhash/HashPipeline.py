"""SHA-1 fingerprints of the sub-archives stored in a container.

Each qualifying record is inflated in memory and hashed. Only entries with a
non-empty CRC32 and a name ending in the configured suffix qualify.
"""

import hashlib
import logging
import zlib
from typing import Iterable, List, NamedTuple

from .Errors import DecompressionError, EntryError, UnsupportedCompressionError
from .ZipHeaders import COMPRESSION_DEFLATE, RecordHeader

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".pk3"
RAW_DEFLATE_WBITS = -zlib.MAX_WBITS


class HashResult(NamedTuple):
    """Fingerprint of one inner entry."""
    name: str
    digest: str

    @property
    def line(self) -> str:
        return f"{self.name} {self.digest}\n"


class EntryFailure(NamedTuple):
    name: str
    error: EntryError


class PipelineOutcome(NamedTuple):
    results: List[HashResult]
    failures: List[EntryFailure]


class HashPipeline:
    """Filters records and hashes the ones that qualify.

    Attributes:
        suffix (str): Name suffix an entry must end with to be hashed.
    """

    def __init__(self, suffix: str = DEFAULT_SUFFIX):
        self.suffix = suffix

    def wants(self, record: RecordHeader) -> bool:
        """Tell whether a record qualifies for hashing.

        Only header fields are used, so this also works on headers whose
        payload has not been read yet.
        """
        if record.has_empty_crc:
            return False
        return record.name.endswith(self.suffix)

    def hash_record(self, record: RecordHeader) -> HashResult:
        """Inflate a record payload and fingerprint it.

        Args:
            record (RecordHeader): A complete record (`data` is set).

        Returns:
            HashResult: The entry base name and the SHA-1 hex digest of its content.

        Raises:
            UnsupportedCompressionError: If the entry is not deflate compressed.
            DecompressionError: If the payload is corrupt or truncated.
        """
        name = record.base_name
        if record.compression != COMPRESSION_DEFLATE:
            raise UnsupportedCompressionError(name, record.compression)

        try:
            content = zlib.decompress(record.data or b"", RAW_DEFLATE_WBITS)
        except zlib.error as e:
            raise DecompressionError(name, str(e)) from e

        return HashResult(name, hashlib.sha1(content).hexdigest())

    def process(self, records: Iterable[RecordHeader]) -> PipelineOutcome:
        """Hash every qualifying record, in arrival order.

        Failing entries are collected, they never stop the batch.
        """
        results: List[HashResult] = []
        failures: List[EntryFailure] = []
        for record in records:
            if not self.wants(record):
                continue
            try:
                results.append(self.hash_record(record))
            except EntryError as e:
                logger.warning("Dropped %s", e)
                failures.append(EntryFailure(e.name, e))
        return PipelineOutcome(results, failures)
