"""ZIP local file header decoding.

Only the local file header record is decoded. Central directory and end of
central directory records are recognized by their signature alone, their
bodies are never parsed: for this tool they only mark the end of the entries.

Record layout (little-endian)::

    signature      4s   PK\\x03\\x04
    version        H
    flags          H
    compression    H
    mod_time       H
    mod_date       H
    crc32          4s   kept raw, only "all zero" matters
    compressed     L
    uncompressed   L
    name_length    H
    extra_length   H
    name           name_length bytes
    extra          extra_length bytes
    data           compressed bytes
"""

import struct
from enum import Enum
from typing import NamedTuple

from .Errors import MalformedSignatureError

LOCAL_HEADER_STRUCT = struct.Struct("<4sHHHHH4sLLHH")
LOCAL_HEADER_SIZE = LOCAL_HEADER_STRUCT.size  # 30
SIGNATURE_SIZE = 4

COMPRESSION_STORED = 0
COMPRESSION_DEFLATE = 8

FLAG_ENCRYPTED = 0x1
FLAG_DATA_DESCRIPTOR = 0x8
FLAG_UTF8 = 0x800

EMPTY_CRC32 = b"\x00\x00\x00\x00"


class Signature(Enum):
    LOCAL_FILE_HEADER = b"PK\x03\x04"
    CENTRAL_DIRECTORY = b"PK\x01\x02"
    END_OF_CENTRAL_DIRECTORY = b"PK\x05\x06"


class RecordHeader(NamedTuple):
    """One decoded record.

    For terminator records (central directory, end of central directory)
    only `signature` is meaningful. `data` is None until the whole payload
    has been seen, see `decode_record`.
    """
    signature: Signature
    version: int = 0
    flags: int = 0
    compression: int = 0
    mod_time: int = 0
    mod_date: int = 0
    crc32: bytes = EMPTY_CRC32
    compressed_size: int = 0
    uncompressed_size: int = 0
    file_name: bytes = b""
    extra_field: bytes = b""
    data: bytes | None = None

    @property
    def is_local(self) -> bool:
        return self.signature is Signature.LOCAL_FILE_HEADER

    @property
    def header_size(self) -> int:
        """Bytes taken by the fixed header, the name and the extra field."""
        return LOCAL_HEADER_SIZE + len(self.file_name) + len(self.extra_field)

    @property
    def total_size(self) -> int:
        """Full byte span of the record, payload included."""
        return self.header_size + self.compressed_size

    @property
    def has_empty_crc(self) -> bool:
        # directories and zero-length files
        return self.crc32 == EMPTY_CRC32

    @property
    def is_encrypted(self) -> bool:
        return bool(self.flags & FLAG_ENCRYPTED)

    @property
    def has_data_descriptor(self) -> bool:
        return bool(self.flags & FLAG_DATA_DESCRIPTOR)

    @property
    def name(self) -> str:
        """Entry name as text, decoded the way `zipfile` decodes it."""
        if self.flags & FLAG_UTF8:
            return self.file_name.decode("utf-8", errors="replace")
        return self.file_name.decode("cp437")

    @property
    def base_name(self) -> str:
        """Entry name without its directory prefix."""
        return self.name.replace("\\", "/").rsplit("/", 1)[-1]


def read_signature(buffer: bytes, offset: int = 0) -> Signature | None:
    """Identify the record starting at `offset`.

    Returns:
        Signature | None: The signature, or None if fewer than 4 bytes are available.

    Raises:
        MalformedSignatureError: If the 4 bytes are not a known signature.
    """
    raw = bytes(buffer[offset:offset + SIGNATURE_SIZE])
    if len(raw) < SIGNATURE_SIZE:
        return None
    try:
        return Signature(raw)
    except ValueError:
        raise MalformedSignatureError(raw) from None


def decode_header(buffer: bytes, offset: int = 0) -> RecordHeader | None:
    """Decode the record header starting at `offset`, without its payload.

    Only the fixed fields, the name and the extra field have to be present,
    so callers can look at the metadata of a large entry before its data
    has arrived.

    Args:
        buffer (bytes): Bytes believed to start at a record boundary at `offset`.
        offset (int): Position of the record inside `buffer`.

    Returns:
        RecordHeader | None: The header with `data` set to None, a bare
        terminator record for central directory signatures, or None when
        more bytes are needed.

    Raises:
        MalformedSignatureError: If the signature is not recognized.
    """
    signature = read_signature(buffer, offset)
    if signature is None:
        return None
    if signature is not Signature.LOCAL_FILE_HEADER:
        return RecordHeader(signature=signature)

    available = len(buffer) - offset
    if available < LOCAL_HEADER_SIZE:
        return None
    (_, version, flags, compression, mod_time, mod_date, crc32,
     compressed_size, uncompressed_size, name_length, extra_length) = LOCAL_HEADER_STRUCT.unpack_from(buffer, offset)

    name_start = offset + LOCAL_HEADER_SIZE
    extra_start = name_start + name_length
    data_start = extra_start + extra_length
    if len(buffer) < data_start:
        return None

    return RecordHeader(
        signature=signature,
        version=version,
        flags=flags,
        compression=compression,
        mod_time=mod_time,
        mod_date=mod_date,
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        file_name=bytes(buffer[name_start:extra_start]),
        extra_field=bytes(buffer[extra_start:data_start]),
    )


def decode_record(buffer: bytes, offset: int = 0) -> RecordHeader | None:
    """Decode one complete record, payload included.

    A local file header is only returned once every byte of its declared
    compressed payload is present; until then the caller has to come back
    with more bytes starting at the same boundary.

    Returns:
        RecordHeader | None: The record with `data` holding exactly
        `compressed_size` bytes, a terminator record, or None when more
        bytes are needed.

    Raises:
        MalformedSignatureError: If the signature is not recognized.
    """
    header = decode_header(buffer, offset)
    if header is None or not header.is_local:
        return header

    data_start = offset + header.header_size
    data_end = data_start + header.compressed_size
    if len(buffer) < data_end:
        return None
    return header._replace(data=bytes(memoryview(buffer)[data_start:data_end]))
