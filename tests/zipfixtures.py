"""Helpers building ZIP byte streams for the tests."""

import io
import random
import struct
import zipfile
import zlib

LOCAL_HEADER = struct.Struct("<4sHHHHHLLLHH")
END_OF_CENTRAL_DIRECTORY = b"PK\x05\x06" + b"\x00" * 18
CENTRAL_DIRECTORY = b"PK\x01\x02" + b"\x00" * 42


def deflate(data: bytes) -> bytes:
    compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def local_record(name, content: bytes = b"", compression: int = 8, crc: int | None = None,
                 payload: bytes | None = None, extra: bytes = b"", flags: int = 0) -> bytes:
    """Build one local file header record followed by its payload."""
    if isinstance(name, str):
        name = name.encode("utf-8")
    if payload is None:
        payload = deflate(content) if compression == 8 else content
    if crc is None:
        crc = zlib.crc32(content) if content else 0
    header = LOCAL_HEADER.pack(b"PK\x03\x04", 20, flags, compression, 0x6000, 0x5a21,
                               crc, len(payload), len(content), len(name), len(extra))
    return header + name + extra + payload


def directory_record(name: str) -> bytes:
    return local_record(name, b"", compression=0, crc=0)


def build_zipfile(entries) -> bytes:
    """Build a complete archive with `zipfile`, central directory included.

    Args:
        entries: (name, content, compress_type) tuples; names ending in "/"
            become directories.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content, compress_type in entries:
            if name.endswith("/"):
                archive.writestr(zipfile.ZipInfo(name), b"")
            else:
                archive.writestr(name, content, compress_type=compress_type)
    return buffer.getvalue()


def chunked(data: bytes, size: int):
    return [data[i:i + size] for i in range(0, len(data), size)]


def random_chunks(data: bytes, seed: int, max_size: int = 97):
    rng = random.Random(seed)
    chunks = []
    position = 0
    while position < len(data):
        size = rng.randint(1, max_size)
        chunks.append(data[position:position + size])
        position += size
    return chunks
