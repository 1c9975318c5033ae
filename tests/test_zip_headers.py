"""
Unit tests for the local file header decoder.
"""

import zlib

import pytest

from pakhash.Errors import MalformedSignatureError
from pakhash.ZipHeaders import (
    LOCAL_HEADER_SIZE,
    RecordHeader,
    Signature,
    decode_header,
    decode_record,
    read_signature,
)
from zipfixtures import CENTRAL_DIRECTORY, END_OF_CENTRAL_DIRECTORY, deflate, local_record


class TestDecodeRecord:
    """Tests for decode_record."""

    def test_decodes_all_fields(self):
        content = b"quake map data" * 10
        raw = local_record("maps/map1.pk3", content, extra=b"\x55\x54\x01\x00\x00")
        record = decode_record(raw)

        assert record.signature is Signature.LOCAL_FILE_HEADER
        assert record.version == 20
        assert record.compression == 8
        assert record.mod_time == 0x6000
        assert record.mod_date == 0x5a21
        assert record.crc32 == zlib.crc32(content).to_bytes(4, "little")
        assert record.compressed_size == len(deflate(content))
        assert record.uncompressed_size == len(content)
        assert record.file_name == b"maps/map1.pk3"
        assert record.extra_field == b"\x55\x54\x01\x00\x00"
        assert record.header_size == LOCAL_HEADER_SIZE + 13 + 5
        assert record.total_size == len(raw)

    def test_payload_is_exactly_the_compressed_size(self):
        raw = local_record("a.pk3", b"hello world")
        record = decode_record(raw + b"PK\x03\x04 trailing bytes")

        assert record.data == deflate(b"hello world")
        assert len(record.data) == record.compressed_size

    def test_needs_the_whole_record(self):
        raw = local_record("a.pk3", b"some content to compress")
        for length in range(len(raw)):
            assert decode_record(raw[:length]) is None
        assert decode_record(raw) is not None

    def test_decodes_at_offset(self):
        first = local_record("a.pk3", b"first")
        second = local_record("b.pk3", b"second")
        record = decode_record(first + second, len(first))

        assert record.file_name == b"b.pk3"
        assert zlib.decompress(record.data, -15) == b"second"

    def test_is_idempotent(self):
        raw = local_record("a.pk3", b"content")
        assert decode_record(raw) == decode_record(raw)

    def test_terminators_need_only_the_signature(self):
        assert decode_record(CENTRAL_DIRECTORY[:4]) == RecordHeader(Signature.CENTRAL_DIRECTORY)
        record = decode_record(END_OF_CENTRAL_DIRECTORY)
        assert record.signature is Signature.END_OF_CENTRAL_DIRECTORY
        assert not record.is_local
        assert record.data is None

    def test_malformed_signature(self):
        with pytest.raises(MalformedSignatureError) as exc_info:
            decode_record(b"PK\x07\x08" + b"\x00" * 40)
        assert exc_info.value.signature == b"PK\x07\x08"
        assert "504b0708" in str(exc_info.value)


class TestDecodeHeader:
    """Tests for decode_header."""

    def test_header_without_payload(self):
        raw = local_record("big.pk3", b"x" * 5000)
        record = decode_header(raw[:LOCAL_HEADER_SIZE + len("big.pk3")])

        assert record.file_name == b"big.pk3"
        assert record.data is None
        assert record.total_size == len(raw)

    def test_needs_name_and_extra(self):
        raw = local_record("big.pk3", b"x", extra=b"\x00\x00\x00\x00")
        assert decode_header(raw[:LOCAL_HEADER_SIZE - 1]) is None
        assert decode_header(raw[:LOCAL_HEADER_SIZE + 7]) is None
        assert decode_header(raw[:LOCAL_HEADER_SIZE + 7 + 4]) is not None

    def test_short_signature(self):
        assert read_signature(b"PK\x03") is None
        assert decode_header(b"PK") is None


class TestRecordNames:
    """Tests for the name helpers of RecordHeader."""

    def test_base_name_strips_directories(self):
        assert decode_record(local_record("maps/q3/map1.pk3", b"a")).base_name == "map1.pk3"
        assert decode_record(local_record("maps\\map2.pk3", b"a")).base_name == "map2.pk3"
        assert decode_record(local_record("map3.pk3", b"a")).base_name == "map3.pk3"

    def test_utf8_flag(self):
        record = decode_record(local_record("kartë.pk3", b"a", flags=0x800))
        assert record.name == "kartë.pk3"

    def test_cp437_without_flag(self):
        record = decode_record(local_record(b"k\x89rte.pk3", b"a"))
        assert record.name == "kërte.pk3"

    def test_empty_crc_and_flags(self):
        record = decode_record(local_record("maps/", b"", compression=0, crc=0, flags=0x9))
        assert record.has_empty_crc
        assert record.is_encrypted
        assert record.has_data_descriptor
