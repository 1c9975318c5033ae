"""
Unit tests for the content hash pipeline.
"""

import hashlib

import pytest

from pakhash.Errors import DecompressionError, UnsupportedCompressionError
from pakhash.HashPipeline import HashPipeline, HashResult
from pakhash.ZipHeaders import decode_record
from zipfixtures import deflate, directory_record, local_record

ABC_SHA1 = "a9993e364706816aba3e25717850c26c9cd0d89d"


def record(*args, **kwargs):
    return decode_record(local_record(*args, **kwargs))


class TrackingPipeline(HashPipeline):
    """HashPipeline remembering which records reached decompression."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.hashed = []

    def hash_record(self, record):
        self.hashed.append(record.name)
        return super().hash_record(record)


class TestHashRecord:
    """Tests for HashPipeline.hash_record."""

    def test_known_digest(self):
        result = HashPipeline().hash_record(record("maps/map1.pk3", b"abc"))

        assert result == HashResult("map1.pk3", ABC_SHA1)
        assert result.line == f"map1.pk3 {ABC_SHA1}\n"

    def test_digest_of_larger_payload(self):
        content = bytes(range(256)) * 1000
        result = HashPipeline().hash_record(record("big.pk3", content))
        assert result.digest == hashlib.sha1(content).hexdigest()

    def test_corrupt_payload(self):
        with pytest.raises(DecompressionError) as exc_info:
            HashPipeline().hash_record(record("bad.pk3", b"abc", payload=b"\xff\xff\xff\xff"))
        assert exc_info.value.name == "bad.pk3"

    def test_truncated_payload(self):
        payload = deflate(bytes(range(256)) * 100)
        with pytest.raises(DecompressionError):
            HashPipeline().hash_record(record("short.pk3", b"x", payload=payload[:len(payload) // 2]))

    def test_stored_entry_is_unsupported(self):
        with pytest.raises(UnsupportedCompressionError) as exc_info:
            HashPipeline().hash_record(record("stored.pk3", b"abc", compression=0))
        assert exc_info.value.method == 0
        assert "unsupported compression method 0" in str(exc_info.value)


class TestProcess:
    """Tests for HashPipeline.process and its filters."""

    def test_empty_crc_never_decompressed(self):
        pipeline = TrackingPipeline()
        outcome = pipeline.process([
            decode_record(directory_record("maps.pk3/")),
            record("zero.pk3", b"abc", crc=0),
        ])

        assert pipeline.hashed == []
        assert outcome.results == []
        assert outcome.failures == []

    def test_suffix_mismatch_never_decompressed(self):
        pipeline = TrackingPipeline()
        outcome = pipeline.process([record("readme.txt", b"abc"), record("map.PK3", b"abc")])

        assert pipeline.hashed == []
        assert outcome.results == []

    def test_custom_suffix(self):
        outcome = HashPipeline(suffix=".pak").process([record("pak0.pak", b"abc"), record("map.pk3", b"abc")])
        assert outcome.results == [HashResult("pak0.pak", ABC_SHA1)]

    def test_failure_does_not_stop_batch(self):
        pipeline = TrackingPipeline()
        outcome = pipeline.process([
            record("a.pk3", b"abc"),
            record("bad.pk3", b"abc", payload=b"\xff\xff\xff\xff"),
            record("stored.pk3", b"abc", compression=0),
            record("b.pk3", b""),
            record("c.pk3", b"abc"),
        ])

        assert pipeline.hashed == ["a.pk3", "bad.pk3", "stored.pk3", "c.pk3"]
        assert [r.name for r in outcome.results] == ["a.pk3", "c.pk3"]
        assert [f.name for f in outcome.failures] == ["bad.pk3", "stored.pk3"]
        assert isinstance(outcome.failures[0].error, DecompressionError)
        assert isinstance(outcome.failures[1].error, UnsupportedCompressionError)

    def test_wants_uses_only_header_fields(self):
        pipeline = HashPipeline()
        full = record("maps/map1.pk3", b"abc")
        assert pipeline.wants(full._replace(data=None))
        assert not pipeline.wants(full._replace(crc32=b"\x00\x00\x00\x00"))
