"""Tests for streaming checksums."""

import asyncio
import hashlib
import io

import pytest

from cmiscopy.checksum import ChecksumStream, contents_equal, iter_chunks
from cmiscopy.exceptions import StreamError


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


async def _failing_stream():
    yield b"partial"
    raise ConnectionResetError("connection reset by peer")


class TestChecksumStream:
    """Test ChecksumStream.digest."""

    def test_digest_known_value(self):
        """Test SHA-1 digest of a known string."""
        digest = asyncio.run(ChecksumStream().digest(_chunks(b"hel", b"lo")))
        assert digest == "aaf4c61ddcc5e8a2dabede0f3b482cd9aea9434d"

    def test_digest_empty_stream(self):
        """Test digest of an empty stream."""
        digest = asyncio.run(ChecksumStream().digest(_chunks()))
        assert digest == "da39a3ee5e6b4b0d3255bfef95601890afd80709"

    def test_digest_is_lowercase_hex(self):
        digest = asyncio.run(ChecksumStream().digest(_chunks(b"\xff" * 100)))
        assert digest == digest.lower()
        int(digest, 16)

    def test_digest_other_algorithm(self):
        """Test that the hash algorithm is configurable."""
        digest = asyncio.run(ChecksumStream("sha256").digest(_chunks(b"abc")))
        assert digest == hashlib.sha256(b"abc").hexdigest()

    def test_digest_counts_bytes(self):
        stream = ChecksumStream()
        asyncio.run(stream.digest(_chunks(b"ab", b"", b"cde")))
        assert stream.bytes_read == 5

    def test_tee_receives_all_bytes(self):
        """Test that the tee sink gets an exact copy of the stream."""
        sink = io.BytesIO()
        asyncio.run(ChecksumStream(tee=sink).digest(_chunks(b"one ", b"two")))
        assert sink.getvalue() == b"one two"

    def test_stream_error_carries_cause(self):
        """Test that a failing stream raises StreamError with the cause."""
        with pytest.raises(StreamError) as exc_info:
            asyncio.run(ChecksumStream().digest(_failing_stream()))
        assert isinstance(exc_info.value.__cause__, ConnectionResetError)


class TestContentsEqual:
    """Test digest-based content comparison."""

    def test_identical_content(self):
        assert asyncio.run(contents_equal(_chunks(b"hello"), b"hello"))

    def test_single_byte_difference(self):
        assert not asyncio.run(contents_equal(_chunks(b"hellp"), b"hello"))

    def test_empty_content(self):
        assert asyncio.run(contents_equal(_chunks(), b""))

    def test_empty_versus_non_empty(self):
        assert not asyncio.run(contents_equal(_chunks(), b"x"))
        assert not asyncio.run(contents_equal(_chunks(b"x"), b""))

    def test_chunking_does_not_matter(self):
        data = b"0123456789" * 50
        parts = [data[i : i + 7] for i in range(0, len(data), 7)]
        assert asyncio.run(contents_equal(_chunks(*parts), data))

    def test_tee_keeps_remote_bytes(self):
        sink = io.BytesIO()
        asyncio.run(contents_equal(_chunks(b"remote"), b"local", tee=sink))
        assert sink.getvalue() == b"remote"


class TestIterChunks:
    def test_splits_buffer(self):
        async def collect():
            return [c async for c in iter_chunks(b"abcdefg", chunk_size=3)]

        assert asyncio.run(collect()) == [b"abc", b"def", b"g"]
