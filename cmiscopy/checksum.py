"""Streaming content digests used to decide whether a transfer is needed."""

import hashlib
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Optional, Protocol

from .exceptions import StreamError
from .utils import DEFAULT_STREAM_CHUNK_SIZE

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "sha1"


class ByteSink(Protocol):
    """Anything that accepts written bytes (files, BytesIO, spooled files)."""

    def write(self, data: bytes) -> int: ...


class ChecksumStream:
    """Computes a hex digest incrementally while a byte stream is consumed.

    The stream is drained completely. When a ``tee`` sink is given, every
    chunk is also written to it, so the consumed bytes can be replayed
    after the digest is known.
    """

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM, tee: Optional[ByteSink] = None):
        self.algorithm = algorithm
        self.tee = tee
        self.bytes_read = 0

    async def digest(self, stream: AsyncIterable[bytes]) -> str:
        """Consume a stream and return its lowercase hex digest.

        Args:
            stream: Async iterable of byte chunks

        Returns:
            Lowercase hex digest of all bytes in the stream

        Raises:
            StreamError: If the stream (or the tee sink) fails before the end
        """
        hasher = hashlib.new(self.algorithm)
        try:
            async for chunk in stream:
                if not chunk:
                    continue
                hasher.update(chunk)
                self.bytes_read += len(chunk)
                if self.tee is not None:
                    self.tee.write(chunk)
        except Exception as e:
            raise StreamError(f"error streaming content: {e}") from e
        return hasher.hexdigest()


async def iter_chunks(
    data: bytes, chunk_size: int = DEFAULT_STREAM_CHUNK_SIZE
) -> AsyncIterator[bytes]:
    """Expose an in-memory buffer as an async byte stream."""
    for start in range(0, len(data), chunk_size):
        yield data[start : start + chunk_size]


async def contents_equal(
    remote_stream: AsyncIterable[bytes],
    local_data: bytes,
    tee: Optional[ByteSink] = None,
    algorithm: str = DEFAULT_ALGORITHM,
) -> bool:
    """Compare a remote stream against local bytes by digest.

    The remote stream is digested first and fully drained; the local
    buffer is digested afterwards.

    Args:
        remote_stream: Remote content chunks
        local_data: Local file content
        tee: Optional sink receiving a copy of the remote bytes
        algorithm: hashlib algorithm name

    Returns:
        True if both digests are equal

    Raises:
        StreamError: If either stream fails
    """
    remote_checksum = await ChecksumStream(algorithm, tee=tee).digest(remote_stream)
    local_checksum = await ChecksumStream(algorithm).digest(iter_chunks(local_data))
    logger.debug(f"Checksums remote={remote_checksum} local={local_checksum}")
    return remote_checksum == local_checksum
