"""Core sync engine deciding and performing per-file transfers."""

import asyncio
import logging
import os
import tempfile
from collections.abc import AsyncIterable, AsyncIterator
from pathlib import Path
from typing import IO, Optional

from ..api import CmisClient
from ..checksum import DEFAULT_ALGORITHM, contents_equal
from ..exceptions import CmisAPIError, CmisDownloadError, CmisNetworkError, StreamError
from ..models import RemoteFileDescriptor
from ..output import OutputFormatter
from ..utils import DEFAULT_SPOOL_THRESHOLD, DEFAULT_STREAM_CHUNK_SIZE, guess_mime_type
from .registry import VersionRegistry
from .results import SyncResult, SyncStatus

logger = logging.getLogger(__name__)

HTTP_OK = 200


async def _iter_file(f: IO[bytes]) -> AsyncIterator[bytes]:
    f.seek(0)
    while True:
        chunk = await asyncio.to_thread(f.read, DEFAULT_STREAM_CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


async def _read_stream(chunks: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    """Pass chunks through, reporting failures of the source as StreamError."""
    try:
        async for chunk in chunks:
            yield chunk
    except Exception as e:
        raise StreamError(f"error streaming content: {e}") from e


class SyncEngine:
    """Uploads and downloads single files, transferring only when needed.

    Content is compared through streaming checksums. The version registry
    records what was last transferred and refuses uploads of files whose
    remote version moved on since then.
    """

    def __init__(
        self,
        client: CmisClient,
        registry: VersionRegistry,
        output: Optional[OutputFormatter] = None,
        spool_threshold: int = DEFAULT_SPOOL_THRESHOLD,
        algorithm: str = DEFAULT_ALGORITHM,
    ):
        """Initialize sync engine.

        Args:
            client: CMIS client
            registry: Version registry gating uploads
            output: Output formatter for per-file status lines
            spool_threshold: Remote content above this size is buffered on
                disk instead of in memory while it is compared
            algorithm: hashlib algorithm used for content comparison
        """
        self.client = client
        self.registry = registry
        self.output = output or OutputFormatter()
        self.spool_threshold = spool_threshold
        self.algorithm = algorithm

    # =========================
    # Upload
    # =========================

    async def upload_file(
        self, local_dir: Path, descriptor: RemoteFileDescriptor
    ) -> SyncResult:
        """Upload a local file over its remote counterpart if the content differs.

        Args:
            local_dir: Directory holding the local copy
            descriptor: Remote file to update

        Returns:
            SyncResult describing the outcome

        Raises:
            CmisAPIError: If pushing the content fails
        """
        file_path = Path(local_dir) / descriptor.name

        if not self.registry.has_version(descriptor.node_id, descriptor.version):
            self.output.error(
                f"Can't upload {file_path} - out of sync. "
                "Please download latest version."
            )
            return SyncResult(
                SyncStatus.SKIPPED_OUT_OF_SYNC,
                file_path,
                descriptor.node_id,
                message=f"remote version {descriptor.version} was never synced",
            )

        try:
            data = await asyncio.to_thread(file_path.read_bytes)
        except OSError as e:
            self.output.error(f"Unable to read file {file_path}")
            return SyncResult(
                SyncStatus.SKIPPED_READ_FAILURE, file_path, descriptor.node_id, message=str(e)
            )

        if await self._remote_matches(descriptor, data):
            logger.debug(f"{file_path} is unchanged, not uploading")
            return SyncResult(SyncStatus.UNCHANGED, file_path, descriptor.node_id)

        return await self._push(file_path, descriptor, data)

    async def _remote_matches(self, descriptor: RemoteFileDescriptor, data: bytes) -> bool:
        """Check whether remote content equals ``data``.

        Anything that prevents the comparison counts as a difference.
        """
        try:
            async with self.client.stream_content(descriptor.object_id) as response:
                if response.status_code != HTTP_OK:
                    logger.debug(
                        f"Remote content of {descriptor.name} unavailable "
                        f"({response.status_code}), uploading"
                    )
                    return False
                return await contents_equal(
                    response.aiter_bytes(), data, algorithm=self.algorithm
                )
        except (CmisNetworkError, StreamError) as e:
            logger.debug(f"Could not compare {descriptor.name} with remote: {e}")
            return False

    async def _push(
        self, file_path: Path, descriptor: RemoteFileDescriptor, data: bytes
    ) -> SyncResult:
        await self.client.set_content_stream(
            descriptor.object_id,
            data,
            overwrite=True,
            mime_type=descriptor.mime_type or guess_mime_type(descriptor.name),
            file_name=descriptor.name,
        )
        self.output.success(f"uploaded {file_path}")

        # The write created a new version; track it so the next upload is allowed
        try:
            new_version = await descriptor.get_latest_version(self.client)
        except CmisAPIError as e:
            self.output.error(f"Could not refresh file version {file_path}: {e}")
            return SyncResult(
                SyncStatus.UPLOADED,
                file_path,
                descriptor.node_id,
                message="version not refreshed",
            )

        await asyncio.to_thread(
            self.registry.set_version, descriptor.node_id, new_version
        )
        return SyncResult(
            SyncStatus.UPLOADED, file_path, descriptor.node_id, version=new_version
        )

    # =========================
    # Download
    # =========================

    async def download_file(
        self, local_dir: Path, descriptor: RemoteFileDescriptor
    ) -> SyncResult:
        """Download a remote file unless the local copy already has its content.

        Args:
            local_dir: Directory receiving the file (created if missing)
            descriptor: Remote file to fetch

        Returns:
            SyncResult describing the outcome

        Raises:
            CmisNetworkError: If the repository cannot be reached
            CmisDownloadError: If the local file cannot be written
            StreamError: If the remote stream fails before all bytes arrived
        """
        local_dir = Path(local_dir)
        await asyncio.to_thread(local_dir.mkdir, parents=True, exist_ok=True)
        file_path = local_dir / descriptor.name

        async with self.client.stream_content(descriptor.object_id) as response:
            if response.status_code != HTTP_OK:
                self.output.error(f"Download failed {response.status_code} {file_path}")
                return SyncResult(
                    SyncStatus.SKIPPED_REMOTE_STATUS,
                    file_path,
                    descriptor.node_id,
                    message=f"HTTP {response.status_code}",
                )

            try:
                local_data: Optional[bytes] = await asyncio.to_thread(
                    file_path.read_bytes
                )
            except OSError:
                local_data = None

            if local_data is None:
                await self._write_file(file_path, response.aiter_bytes())
                status = SyncStatus.DOWNLOADED
            else:
                status = await self._replace_if_different(
                    file_path, response.aiter_bytes(), local_data
                )

        await asyncio.to_thread(
            self.registry.set_version, descriptor.node_id, descriptor.version
        )
        if status == SyncStatus.DOWNLOADED:
            self.output.success(f"downloaded {file_path}")
        return SyncResult(status, file_path, descriptor.node_id, version=descriptor.version)

    async def _replace_if_different(
        self, file_path: Path, remote_stream: AsyncIterable[bytes], local_data: bytes
    ) -> SyncStatus:
        """Compare remote content with the local file and overwrite it if different.

        The remote bytes are kept while they are digested, since they are
        needed for the write once the comparison says the file changed.
        """
        with tempfile.SpooledTemporaryFile(max_size=self.spool_threshold) as buffer:
            same = await contents_equal(
                remote_stream, local_data, tee=buffer, algorithm=self.algorithm
            )
            if same:
                logger.debug(f"{file_path} is unchanged")
                return SyncStatus.UNCHANGED

            await self._write_file(file_path, _iter_file(buffer))
        return SyncStatus.DOWNLOADED

    async def _write_file(self, file_path: Path, chunks: AsyncIterable[bytes]) -> None:
        """Write chunks to ``file_path``, replacing it only once all bytes arrived.

        Raises:
            StreamError: If the source of the chunks fails
            CmisDownloadError: If the local file cannot be written
        """
        part_path = file_path.with_name(f".{file_path.name}.part")
        try:
            with open(part_path, "wb") as f:
                async for chunk in _read_stream(chunks):
                    await asyncio.to_thread(f.write, chunk)
            await asyncio.to_thread(os.replace, part_path, file_path)
        except OSError as e:
            raise CmisDownloadError(f"error writing file {file_path}: {e}") from e
        finally:
            part_path.unlink(missing_ok=True)
