"""Copy task: walks a repository path and syncs every document in it."""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from .api import CmisClient
from .exceptions import CmisCopyError
from .models import RemoteFileDescriptor
from .output import OutputFormatter
from .sync.engine import SyncEngine
from .sync.registry import VersionRegistry
from .sync.results import SyncResult, SyncStatus
from .utils import join_remote_path, strip_trailing_slash

logger = logging.getLogger(__name__)

UPLOAD = "upload"
DOWNLOAD = "download"

_ACTIONS = {
    "upload": UPLOAD,
    "u": UPLOAD,
    "download": DOWNLOAD,
    "d": DOWNLOAD,
}


def resolve_action(action: Optional[str]) -> str:
    """Normalize an action name.

    Args:
        action: upload/u, download/d (case-insensitive) or None for download

    Returns:
        "upload" or "download"

    Raises:
        ValueError: If the action is not recognized
    """
    if action is None:
        return DOWNLOAD
    try:
        return _ACTIONS[action.lower()]
    except KeyError:
        raise ValueError(f"Invalid action: {action}") from None


@dataclass
class CopyReport:
    """Results of a copy task."""

    action: str
    results: list[SyncResult] = field(default_factory=list)

    @property
    def counts(self) -> Counter:
        return Counter(result.status for result in self.results)

    @property
    def transferred(self) -> list[SyncResult]:
        return [r for r in self.results if r.transferred]

    @property
    def failures(self) -> list[SyncResult]:
        return [r for r in self.results if r.failed]

    @property
    def success(self) -> bool:
        return not self.failures


class CmisCopyTask:
    """Copies files between a repository folder and a local directory.

    Examples:
        >>> task = CmisCopyTask(client, registry, "/sites/docs/", "docs/",
        ...                     specific_path="pages/", action="u")
        >>> task.cmis_path, task.local_path, task.action
        ('/sites/docs/pages', 'docs/pages', 'upload')
    """

    def __init__(
        self,
        client: CmisClient,
        registry: VersionRegistry,
        cmis_root: str,
        local_root: str,
        specific_path: Optional[str] = None,
        action: Optional[str] = None,
        workers: int = 1,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize the copy task.

        Args:
            client: CMIS client (already carrying credentials)
            registry: Version registry
            cmis_root: Repository root path of the copy
            local_root: Local root directory of the copy
            specific_path: Optional sub-path appended to both roots
            action: upload/u or download/d (default: download)
            workers: Maximum number of files transferred concurrently

        Raises:
            ValueError: If the action is invalid
        """
        self.action = resolve_action(action)
        self.cmis_path = strip_trailing_slash(cmis_root)
        self.local_path = strip_trailing_slash(local_root)

        sub_path = strip_trailing_slash(specific_path).strip("/")
        if sub_path:
            self.cmis_path = join_remote_path(self.cmis_path, sub_path)
            self.local_path = (
                f"{self.local_path}/{sub_path}" if self.local_path else sub_path
            )

        self.client = client
        self.output = output or OutputFormatter()
        self.engine = SyncEngine(client, registry, self.output)
        self.workers = max(1, workers)

    async def run(self) -> CopyReport:
        """Run the copy task.

        Returns:
            CopyReport with one result per document

        Raises:
            CmisAPIError: If the starting path cannot be resolved or listed
        """
        self.output.info(f"{self.action}: {self.cmis_path} <-> {self.local_path}")

        root = RemoteFileDescriptor.from_cmis_object(
            await self.client.get_object_by_path(self.cmis_path)
        )
        local_path = Path(self.local_path or ".")

        if root.is_document:
            files = [(local_path.parent, root)]
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                transient=True,
                disable=self.output.quiet or self.output.json_output,
            ) as progress:
                scan = progress.add_task("Scanning remote folder...", total=None)
                files = await self._collect(self.cmis_path, local_path)
                progress.update(scan, description=f"Found {len(files)} file(s)")

        report = CopyReport(self.action)
        semaphore = asyncio.Semaphore(self.workers)

        async def run_one(local_dir: Path, descriptor: RemoteFileDescriptor) -> SyncResult:
            async with semaphore:
                return await self.sync_file(local_dir, descriptor)

        report.results = list(
            await asyncio.gather(*(run_one(d, f) for d, f in files))
        )
        self._display_summary(report)
        return report

    async def _collect(
        self, cmis_path: str, local_dir: Path
    ) -> list[tuple[Path, RemoteFileDescriptor]]:
        """Recursively list the documents below a repository folder."""
        files: list[tuple[Path, RemoteFileDescriptor]] = []
        for raw in await self.client.get_children(cmis_path):
            try:
                child = RemoteFileDescriptor.from_cmis_object(raw)
            except CmisCopyError as e:
                logger.warning(f"Skipping unreadable entry in {cmis_path}: {e}")
                continue

            if child.is_folder:
                files.extend(
                    await self._collect(
                        join_remote_path(cmis_path, child.name), local_dir / child.name
                    )
                )
            elif child.is_document:
                files.append((local_dir, child))
        return files

    async def sync_file(
        self, local_dir: Path, descriptor: RemoteFileDescriptor
    ) -> SyncResult:
        """Sync one file in the task's direction.

        Errors are reported and returned as FAILED results so the rest of
        the batch keeps going.
        """
        try:
            if self.action == UPLOAD:
                return await self.engine.upload_file(local_dir, descriptor)
            return await self.engine.download_file(local_dir, descriptor)
        except (CmisCopyError, OSError) as e:
            file_path = local_dir / descriptor.name
            self.output.error(f"Error syncing {file_path}: {e}")
            return SyncResult(
                SyncStatus.FAILED, file_path, descriptor.node_id, message=str(e)
            )

    def _display_summary(self, report: CopyReport) -> None:
        counts = report.counts
        self.output.print("")
        if report.success:
            self.output.success(
                f"{self.action.capitalize()} complete! "
                f"{len(report.transferred)} of {len(report.results)} file(s) transferred"
            )
        else:
            self.output.error(f"{len(report.failures)} file(s) failed")

        labels = [
            (SyncStatus.UPLOADED, "Uploaded"),
            (SyncStatus.DOWNLOADED, "Downloaded"),
            (SyncStatus.UNCHANGED, "Unchanged"),
            (SyncStatus.SKIPPED_OUT_OF_SYNC, "Out of sync"),
            (SyncStatus.SKIPPED_READ_FAILURE, "Unreadable"),
            (SyncStatus.SKIPPED_REMOTE_STATUS, "Remote unavailable"),
            (SyncStatus.FAILED, "Failed"),
        ]
        for status, label in labels:
            if counts[status]:
                self.output.info(f"  {label}: {counts[status]}")
