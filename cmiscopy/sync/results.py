"""Per-file outcomes of sync operations."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class SyncStatus(str, Enum):
    """Terminal states of a single upload or download."""

    UPLOADED = "uploaded"
    """Local content was pushed to the repository"""

    DOWNLOADED = "downloaded"
    """Remote content was written to the local file"""

    UNCHANGED = "unchanged"
    """Local and remote content are identical"""

    SKIPPED_OUT_OF_SYNC = "skipped_out_of_sync"
    """Upload refused: the local copy is older than the remote version"""

    SKIPPED_READ_FAILURE = "skipped_read_failure"
    """Upload skipped: the local file could not be read"""

    SKIPPED_REMOTE_STATUS = "skipped_remote_status"
    """Download skipped: the repository answered with a non-success status"""

    FAILED = "failed"
    """The operation raised an error"""


@dataclass
class SyncResult:
    """Result of syncing one file."""

    status: SyncStatus
    path: Path
    node_id: str
    version: Optional[str] = None
    """Version label recorded in the registry by this operation"""

    message: str = ""

    @property
    def transferred(self) -> bool:
        return self.status in (SyncStatus.UPLOADED, SyncStatus.DOWNLOADED)

    @property
    def skipped(self) -> bool:
        return self.status.value.startswith("skipped")

    @property
    def failed(self) -> bool:
        return self.status == SyncStatus.FAILED
