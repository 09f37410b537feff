"""Persistent registry of the last synced version of each remote file.

An upload is only allowed while the registry still holds the version label
the repository reports for a file. A newer remote version means the local
copy is stale and must be downloaded first.
"""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class VersionRegistry:
    """Maps node ids to the version label of their last successful transfer.

    The file is loaded once when the registry is created and rewritten on
    every update. Writes go to a temporary file that replaces the registry
    file, so an interrupted write never corrupts existing entries. Updates
    are serialized with a lock, so they may be issued from worker threads.
    """

    def __init__(self, path: Path):
        """Initialize the registry.

        Args:
            path: JSON file backing the registry
        """
        self.path = path
        self._versions: dict[str, str] = self._load()
        self._lock = threading.Lock()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            logger.debug(f"No version registry found at {self.path}")
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            versions = data.get("versions", {})
            if not isinstance(versions, dict):
                raise ValueError("'versions' is not a mapping")
            logger.debug(f"Loaded {len(versions)} version(s) from {self.path}")
            return {str(k): str(v) for k, v in versions.items()}
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to load version registry {self.path}: {e}")
            return {}

    def _flush(self) -> None:
        data = {
            "updated": datetime.now().isoformat(),
            "versions": dict(self._versions),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def has_version(self, node_id: str, version: Optional[str]) -> bool:
        """Check whether the stored label for a node equals ``version`` exactly."""
        stored = self._versions.get(node_id)
        return stored is not None and stored == version

    def get_version(self, node_id: str) -> Optional[str]:
        return self._versions.get(node_id)

    def set_version(self, node_id: str, version: str) -> None:
        """Record the synced version of a node and persist it.

        The mapping is on disk when this returns.

        Args:
            node_id: Node identity of the file
            version: Version label that was transferred
        """
        with self._lock:
            self._versions[node_id] = version
            self._flush()
        logger.debug(f"Recorded version {version} for {node_id}")

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._versions

    def __len__(self) -> int:
        return len(self._versions)
