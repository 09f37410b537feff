"""Sync engine for cmiscopy - checksum-gated upload/download of single files."""

from .engine import SyncEngine
from .registry import VersionRegistry
from .results import SyncResult, SyncStatus

__all__ = [
    "SyncEngine",
    "SyncResult",
    "SyncStatus",
    "VersionRegistry",
]
