"""cmiscopy - copy files and folders to and from CMIS repositories."""

from .api import CmisClient
from .checksum import ChecksumStream, contents_equal
from .exceptions import (
    CmisAPIError,
    CmisAuthenticationError,
    CmisConfigError,
    CmisConflictError,
    CmisCopyError,
    CmisDownloadError,
    CmisInvalidResponseError,
    CmisNetworkError,
    CmisNotFoundError,
    CmisPermissionError,
    CmisUploadError,
    StreamError,
)
from .models import RemoteFileDescriptor
from .sync import SyncEngine, SyncResult, SyncStatus, VersionRegistry
from .task import CmisCopyTask

__version__ = "0.4.0"

__all__ = [
    "CmisClient",
    "CmisCopyTask",
    "ChecksumStream",
    "RemoteFileDescriptor",
    "SyncEngine",
    "SyncResult",
    "SyncStatus",
    "VersionRegistry",
    "contents_equal",
    "CmisAPIError",
    "CmisAuthenticationError",
    "CmisConfigError",
    "CmisConflictError",
    "CmisCopyError",
    "CmisDownloadError",
    "CmisInvalidResponseError",
    "CmisNetworkError",
    "CmisNotFoundError",
    "CmisPermissionError",
    "CmisUploadError",
    "StreamError",
]
