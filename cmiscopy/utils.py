"""Utility functions for cmiscopy."""

import mimetypes
from typing import Optional

# =============================================================================
# Constants for transfer operations
# =============================================================================

# Chunk size used when reading content streams (64 KB)
DEFAULT_STREAM_CHUNK_SIZE: int = 64 * 1024

# Remote content larger than this is spooled to disk while being compared (8 MB)
DEFAULT_SPOOL_THRESHOLD: int = 8 * 1024 * 1024

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Page size for folder listings
DEFAULT_PAGE_SIZE: int = 100

DEFAULT_MIME_TYPE: str = "application/octet-stream"


# =============================================================================
# Path utilities
# =============================================================================


def strip_trailing_slash(path: Optional[str]) -> str:
    """Remove trailing slashes from a path.

    Args:
        path: Path string (None is treated as empty)

    Returns:
        Path without trailing slashes

    Examples:
        >>> strip_trailing_slash("/cmis/root/")
        '/cmis/root'
        >>> strip_trailing_slash("local/root")
        'local/root'
    """
    if not path:
        return ""
    stripped = path.rstrip("/")
    # Keep the repository root addressable
    if not stripped and path.startswith("/"):
        return "/"
    return stripped


def join_remote_path(base: str, name: str) -> str:
    """Join a repository folder path and a child name.

    Examples:
        >>> join_remote_path("/sites/docs", "a.txt")
        '/sites/docs/a.txt'
        >>> join_remote_path("/", "a.txt")
        '/a.txt'
    """
    name = name.strip("/")
    if not base or base == "/":
        return f"/{name}"
    return f"{base.rstrip('/')}/{name}"


# =============================================================================
# Content type utilities
# =============================================================================


def guess_mime_type(file_name: str) -> str:
    """Guess a MIME type from a file name.

    Args:
        file_name: File name or path

    Returns:
        MIME type string (defaults to 'application/octet-stream')
    """
    mime_type, _ = mimetypes.guess_type(file_name)
    return mime_type or DEFAULT_MIME_TYPE
