"""Custom exceptions for cmiscopy."""

from typing import Optional


class CmisCopyError(Exception):
    """Base exception for all cmiscopy errors."""

    pass


class CmisAPIError(CmisCopyError):
    """Base exception for CMIS repository errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CmisAuthenticationError(CmisAPIError):
    """Raised when the repository rejects the configured credentials."""

    pass


class CmisPermissionError(CmisAPIError):
    """Raised when access to an object is forbidden."""

    pass


class CmisNotFoundError(CmisAPIError):
    """Raised when an object or path does not exist in the repository."""

    pass


class CmisConflictError(CmisAPIError):
    """Raised on constraint, versioning or update conflicts (HTTP 409)."""

    pass


class CmisNetworkError(CmisAPIError):
    """Raised when the repository cannot be reached."""

    pass


class CmisInvalidResponseError(CmisAPIError):
    """Raised when the repository returns data that cannot be interpreted."""

    pass


class CmisUploadError(CmisAPIError):
    """Raised when pushing a content stream fails."""

    pass


class CmisDownloadError(CmisAPIError):
    """Raised when fetching or writing a content stream fails."""

    pass


class CmisConfigError(CmisCopyError):
    """Raised when required connection settings are missing."""

    pass


class StreamError(CmisCopyError):
    """Raised when a byte stream fails before it was fully consumed.

    The triggering exception is available as ``__cause__``.
    """

    pass
