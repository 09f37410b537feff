"""API client for CMIS repositories (browser binding)."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .exceptions import (
    CmisAPIError,
    CmisAuthenticationError,
    CmisConflictError,
    CmisInvalidResponseError,
    CmisNetworkError,
    CmisNotFoundError,
    CmisPermissionError,
    CmisUploadError,
)
from .utils import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_MIME_TYPE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_RETRY_DELAY,
)

logger = logging.getLogger(__name__)


class CmisClient:
    """Async client for a CMIS repository exposed over the browser binding.

    ``url`` is the root folder URL of the repository, for example
    ``https://alfresco.example.com/alfresco/api/-default-/public/cmis/versions/1.1/browser/root``.
    Every request, content streams included, carries the basic-auth
    credentials.
    """

    def __init__(
        self,
        url: str,
        username: str,
        password: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize CMIS client.

        Args:
            url: Browser binding root folder URL
            username: Repository user name
            password: Repository password
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (used by tests)
        """
        self.url = url.rstrip("/")
        self.username = username
        self.password = password
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                auth=httpx.BasicAuth(self.username, self.password),
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> CmisClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # =========================
    # Error handling
    # =========================

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        if isinstance(exception, CmisNetworkError):
            return True

        # Server errors (5xx) are transient; client errors are not
        if isinstance(exception, CmisAPIError) and exception.status_code is not None:
            return 500 <= exception.status_code < 600

        return False

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Add jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        """Extract the CMIS error message from a response body, if any."""
        try:
            if response.content:
                data = response.json()
                if isinstance(data, dict):
                    msg = data.get("message") or data.get("exception")
                    if msg:
                        return str(msg)
        except ValueError:
            pass
        return ""

    def _status_error(self, response: httpx.Response) -> CmisAPIError:
        """Translate a non-success response into an exception.

        Args:
            response: The failed response (body already read)

        Returns:
            Exception matching the CMIS error class of the status code
        """
        status_code = response.status_code
        detail = self._error_detail(response)

        if status_code == 401:
            return CmisAuthenticationError(
                "Invalid credentials or unauthorized access", status_code
            )
        elif status_code == 403:
            message = "Access forbidden - check your permissions"
            error_class: type[CmisAPIError] = CmisPermissionError
        elif status_code == 404:
            message = "Object not found"
            error_class = CmisNotFoundError
        elif status_code == 409:
            message = "Repository conflict"
            error_class = CmisConflictError
        else:
            message = f"Request failed with status {status_code}"
            error_class = CmisAPIError

        if detail:
            message = f"{message}: {detail}"
        return error_class(message, status_code)

    # =========================
    # Requests
    # =========================

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Make a metadata request with retry logic.

        Args:
            method: HTTP method
            url: Absolute URL
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            CmisAPIError: If the request fails after all retries
        """
        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.RequestError as e:
                error: CmisAPIError = CmisNetworkError(f"Network error: {e}")
                last_exception = error
                if self._should_retry(error, attempt):
                    await asyncio.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise error from e

            if response.is_error:
                error = self._status_error(response)
                last_exception = error
                if self._should_retry(error, attempt):
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug(
                        f"{method} {url} failed with {response.status_code}, "
                        f"retrying in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise error

            content_type = response.headers.get("Content-Type", "")
            if response.content and "json" not in content_type:
                if "text/html" in content_type:
                    # Login pages come back as HTML
                    raise CmisAuthenticationError(
                        "Repository returned HTML instead of JSON - check the URL "
                        "and credentials"
                    )
                raise CmisInvalidResponseError(
                    f"Unexpected response type: {content_type}"
                )

            if response.content:
                try:
                    return response.json()
                except ValueError as e:
                    raise CmisInvalidResponseError(
                        "Invalid JSON response from repository"
                    ) from e
            return {}

        if last_exception:
            raise last_exception
        raise CmisAPIError("Request failed after all retry attempts")

    def _path_url(self, path: str) -> str:
        path = path.strip("/")
        if not path:
            return self.url
        return f"{self.url}/{quote(path)}"

    # =========================
    # Metadata
    # =========================

    async def get_object(self, object_id: str, succinct: bool = True) -> dict[str, Any]:
        """Get object metadata by object id or node reference.

        Args:
            object_id: Object id (a node reference returns the latest version)
            succinct: Request the succinct property shape

        Returns:
            Object JSON
        """
        params = {"cmisselector": "object", "objectId": object_id}
        if succinct:
            params["succinct"] = "true"
        return await self._request("GET", self.url, params=params)

    async def get_object_by_path(
        self, path: str, succinct: bool = True
    ) -> dict[str, Any]:
        """Get object metadata by repository path.

        Args:
            path: Repository path (e.g. "/sites/docs/readme.txt")
            succinct: Request the succinct property shape

        Returns:
            Object JSON
        """
        params = {"cmisselector": "object"}
        if succinct:
            params["succinct"] = "true"
        return await self._request("GET", self._path_url(path), params=params)

    async def get_children(
        self,
        path: str,
        max_items: int = DEFAULT_PAGE_SIZE,
        succinct: bool = True,
    ) -> list[dict[str, Any]]:
        """Get all children of a folder, following pagination.

        Args:
            path: Repository folder path
            max_items: Number of children requested per page
            succinct: Request the succinct property shape

        Returns:
            List of child object JSON entries
        """
        url = self._path_url(path)
        children: list[dict[str, Any]] = []
        skip_count = 0

        while True:
            params = {
                "cmisselector": "children",
                "maxItems": str(max_items),
                "skipCount": str(skip_count),
            }
            if succinct:
                params["succinct"] = "true"
            result = await self._request("GET", url, params=params)
            objects = result.get("objects") or []
            children.extend(objects)

            if not result.get("hasMoreItems") or not objects:
                break
            skip_count += len(objects)

        logger.debug(f"Listed {len(children)} children of {path}")
        return children

    # =========================
    # Content streams
    # =========================

    def get_content_stream_url(self, object_id: str) -> str:
        """Build the URL of an object's content stream."""
        return f"{self.url}?cmisselector=content&objectId={quote(object_id, safe='')}"

    @asynccontextmanager
    async def stream_content(self, object_id: str) -> AsyncIterator[httpx.Response]:
        """Open an object's content stream.

        The response is yielded without checking its status so callers can
        decide how to treat a non-success status.

        Args:
            object_id: Object id of the document

        Yields:
            Streaming httpx response

        Raises:
            CmisNetworkError: If the repository cannot be reached
        """
        client = self._get_client()
        url = self.get_content_stream_url(object_id)
        try:
            async with client.stream("GET", url) as response:
                yield response
        except httpx.RequestError as e:
            raise CmisNetworkError(f"Network error reading content stream: {e}") from e

    async def set_content_stream(
        self,
        object_id: str,
        data: bytes,
        overwrite: bool = True,
        mime_type: Optional[str] = None,
        file_name: str = "content",
    ) -> dict[str, Any]:
        """Replace the content stream of a document.

        Args:
            object_id: Object id of the document
            data: New content
            overwrite: Overwrite existing content
            mime_type: Content MIME type
            file_name: File name sent with the content part

        Returns:
            Updated object JSON

        Raises:
            CmisUploadError: If the repository rejects the content
            CmisNetworkError: If the repository cannot be reached
        """
        client = self._get_client()
        form = {
            "cmisaction": "setContent",
            "objectId": object_id,
            "overwriteFlag": "true" if overwrite else "false",
            "succinct": "true",
        }
        files = {"content": (file_name, data, mime_type or DEFAULT_MIME_TYPE)}

        try:
            response = await client.post(self.url, data=form, files=files)
        except httpx.RequestError as e:
            raise CmisNetworkError(f"Network error during upload: {e}") from e

        if response.is_error:
            error = self._status_error(response)
            raise CmisUploadError(
                f"Upload failed: {error}", status_code=error.status_code
            ) from error

        try:
            return response.json() if response.content else {}
        except ValueError:
            return {}
