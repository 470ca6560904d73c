"""Protocol definitions for the collaborators of the batch pipeline."""

from typing import Any, Dict, List, Mapping, Optional, Protocol


class BlobStoreProtocol(Protocol):
    """Keyed blob store holding source images and receiving outputs.

    Implementations must be safe for concurrent use by several workers.
    """

    async def get(self, store_id: str, key: str) -> Any:
        """Return the value under ``key`` in ``store_id``, or None if missing."""
        ...

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Write ``data`` under ``key`` in the output store."""
        ...

    def public_url(self, key: str) -> str:
        """Public URL of ``key`` in the output store."""
        ...


class DatasetProtocol(Protocol):
    """Append-only sink for structured per-item records."""

    async def append(self, record: Mapping[str, Any]) -> None:
        """Append one record."""
        ...


class HttpFetcherProtocol(Protocol):
    """Binary HTTP GET with retries."""

    async def get(
        self, url: str, headers: Mapping[str, str], timeout: float, retry_limit: int
    ) -> bytes:
        """Fetch ``url`` and return the body, raising FetchError on failure."""
        ...


class HeaderGeneratorProtocol(Protocol):
    """Produces a plausible browser header set per call."""

    def get_headers(
        self,
        browsers: Optional[List[str]] = None,
        operating_systems: Optional[List[str]] = None,
        devices: Optional[List[str]] = None,
        locales: Optional[List[str]] = None,
    ) -> Dict[str, str]:
        """Return headers constrained to the given families."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...
