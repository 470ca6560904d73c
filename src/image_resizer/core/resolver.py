"""Resolution of image sources to raw bytes."""

from typing import Any, Dict, List

from .exceptions import FetchError, ResolutionError, ResolutionErrorKind, StoreError
from .protocols import BlobStoreProtocol, HeaderGeneratorProtocol, HttpFetcherProtocol
from .sources import ImageSource, RemoteURL, StoreRef

DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_FETCH_RETRIES = 2

HEADER_CONSTRAINTS: Dict[str, List[str]] = {
    "browsers": ["chrome", "firefox", "edge"],
    "operating_systems": ["windows", "macos", "linux"],
    "devices": ["desktop"],
    "locales": ["en-US"],
}


class SourceResolver:
    """Turns an ImageSource into bytes via HTTP or the blob store."""

    def __init__(
        self,
        fetcher: HttpFetcherProtocol,
        store: BlobStoreProtocol,
        header_generator: HeaderGeneratorProtocol,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        fetch_retries: int = DEFAULT_FETCH_RETRIES,
    ):
        self._fetcher = fetcher
        self._store = store
        self._header_generator = header_generator
        self._fetch_timeout = fetch_timeout
        self._fetch_retries = fetch_retries

    async def resolve(self, source: ImageSource) -> bytes:
        """
        Fetch the raw bytes behind a source.

        Raises:
            ResolutionError: Classified by ResolutionErrorKind
        """
        if isinstance(source, RemoteURL):
            return await self._fetch_remote(source)
        if isinstance(source, StoreRef):
            return await self._read_store(source)
        raise ResolutionError(
            ResolutionErrorKind.UNSUPPORTED_SOURCE,
            f"Unsupported image source: {source!r}",
        )

    async def _fetch_remote(self, source: RemoteURL) -> bytes:
        headers = self._header_generator.get_headers(**HEADER_CONSTRAINTS)
        try:
            body = await self._fetcher.get(
                source.url, headers, self._fetch_timeout, self._fetch_retries
            )
        except FetchError as e:
            raise ResolutionError(
                ResolutionErrorKind.FETCH_FAILED,
                f"Failed to fetch image from URL: {e}",
            ) from e

        if not isinstance(body, (bytes, bytearray)):
            raise ResolutionError(
                ResolutionErrorKind.FETCH_FAILED,
                "Failed to fetch image from URL: Response body is not binary",
            )
        return bytes(body)

    async def _read_store(self, source: StoreRef) -> bytes:
        try:
            value = await self._store.get(source.store_id, source.key)
        except StoreError as e:
            raise ResolutionError(
                ResolutionErrorKind.FETCH_FAILED,
                f"Failed to fetch image from key-value store: {e}",
            ) from e
        if value is None:
            raise ResolutionError(
                ResolutionErrorKind.NOT_FOUND,
                f'Key "{source.key}" not found in store "{source.store_id}"',
            )
        return as_bytes(value)


def as_bytes(value: Any) -> bytes:
    """
    Coerce a stored value to bytes.

    Strings are binary data with one byte per character (Latin-1), never
    UTF-8 text.

    Raises:
        ResolutionError: UNSUPPORTED_VALUE_TYPE for anything else
    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return value.encode("latin-1")
        except UnicodeEncodeError as e:
            raise ResolutionError(
                ResolutionErrorKind.UNSUPPORTED_VALUE_TYPE,
                "String value in key-value store is not single-byte binary data",
            ) from e
    raise ResolutionError(
        ResolutionErrorKind.UNSUPPORTED_VALUE_TYPE,
        "Value in key-value store is not a valid image buffer "
        f"(got {type(value).__name__})",
    )
