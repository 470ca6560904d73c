"""HTTP fetching of remote images with httpx."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping

import httpx

from ..core.error_handling import call_with_retries
from ..core.exceptions import FetchError
from ..core.logging_config import get_logger

# Statuses treated as transient, as browsers' download helpers do.
RETRYABLE_STATUS_CODES = frozenset({408, 413, 429, 500, 502, 503, 504, 521, 522, 524})


def is_transient(error: BaseException) -> bool:
    """Whether a failed attempt is worth retrying."""
    if isinstance(error, FetchError):
        return error.status_code in RETRYABLE_STATUS_CODES
    return isinstance(
        error,
        (
            asyncio.TimeoutError,
            httpx.TimeoutException,
            httpx.NetworkError,
            httpx.RemoteProtocolError,
        ),
    )


class HttpxFetcher:
    """Binary GET over a shared httpx.AsyncClient."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        initial_delay: float = 1.0,
        backoff_factor: float = 2.0,
    ):
        self._client = client
        self._initial_delay = initial_delay
        self._backoff_factor = backoff_factor
        self._logger = get_logger("image-resizer.http")

    @classmethod
    @asynccontextmanager
    async def create(cls, **client_kwargs: Any) -> AsyncIterator["HttpxFetcher"]:
        """Open a client that follows redirects and close it afterwards."""
        client_kwargs.setdefault("follow_redirects", True)
        async with httpx.AsyncClient(**client_kwargs) as client:
            yield cls(client)

    async def get(
        self, url: str, headers: Mapping[str, str], timeout: float, retry_limit: int
    ) -> bytes:
        """
        Fetch a URL, retrying transient failures.

        Args:
            url: Absolute http(s) URL
            headers: Request headers
            timeout: Total time allowed for each attempt, body included, in seconds
            retry_limit: Retries after the first attempt

        Raises:
            FetchError: On a non-2xx response or a transport failure
        """
        try:
            return await call_with_retries(
                lambda: self._get_once(url, headers, timeout),
                retries=retry_limit,
                is_retryable=is_transient,
                initial_delay=self._initial_delay,
                backoff_factor=self._backoff_factor,
                name=f"GET {url}",
                logger=self._logger,
            )
        except asyncio.TimeoutError as e:
            raise FetchError(f"Timed out after {timeout}s") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e

    async def _get_once(self, url: str, headers: Mapping[str, str], timeout: float) -> bytes:
        # httpx timeouts bound each network step; wait_for bounds the whole attempt.
        response = await asyncio.wait_for(
            self._client.get(url, headers=dict(headers), timeout=timeout), timeout
        )
        if not response.is_success:
            raise FetchError(
                f"Response code {response.status_code} ({response.reason_phrase})",
                status_code=response.status_code,
            )
        return response.content
