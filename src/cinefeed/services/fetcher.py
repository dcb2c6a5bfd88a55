"""HTTP fetcher with per-source cookie jar, timeouts and retry on transient errors."""

import asyncio
import logging
from typing import Any

import httpx

from cinefeed.config import settings
from cinefeed.errors import FetchError
from cinefeed.scrapers.models import RawDocument

logger = logging.getLogger(__name__)


def is_transient_status(status_code: int) -> bool:
    """5xx responses are worth retrying, 4xx are not."""
    return 500 <= status_code < 600


class Fetcher:
    """
    Retrieves pages for one source.

    One ``Fetcher`` owns one ``httpx.AsyncClient`` and therefore one cookie
    jar, so a source that needs session continuity (a warm-up request before
    an API call, a multi-step listing walk) keeps its cookies for the whole
    fetch sequence and shares them with no other source.

    Use as an async context manager::

        async with Fetcher(source_id="cinema_edera") as fetcher:
            doc = await fetcher.fetch("https://www.cinemaedera.it/")
    """

    def __init__(
        self,
        source_id: str = "",
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.source_id = source_id
        self.timeout = settings.fetch_timeout if timeout is None else timeout
        self.max_retries = settings.fetch_max_retries if max_retries is None else max_retries
        self.backoff = settings.fetch_backoff if backoff is None else backoff
        self.user_agent = user_agent or settings.user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "Fetcher":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            verify=settings.verify_ssl,
            follow_redirects=True,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> RawDocument:
        """
        GET a URL, retrying transient failures with exponential backoff.

        Args:
            url: Absolute URL to fetch
            params: Optional query string parameters
            headers: Optional extra request headers

        Returns:
            The fetched document

        Raises:
            FetchError: On a non-retryable failure, or once retries are exhausted
        """
        if self._client is None:
            raise RuntimeError("Fetcher used outside of 'async with'")

        attempt = 0
        while True:
            try:
                response = await self._client.get(url, params=params, headers=headers)
            except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
                raise FetchError(url, f"invalid URL: {e}", transient=False) from e
            except httpx.TimeoutException as e:
                error = FetchError(url, f"timeout: {type(e).__name__}", transient=True)
            except httpx.TransportError as e:
                error = FetchError(url, f"network error: {type(e).__name__}: {e}", transient=True)
            else:
                status = response.status_code
                if status < 400:
                    return RawDocument(url=str(response.url), text=response.text, status_code=status)
                error = FetchError(
                    url,
                    f"HTTP {status}",
                    transient=is_transient_status(status),
                    status_code=status,
                )

            if not error.transient or attempt >= self.max_retries:
                raise error

            delay = self.backoff * (2**attempt)
            attempt += 1
            logger.warning(
                f"{self.source_id or 'fetch'}: {error}; retry {attempt}/{self.max_retries} "
                f"in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
