"""Request manager providing the default fetch_html capability.

AsyncRequestManager wraps an httpx.AsyncClient and turns a URL into page
HTML, mapping every failure mode onto FetchError:

- non-2xx status: HTTPStatusFetchError
- timeout: FetchTimeoutError
- connection or protocol failure: FetchError

Many catalog sites reject requests that do not look like they come from a
browser, so a browser-like header set is sent by default. An optional
fallback proxy (a URL prefix such as a CORS relay) is tried once when the
direct request fails.

Instances are callable, so a manager can be passed anywhere a FetchHtml is
expected::

    async with AsyncRequestManager(timeout=15.0) as fetch_html:
        result = await crawl_with_driver(url, driver, fetch_html)
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from anidock.common.exceptions import (
    FetchError,
    FetchTimeoutError,
    HTTPStatusFetchError,
)

logger = logging.getLogger(__name__)

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
    "Cache-Control": "no-cache",
    "DNT": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}


class AsyncRequestManager:
    """Fetches page HTML over httpx for the extraction engine.

    Example::

        manager = AsyncRequestManager(
            timeout=30.0,
            fallback_proxy="https://api.allorigins.win/raw?url=",
        )
        html = await manager.fetch_html("https://site.test/catalog")
        await manager.close()
    """

    def __init__(
        self,
        timeout: float | None = 30.0,
        headers: dict[str, str] | None = None,
        fallback_proxy: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the request manager.

        Args:
            timeout: Request timeout in seconds. None means no timeout.
            headers: Headers merged over DEFAULT_HEADERS.
            fallback_proxy: URL prefix the percent-encoded target URL is
                appended to for a single retry after a failed fetch.
            client: Pre-built client to use instead of creating one. The
                manager does not close a client it did not create.
        """
        self.timeout = timeout
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self.fallback_proxy = fallback_proxy
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                timeout=timeout,
                headers=self.headers,
                follow_redirects=True,
            )
        self._client = client

    async def close(self) -> None:
        """Close the HTTP client if this manager created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncRequestManager:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def __call__(self, url: str) -> str:
        return await self.fetch_html(url)

    async def fetch_html(self, url: str) -> str:
        """Fetch url and return the response body as text.

        Args:
            url: Absolute URL to fetch.

        Returns:
            The decoded response body.

        Raises:
            FetchError: If neither the direct request nor the fallback
                proxy (when configured) produced a 2xx response.
        """
        try:
            return await self._get(url, url)
        except FetchError as e:
            if self.fallback_proxy is None:
                raise
            logger.warning(
                f"Direct fetch failed ({e.message}), retrying via proxy",
                extra={"url": url},
            )
            proxied = f"{self.fallback_proxy}{quote(url, safe='')}"
            try:
                return await self._get(proxied, url)
            except FetchError as proxy_error:
                raise proxy_error from e

    async def _get(self, request_url: str, url: str) -> str:
        logger.debug(f"GET {request_url}", extra={"url": url})
        try:
            response = await self._client.get(request_url, headers=self.headers)
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(url, self.timeout) from e
        except (httpx.InvalidURL, ValueError) as e:
            raise FetchError(url, f"Invalid URL {url}: {e}") from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"Failed to fetch {url}: {e}") from e

        if not response.is_success:
            raise HTTPStatusFetchError(url, response.status_code)
        return response.text
