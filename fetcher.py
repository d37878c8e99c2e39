"""
HTTP fetcher for the storefront.

Sends browser-like headers (the site serves different markup, or nothing, to
obvious bots), follows redirects, and caches successful page bodies by URL.
Failures raise FetchError and are never cached, so the next call retries.
"""

import logging

import httpx

from cache import TTLCache

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class FetchError(Exception):
    """An upstream page could not be fetched. ``status_code`` is None for network errors."""

    def __init__(self, url: str, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        detail = f"HTTP {status_code}" if status_code is not None else "network error"
        super().__init__(f"GET {url} failed: {detail}")


class Fetcher:
    """Cached GET / HEAD against the storefront over one shared AsyncClient."""

    def __init__(
        self,
        page_cache: TTLCache,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ):
        self.page_cache = page_cache
        self._client = client
        self._timeout = timeout
        self.requests_made = 0

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(headers=HEADERS, timeout=self._timeout)
        return self._client

    async def get(self, url: str, ttl: float | None = None) -> str:
        """Return the page body, from cache while fresh.

        Raises FetchError on a non-2xx response or a transport failure.
        """
        cached = self.page_cache.get(url, ttl)
        if cached is not None:
            logger.debug("Page cache hit: %s", url)
            return cached

        self.requests_made += 1
        try:
            resp = await self.client.get(url, headers=HEADERS, follow_redirects=True)
        except httpx.HTTPError as exc:
            logger.warning("GET %s failed: %s", url, exc)
            raise FetchError(url) from exc

        if not resp.is_success:
            logger.warning("GET %s returned %d", url, resp.status_code)
            raise FetchError(url, resp.status_code)

        html = resp.text
        self.page_cache.set(url, html)
        return html

    async def head_ok(self, url: str) -> bool:
        """True if a HEAD request for ``url`` ends in a 2xx response."""
        self.requests_made += 1
        try:
            resp = await self.client.head(url, headers=HEADERS, follow_redirects=True)
        except httpx.HTTPError:
            logger.warning("HEAD %s failed", url, exc_info=True)
            return False
        return resp.is_success

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
