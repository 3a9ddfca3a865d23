"""
Throttled Fetcher - Rate-limited HTTP client owned by one source adapter.

Each fetcher enforces a minimum interval between the starts of consecutive
requests it issues and applies a fixed browser-like header profile. The
throttle state lives on the instance, so a slow origin never delays another
source.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urljoin, urlparse

import aiohttp

from otakuhub.core.exceptions import FetchFailure


logger = logging.getLogger(__name__)


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)


def default_headers(
    user_agent: str = DEFAULT_USER_AGENT,
    accept_language: str = "id-ID,id;q=0.9,en-US;q=0.8,en;q=0.7",
    referer: Optional[str] = None,
) -> Dict[str, str]:
    """Build the identity header profile sent with every request."""
    headers = {
        'User-Agent': user_agent,
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8',
        'Accept-Language': accept_language,
        'Accept-Encoding': 'gzip, deflate',
        'Connection': 'keep-alive',
        'Upgrade-Insecure-Requests': '1',
    }
    if referer:
        headers['Referer'] = referer
    return headers


class ThrottledFetcher:
    """
    HTTP client with per-instance request spacing and bounded retries.

    Transport errors (timeouts, refused connections, DNS failures) are
    retried up to ``max_retries`` times. Non-success statuses fail
    immediately. Either way the caller receives :class:`FetchFailure`.
    """

    def __init__(
        self,
        base_url: str,
        min_interval: float = 1.0,
        headers: Optional[Mapping[str, str]] = None,
        timeout: float = 20.0,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        name: Optional[str] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            base_url: Origin used to resolve relative URLs
            min_interval: Minimum seconds between request starts
            headers: Header profile (defaults to :func:`default_headers`)
            timeout: Total request timeout in seconds
            max_retries: Retry attempts for transport errors
            retry_delay: Base delay for linear retry backoff
            name: Label used in log messages
        """
        self.base_url = base_url.rstrip('/')
        self.min_interval = min_interval
        self.headers = dict(headers or default_headers(referer=self.base_url + '/'))
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.name = name or urlparse(self.base_url).netloc

        self._session: Optional[aiohttp.ClientSession] = None
        self._last_request_time: Optional[float] = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=10,
                limit_per_host=5,
                ttl_dns_cache=300,
                use_dns_cache=True
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self.headers
            )

        return self._session

    def absolute(self, url: str) -> str:
        """Resolve a site-relative URL against the base URL."""
        if not urlparse(url).netloc:
            return urljoin(self.base_url + '/', url.lstrip('/'))
        return url

    async def _rate_limit(self) -> None:
        """Wait until ``min_interval`` has passed since the previous request began."""
        now = time.monotonic()
        start_at = now
        if self._last_request_time is not None:
            start_at = max(now, self._last_request_time + self.min_interval)

        # Reserve the slot before sleeping so concurrent callers queue behind it
        self._last_request_time = start_at

        delay = start_at - now
        if delay > 0:
            logger.debug(f"[{self.name}] throttling for {delay:.2f}s")
            await asyncio.sleep(delay)

    async def fetch(
        self,
        url: str,
        method: str = 'GET',
        data: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """
        Issue a request and return the response body as text.

        Args:
            url: Absolute or site-relative URL
            method: HTTP method
            data: Form fields for POST requests
            headers: Extra headers merged over the profile

        Returns:
            Response body text

        Raises:
            FetchFailure: If the request fails after retries or returns a non-2xx status
        """
        url = self.absolute(url)
        last_exception: Optional[BaseException] = None

        for attempt in range(self.max_retries + 1):
            await self._rate_limit()

            try:
                logger.debug(f"[{self.name}] {method} {url} (attempt {attempt + 1})")

                async with self.session.request(method, url, data=data, headers=headers) as response:
                    if not 200 <= response.status < 300:
                        raise FetchFailure(
                            f"HTTP {response.status} error for {url}",
                            url=url,
                            status_code=response.status,
                        )

                    return await response.text(errors='replace')

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exception = e
                logger.warning(f"[{self.name}] request failed (attempt {attempt + 1}): {e!r}")

                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * (attempt + 1))

        raise FetchFailure(
            f"Request failed after {self.max_retries + 1} attempts: {last_exception!r}",
            url=url,
            details=str(last_exception)
        )

    async def get(self, url: str, **kwargs: Any) -> str:
        """GET a page."""
        return await self.fetch(url, 'GET', **kwargs)

    async def post_form(
        self,
        url: str,
        data: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """POST form-encoded fields and return the response text."""
        merged = {'Content-Type': 'application/x-www-form-urlencoded'}
        merged.update(headers or {})
        return await self.fetch(url, 'POST', data=dict(data), headers=merged)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            try:
                await self._session.close()
                logger.debug(f"[{self.name}] HTTP session closed")
            except Exception as e:
                logger.debug(f"[{self.name}] error closing HTTP session: {e}")
        self._session = None


# Export fetcher components
__all__ = ["ThrottledFetcher", "default_headers", "DEFAULT_USER_AGENT"]
