"""
Shared test fixtures for the OtakuHub test suite.

Provides:
- FakeFetcher: scripted origin keyed by URL path (no network)
- FakeDriver: scripted RenderingDriver recording interactions (no browser)
- make_plugin: builds an adapter wired to the fakes with an in-process cache
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union
from urllib.parse import urljoin, urlparse

import pytest

from otakuhub.core.cache import MemoryCache, TwoTierCache
from otakuhub.core.config_schemas import RenderSettings
from otakuhub.core.exceptions import FetchFailure, RenderingFailure
from otakuhub.core.renderer import RenderingDriver


PageValue = Union[str, Exception]

# ---------------------------------------------------------------------------
# FakeFetcher: scripted origin
# ---------------------------------------------------------------------------

class FakeFetcher:
    """Serves canned HTML per path; unknown paths fail like a 404.

    Usage:
        fetcher = FakeFetcher("https://site.test", {"/": "<html>...</html>"})
        html = await fetcher.get("/")
    """

    def __init__(
        self,
        base_url: str,
        pages: Optional[Dict[str, PageValue]] = None,
        posts: Optional[Dict[str, Union[PageValue, Callable[[Mapping[str, Any]], str]]]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.pages: Dict[str, PageValue] = dict(pages or {})
        self.posts = dict(posts or {})
        self.requests: List[str] = []
        self.post_requests: List[Dict[str, Any]] = []
        self.closed = False

    def absolute(self, url: str) -> str:
        if not urlparse(url).netloc:
            return urljoin(self.base_url + "/", url.lstrip("/"))
        return url

    def _path(self, url: str) -> str:
        if url.startswith(self.base_url):
            return url[len(self.base_url):] or "/"
        return url

    @staticmethod
    def _serve(value: Any, url: str) -> str:
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise FetchFailure(f"HTTP 404 error for {url}", url=url, status_code=404)
        return value

    async def get(self, url: str, **kwargs: Any) -> str:
        path = self._path(url)
        self.requests.append(path)
        return self._serve(self.pages.get(path), url)

    async def post_form(self, url: str, data: Mapping[str, Any], headers: Optional[Mapping[str, str]] = None) -> str:
        path = self._path(url)
        self.post_requests.append({"url": path, "data": dict(data), "headers": dict(headers or {})})
        value = self.posts.get(path)
        if callable(value):
            value = value(data)
        return self._serve(value, url)

    async def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# FakeDriver: scripted rendering driver
# ---------------------------------------------------------------------------

class FakeDriver(RenderingDriver):
    """Rendering driver serving a fixed DOM snapshot.

    ``counts`` is consumed one value per ``count()`` call, repeating the last
    value. ``text_clicks`` is how many ``click_by_text`` calls succeed.
    ``tab_frames`` maps a ``[data-content]`` click index to the iframe URL it
    reveals.
    ``option_frames`` and ``option_pages`` do the same for ``select_option``,
    swapping the iframe URL or the whole DOM snapshot.
    """

    def __init__(
        self,
        html: str = "",
        counts: Optional[Sequence[int]] = None,
        text_clicks: int = 0,
        clickable: Sequence[str] = (),
        frame: Optional[str] = None,
        tab_frames: Optional[Dict[int, str]] = None,
        option_frames: Optional[Dict[int, str]] = None,
        option_pages: Optional[Dict[int, str]] = None,
        fail_on: Optional[str] = None,
    ):
        super().__init__(interaction_delay=0)
        self.html = html
        self.counts = list(counts or [0])
        self.text_clicks = text_clicks
        self.clickable = set(clickable)
        self.frame = frame
        self.tab_frames = dict(tab_frames or {})
        self.option_frames = dict(option_frames or {})
        self.option_pages = dict(option_pages or {})
        self.fail_on = fail_on

        self.navigated: List[str] = []
        self.clicks: List[tuple] = []
        self.selections: List[tuple] = []
        self.text_click_calls = 0
        self.scrolls = 0
        self.close_calls = 0

    def _check(self, operation: str) -> None:
        if self.fail_on == operation:
            raise RenderingFailure(f"{operation} failed", url=self.navigated[-1] if self.navigated else None)

    async def navigate(self, url: str) -> None:
        self.navigated.append(url)
        self._check("navigate")

    async def evaluate(self, script: str, *args: Any) -> Any:
        return None

    async def click(self, selector: str, index: int = 0) -> bool:
        self._check("click")
        self.clicks.append((selector, index))
        if selector not in self.clickable:
            return False
        if index in self.tab_frames:
            self.frame = self.tab_frames[index]
        return True

    async def select_option(self, selector: str, index: int) -> bool:
        self._check("select_option")
        self.selections.append((selector, index))
        if selector not in self.clickable:
            return False
        if index in self.option_frames:
            self.frame = self.option_frames[index]
        if index in self.option_pages:
            self.html = self.option_pages[index]
        return True

    async def click_by_text(self, keywords: Sequence[str], tags: str = "button") -> bool:
        self._check("click_by_text")
        self.text_click_calls += 1
        if self.text_clicks > 0:
            self.text_clicks -= 1
            return True
        return False

    async def count(self, selector: str) -> int:
        if len(self.counts) > 1:
            return self.counts.pop(0)
        return self.counts[0]

    async def attribute(self, selector: str, name: str) -> Optional[str]:
        self._check("attribute")
        return self.frame

    async def scroll_to_bottom(self) -> None:
        self.scrolls += 1

    async def content(self) -> str:
        self._check("content")
        return self.html

    async def close(self) -> None:
        self.close_calls += 1

    @property
    def closed(self) -> bool:
        return self.close_calls > 0


# ---------------------------------------------------------------------------
# Adapter factory
# ---------------------------------------------------------------------------

FAST_RENDER = RenderSettings(
    interaction_delay=0,
    load_more_delay=0,
    scroll_delay=0,
    scroll_stall_limit=3,
    scroll_max_attempts=20,
)


@pytest.fixture
def memory_cache() -> TwoTierCache:
    return TwoTierCache(primary=None, memory=MemoryCache())


@pytest.fixture
def make_plugin(memory_cache):
    """Build an adapter over a FakeFetcher and (optionally) a FakeDriver.

    Returns ``(plugin, fetcher, drivers)`` where ``drivers`` lists every
    driver the adapter created, in order.
    """
    def factory(plugin_class, pages=None, posts=None, driver: Optional[Callable[[], FakeDriver]] = None):
        base_url = plugin_class(config={}).metadata.website
        fetcher = FakeFetcher(base_url, pages, posts)
        drivers: List[FakeDriver] = []

        def create_driver() -> RenderingDriver:
            created = driver() if driver is not None else FakeDriver()
            drivers.append(created)
            return created

        plugin = plugin_class(
            config={},
            cache=memory_cache,
            fetcher=fetcher,
            renderer_factory=create_driver,
            render_settings=FAST_RENDER,
        )
        return plugin, fetcher, drivers

    return factory
