"""
Rendering Driver - Headless browser access for client-side rendered pages.

This module defines the narrow browser interface the source adapters use
(navigate, interact, evaluate, scoped teardown) together with the bounded
interaction loops built on top of it: repeated "load more" clicks and
incremental scrolling with stall detection. The Selenium implementation runs
the blocking WebDriver calls in worker threads so the event loop keeps
serving other requests while a page renders.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import WebDriverWait
from selenium_stealth import stealth

from otakuhub.core.exceptions import RenderingFailure
from otakuhub.core.fetcher import DEFAULT_USER_AGENT


logger = logging.getLogger(__name__)

T = TypeVar("T")


CLICK_BY_TEXT_SCRIPT = """
const keywords = arguments[0];
const tags = arguments[1];
for (const el of document.querySelectorAll(tags)) {
    const text = (el.textContent || '').toLowerCase();
    if (keywords.some(k => text.includes(k))) {
        el.click();
        return true;
    }
}
return false;
"""

SELECT_OPTION_SCRIPT = """
const select = document.querySelector(arguments[0]);
if (!select || arguments[1] >= select.options.length) {
    return false;
}
select.selectedIndex = arguments[1];
select.dispatchEvent(new Event('input', { bubbles: true }));
select.dispatchEvent(new Event('change', { bubbles: true }));
return true;
"""

RESOURCE_COUNT_SCRIPT = "return performance.getEntriesByType('resource').length;"


class RenderingDriver(ABC):
    """
    Abstract browser session.

    One driver instance backs exactly one render: it is created, used and
    closed within a single adapter call. Use it as an async context manager
    so the browser is released on every exit path.
    """

    def __init__(self, interaction_delay: float = 1.0):
        self.interaction_delay = interaction_delay

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Load a URL and wait until the network is substantially idle."""

    @abstractmethod
    async def evaluate(self, script: str, *args: Any) -> Any:
        """Run a script in the page context and return its result."""

    @abstractmethod
    async def click(self, selector: str, index: int = 0) -> bool:
        """Click the ``index``-th element matching a selector; False if absent."""

    @abstractmethod
    async def click_by_text(self, keywords: Sequence[str], tags: str = "button") -> bool:
        """Click the first element whose text contains any keyword; False if none."""

    @abstractmethod
    async def count(self, selector: str) -> int:
        """Number of elements matching a selector."""

    @abstractmethod
    async def attribute(self, selector: str, name: str) -> Optional[str]:
        """Attribute (or property) value of the first matching element."""

    @abstractmethod
    async def scroll_to_bottom(self) -> None:
        """Scroll the window to the bottom of the document."""

    @abstractmethod
    async def content(self) -> str:
        """Serialized HTML of the current DOM."""

    @abstractmethod
    async def close(self) -> None:
        """Release the browser. Safe to call more than once."""

    async def pause(self, seconds: Optional[float] = None) -> None:
        """Give the page time to react to an interaction."""
        delay = self.interaction_delay if seconds is None else seconds
        if delay > 0:
            await asyncio.sleep(delay)

    async def select_option(self, selector: str, index: int) -> bool:
        """Pick the ``index``-th option of a select and fire its change event; False if absent."""
        return bool(await self.evaluate(SELECT_OPTION_SCRIPT, selector, index))

    async def extract(self, parse: Callable[[str], T]) -> T:
        """Apply an extraction function to the rendered DOM."""
        return parse(await self.content())

    async def render(
        self,
        url: str,
        parse: Callable[[str], T],
        interact: Optional[Callable[["RenderingDriver"], Awaitable[Any]]] = None,
    ) -> T:
        """
        Navigate, optionally interact, extract, and always close the browser.

        Args:
            url: Page to render
            parse: Extraction function applied to the rendered DOM
            interact: Optional coroutine driving the page before extraction

        Returns:
            Whatever ``parse`` returns

        Raises:
            RenderingFailure: If the browser cannot navigate or interact
        """
        try:
            await self.navigate(url)
            if interact is not None:
                await interact(self)
            return await self.extract(parse)
        finally:
            await self.close()

    async def load_more(
        self,
        keywords: Sequence[str],
        max_attempts: int = 150,
        delay: float = 0.3,
        tags: str = "button",
    ) -> int:
        """
        Click a "load more" control until it disappears or attempts run out.

        Args:
            keywords: Lowercase text fragments identifying the control
            max_attempts: Upper bound on clicks
            delay: Seconds to wait after each click
            tags: Selector for candidate elements

        Returns:
            Number of successful clicks
        """
        clicks = 0
        for _ in range(max_attempts):
            try:
                clicked = await self.click_by_text(keywords, tags)
            except RenderingFailure as e:
                logger.debug(f"Load-more interaction stopped: {e}")
                break

            if not clicked:
                break

            clicks += 1
            await self.pause(delay)

        logger.debug(f"Load-more control clicked {clicks} times")
        return clicks

    async def scroll_until_stalled(
        self,
        count_selector: str,
        max_scrolls: int = 200,
        stall_limit: int = 15,
        delay: float = 1.0,
    ) -> int:
        """
        Scroll to the bottom repeatedly until the content count stops growing.

        Stops after ``stall_limit`` consecutive scrolls without an increase in
        the number of elements matching ``count_selector``, or after
        ``max_scrolls`` scrolls.

        Returns:
            Final element count
        """
        previous = 0
        stalled = 0

        for attempt in range(max_scrolls):
            await self.scroll_to_bottom()
            await self.pause(delay)

            current = await self.count(count_selector)
            if current == previous:
                stalled += 1
                if stalled >= stall_limit:
                    logger.debug(f"No new content after {attempt + 1} scrolls, total {current}")
                    break
            else:
                stalled = 0
                previous = current

            if attempt % 10 == 0:
                logger.debug(f"Scroll {attempt}: {current} items loaded")

        return previous

    async def __aenter__(self) -> "RenderingDriver":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


RendererFactory = Callable[[], RenderingDriver]


class SeleniumDriver(RenderingDriver):
    """Chrome-backed rendering driver."""

    def __init__(
        self,
        headless: bool = True,
        page_load_timeout: float = 30.0,
        network_idle_timeout: float = 10.0,
        network_idle_window: float = 0.5,
        interaction_delay: float = 1.0,
        window_size: str = "1920,1080",
        user_agent: str = DEFAULT_USER_AGENT,
        use_stealth: bool = True,
    ):
        super().__init__(interaction_delay)
        self.headless = headless
        self.page_load_timeout = page_load_timeout
        self.network_idle_timeout = network_idle_timeout
        self.network_idle_window = network_idle_window
        self.window_size = window_size
        self.user_agent = user_agent
        self.use_stealth = use_stealth

        self.driver: Optional[webdriver.Chrome] = None
        self._current_url: Optional[str] = None

    def _launch(self) -> webdriver.Chrome:
        options = Options()
        if self.headless:
            options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-setuid-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_argument("--log-level=3")
        options.add_argument(f"--window-size={self.window_size}")
        options.add_argument(f"--user-agent={self.user_agent}")
        options.add_experimental_option("prefs", {
            "profile.default_content_setting_values.notifications": 2,
            "profile.default_content_settings.popups": 0,
        })

        driver = webdriver.Chrome(options=options)
        driver.set_page_load_timeout(self.page_load_timeout)

        if self.use_stealth:
            stealth(
                driver,
                languages=["id-ID", "id", "en-US", "en"],
                vendor="Google Inc.",
                platform="Win32",
                webgl_vendor="Intel Inc.",
                renderer="Intel Iris OpenGL Engine",
                fix_hairline=True,
            )

        logger.debug("Chrome driver started")
        return driver

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(func, *args)
        except WebDriverException as e:
            raise RenderingFailure(
                f"Browser operation failed: {e.msg or e!r}",
                url=self._current_url,
                details=str(e),
            )

    def _require_driver(self) -> webdriver.Chrome:
        if self.driver is None:
            raise RenderingFailure("Browser is not open", url=self._current_url)
        return self.driver

    def _wait_for_network_idle(self) -> None:
        driver = self._require_driver()
        WebDriverWait(driver, self.network_idle_timeout).until(
            lambda d: d.execute_script("return document.readyState") == "complete"
        )

        # Approximate network idle: the resource count stays flat for a window
        deadline = time.monotonic() + self.network_idle_timeout
        last_count = -1
        stable_since = time.monotonic()
        while time.monotonic() < deadline:
            count = driver.execute_script(RESOURCE_COUNT_SCRIPT)
            if count != last_count:
                last_count = count
                stable_since = time.monotonic()
            elif time.monotonic() - stable_since >= self.network_idle_window:
                return
            time.sleep(0.1)

        logger.debug(f"Network still busy after {self.network_idle_timeout}s, continuing")

    def _navigate(self, url: str) -> None:
        if self.driver is None:
            self.driver = self._launch()
        self.driver.get(url)
        try:
            self._wait_for_network_idle()
        except TimeoutException:
            logger.debug(f"Document not complete within {self.network_idle_timeout}s: {url}")

    async def navigate(self, url: str) -> None:
        self._current_url = url
        logger.debug(f"Rendering {url}")
        await self._call(self._navigate, url)

    async def evaluate(self, script: str, *args: Any) -> Any:
        driver = self._require_driver()
        return await self._call(driver.execute_script, script, *args)

    def _click(self, selector: str, index: int) -> bool:
        elements = self._require_driver().find_elements(By.CSS_SELECTOR, selector)
        if len(elements) <= index:
            return False
        self._require_driver().execute_script("arguments[0].click();", elements[index])
        return True

    async def click(self, selector: str, index: int = 0) -> bool:
        return await self._call(self._click, selector, index)

    async def click_by_text(self, keywords: Sequence[str], tags: str = "button") -> bool:
        result = await self.evaluate(CLICK_BY_TEXT_SCRIPT, [k.lower() for k in keywords], tags)
        return bool(result)

    def _count(self, selector: str) -> int:
        return len(self._require_driver().find_elements(By.CSS_SELECTOR, selector))

    async def count(self, selector: str) -> int:
        return await self._call(self._count, selector)

    def _attribute(self, selector: str, name: str) -> Optional[str]:
        elements = self._require_driver().find_elements(By.CSS_SELECTOR, selector)
        if not elements:
            return None
        return elements[0].get_attribute(name)

    async def attribute(self, selector: str, name: str) -> Optional[str]:
        return await self._call(self._attribute, selector, name)

    async def scroll_to_bottom(self) -> None:
        await self.evaluate("window.scrollTo(0, document.body.scrollHeight);")

    async def content(self) -> str:
        driver = self._require_driver()
        return await self._call(lambda: driver.page_source)

    async def close(self) -> None:
        if self.driver is None:
            return

        driver, self.driver = self.driver, None
        try:
            await asyncio.to_thread(driver.quit)
            logger.debug("Chrome driver closed")
        except WebDriverException as e:
            logger.debug(f"Error closing Chrome driver: {e}")


def selenium_factory(**options: Any) -> RendererFactory:
    """Build a factory producing a fresh :class:`SeleniumDriver` per render."""
    def create() -> RenderingDriver:
        return SeleniumDriver(**options)
    return create


# Export rendering components
__all__ = [
    "RenderingDriver",
    "RendererFactory",
    "SeleniumDriver",
    "selenium_factory",
]
