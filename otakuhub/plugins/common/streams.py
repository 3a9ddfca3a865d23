"""
Stream Resolver - Discover playable server URLs for an episode page.

Candidate players are collected from every state that yields one:

1. direct ``video``/``source`` elements,
2. inline frames (social widgets and ad frames excluded),
3. option lists whose values are URLs or base64 payloads wrapping an iframe,
4. deferred buttons whose identifiers are POSTed to a resolution endpoint,
5. rendered interaction, clicking each server tab in a live browser.

Candidates are de-duplicated by URL in discovery order. An empty result is
a valid outcome, not an error.
"""

import base64
import binascii
import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, Field

from otakuhub.core.exceptions import FetchFailure, RenderingFailure
from otakuhub.core.fetcher import ThrottledFetcher
from otakuhub.core.models import DEFAULT_QUALITY, StreamServer
from otakuhub.core.renderer import RenderingDriver
from otakuhub.plugins.common.extraction import infer_quality
from otakuhub.plugins.common.utils import TextCleaner, get_attr


logger = logging.getLogger(__name__)


EXCLUDED_FRAME_MARKERS = ("facebook", "twitter", "ads")

MEDIA_SELECTOR = "video[src], video source[src], source[src]"
OPTION_SELECTOR = "select.mirror option, .mirror option, select option"
LEGACY_LINK_SELECTOR = ".player-embed .mirror-items a, .pemain a, .server-list a"
DEFERRED_SELECTOR = "#server ul li div[data-post], .server ul li div[data-post]"
RENDERED_BUTTON_SELECTOR = "[data-content]"

BASE64_PAYLOAD = re.compile(r'^[A-Za-z0-9+/=]{20,}$')
SRC_ATTRIBUTE = re.compile(r'src=["\']([^"\']+)["\']')
PLACEHOLDER_OPTIONS = ("pilih", "select")


class DeferredServer(BaseModel):
    """A server button whose player URL needs a follow-up POST."""

    name: str = Field("Server", description="Button label")
    post: str = Field(..., min_length=1, description="Content reference")
    nume: str = Field(..., min_length=1, description="Numeric server slot")
    type: str = Field("video", description="Player type")


DeferredResolver = Callable[[DeferredServer], Awaitable[Optional[str]]]


def is_player_frame(url: str) -> bool:
    """Whether an iframe URL looks like a player rather than a widget or ad."""
    if not url:
        return False
    parsed = urlparse(url if not url.startswith("//") else f"https:{url}")
    host = parsed.netloc.lower()
    segments = [segment.lower() for segment in parsed.path.split("/") if segment]
    for marker in EXCLUDED_FRAME_MARKERS:
        if marker in host or marker in segments:
            return False
    return True


def decode_option_payload(value: str) -> Optional[str]:
    """
    Decode an option value into a player URL.

    Direct URLs are returned as-is. Values in the base64 alphabet are decoded;
    an embedded ``src="..."`` wins, otherwise decoded text that is itself a
    URL is accepted.

    Args:
        value: Raw option value

    Returns:
        Player URL, or None when the value carries none
    """
    value = (value or "").strip()
    if not value:
        return None

    if value.startswith("http") or value.startswith("//"):
        return value

    if not BASE64_PAYLOAD.match(value):
        return None

    try:
        padded = value + "=" * (-len(value) % 4)
        decoded = base64.b64decode(padded).decode("utf-8", errors="ignore").strip()
    except (binascii.Error, ValueError):
        logger.debug(f"Option value is not valid base64: {value[:30]}...")
        return None

    match = SRC_ATTRIBUTE.search(decoded)
    if match:
        return match.group(1)
    if decoded.startswith("http"):
        return decoded
    return None


def parse_player_fragment(html: str) -> Optional[str]:
    """Iframe source from a deferred-resolution response fragment."""
    iframe = BeautifulSoup(html or "", "html.parser").select_one("iframe")
    if iframe is None:
        return None
    return get_attr(iframe, "src") or get_attr(iframe, "data-src") or None


async def post_deferred(
    fetcher: ThrottledFetcher,
    server: DeferredServer,
    endpoint: str = "/wp-admin/admin-ajax.php",
    action: str = "player_ajax",
) -> Optional[str]:
    """
    Resolve a deferred server through the site's admin-ajax endpoint.

    Raises:
        FetchFailure: If the POST fails
    """
    body = await fetcher.post_form(
        endpoint,
        {"action": action, "post": server.post, "nume": server.nume, "type": server.type},
        headers={"X-Requested-With": "XMLHttpRequest"},
    )
    return parse_player_fragment(body)


class ServerCollector:
    """Ordered, URL-unique accumulator of stream servers."""

    def __init__(self, source: str):
        self.source = source
        self._servers: Dict[str, StreamServer] = {}

    def add(self, url: Optional[str], name: str = "Server", quality: Optional[str] = None) -> bool:
        """Record a candidate; returns False for empty or already seen URLs."""
        if not url or not url.strip():
            return False

        server = StreamServer(
            name=TextCleaner.clean(name) or "Server",
            url=url,
            quality=quality or infer_quality(name),
            source=self.source,
        )
        if server.url in self._servers:
            return False

        self._servers[server.url] = server
        return True

    @property
    def servers(self) -> List[StreamServer]:
        return list(self._servers.values())

    def __len__(self) -> int:
        return len(self._servers)


class StreamResolver:
    """
    Multi-state stream discovery for one source.

    Args:
        source: Source name stamped on each server
        deferred_resolver: Coroutine resolving a :class:`DeferredServer`
            to a player URL; when omitted the deferred state is skipped
        interaction_delay: Seconds to wait after clicking a server tab
    """

    def __init__(
        self,
        source: str,
        deferred_resolver: Optional[DeferredResolver] = None,
        interaction_delay: Optional[float] = None,
    ):
        self.source = source
        self.deferred_resolver = deferred_resolver
        self.interaction_delay = interaction_delay

    def collect_media(self, doc: Tag, collector: ServerCollector) -> None:
        for element in doc.select(MEDIA_SELECTOR):
            collector.add(get_attr(element, "src"), "Direct Media")

    def collect_frames(self, doc: Tag, collector: ServerCollector) -> None:
        for frame in doc.select("iframe"):
            url = get_attr(frame, "src") or get_attr(frame, "data-src")
            if is_player_frame(url):
                collector.add(url, "Default Player", DEFAULT_QUALITY)

    def collect_options(self, doc: Tag, collector: ServerCollector) -> None:
        for option in doc.select(OPTION_SELECTOR):
            label = TextCleaner.clean(option.get_text(" ", strip=True))
            if any(marker in label.lower() for marker in PLACEHOLDER_OPTIONS):
                continue

            value = get_attr(option, "data-url") or get_attr(option, "value")
            url = decode_option_payload(value)
            if url and is_player_frame(url):
                collector.add(url, label or "Server")

    def collect_legacy_links(self, doc: Tag, collector: ServerCollector) -> None:
        for link in doc.select(LEGACY_LINK_SELECTOR):
            url = get_attr(link, "data-url") or get_attr(link, "data-video") or get_attr(link, "href")
            if url.startswith("http"):
                collector.add(url, link.get_text(" ", strip=True) or "Server")

    def deferred_servers(self, doc: Tag) -> List[DeferredServer]:
        """Server buttons carrying deferred-resolution identifiers."""
        servers = []
        for element in doc.select(DEFERRED_SELECTOR):
            post = get_attr(element, "data-post")
            nume = get_attr(element, "data-nume")
            if not post or not nume:
                continue
            label = TextCleaner.clean(element.get_text(" ", strip=True))
            servers.append(DeferredServer(
                name=label or f"Server {nume}",
                post=post,
                nume=nume,
                type=get_attr(element, "data-type") or "video",
            ))
        return servers

    def resolve_static(self, doc: Tag, collector: Optional[ServerCollector] = None) -> List[StreamServer]:
        """Run the states that need nothing beyond the fetched document."""
        collector = collector or ServerCollector(self.source)
        self.collect_media(doc, collector)
        self.collect_frames(doc, collector)
        self.collect_options(doc, collector)
        self.collect_legacy_links(doc, collector)
        return collector.servers

    async def resolve_deferred(self, doc: Tag, collector: ServerCollector) -> None:
        if self.deferred_resolver is None:
            return

        for server in self.deferred_servers(doc):
            try:
                url = await self.deferred_resolver(server)
            except FetchFailure as e:
                logger.warning(f"[{self.source}] deferred server {server.name} failed: {e}")
                continue
            if url and is_player_frame(url):
                collector.add(url, server.name)

    async def resolve_rendered(self, driver: RenderingDriver, collector: ServerCollector) -> None:
        """
        Click every server tab in a rendered page and record the iframe shown.

        A failing tab is skipped; the remaining tabs are still tried. If the
        page itself cannot be read, servers collected so far are kept.
        """
        try:
            frame = await driver.attribute("iframe", "src")
            if is_player_frame(frame or ""):
                collector.add(frame, "Default Player", DEFAULT_QUALITY)

            labels = await driver.extract(rendered_button_labels)
        except RenderingFailure as e:
            logger.warning(f"[{self.source}] rendered server tabs unavailable: {e}")
            return

        for index, (label, quality) in enumerate(labels):
            try:
                if not await driver.click(RENDERED_BUTTON_SELECTOR, index):
                    continue
                await driver.pause(self.interaction_delay)
                frame = await driver.attribute("iframe", "src")
            except RenderingFailure as e:
                logger.debug(f"[{self.source}] server tab {index} failed: {e}")
                continue

            if is_player_frame(frame or ""):
                collector.add(frame, f"{label} ({quality})", quality)

    async def resolve(self, doc: Tag, driver: Optional[RenderingDriver] = None) -> List[StreamServer]:
        """
        Collect servers from every applicable state.

        Args:
            doc: Parsed episode page
            driver: Live browser positioned on the same page, if the source
                needs rendered interaction

        Returns:
            Servers in discovery order, unique by URL
        """
        collector = ServerCollector(self.source)
        self.resolve_static(doc, collector)
        await self.resolve_deferred(doc, collector)
        if driver is not None:
            await self.resolve_rendered(driver, collector)

        logger.debug(f"[{self.source}] resolved {len(collector)} servers")
        return collector.servers


def rendered_button_labels(html: str) -> List[Tuple[str, str]]:
    """(label, quality) for each server tab, quality read from the nearest h4."""
    doc = BeautifulSoup(html or "", "html.parser")
    labels = []
    for button in doc.select(RENDERED_BUTTON_SELECTOR):
        label = TextCleaner.clean(button.get_text(" ", strip=True)) or "Server"
        heading = None
        for container in (button.find_parent("ul"), button.find_parent(class_="mirrorstream"), button.find_parent("div")):
            heading = container.find("h4") if container is not None else None
            if heading is not None:
                break
        match = re.search(r'(\d+p)', heading.get_text() if heading else "", re.IGNORECASE)
        labels.append((label, match.group(1) if match else DEFAULT_QUALITY))
    return labels


# Export resolver components
__all__ = [
    "StreamResolver",
    "ServerCollector",
    "DeferredServer",
    "DeferredResolver",
    "decode_option_payload",
    "parse_player_fragment",
    "post_deferred",
    "is_player_frame",
    "rendered_button_labels",
]
